import logging
import os

from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse

from manutencao.db import sqlite_file_path
from manutencao.deps import require_capability
from manutencao.error import NotFoundError
from manutencao.models import User
from manutencao.services.permissions import BACKUP

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/backup")
def backup(request: Request, user: User = Depends(require_capability(BACKUP))):
    path = sqlite_file_path(request.app.state.engine)
    if not path or not os.path.exists(path):
        raise NotFoundError("Backup disponível apenas para banco SQLite em arquivo", code="NO_BACKUP")

    logger.info("backup do banco baixado por %s", user.username)
    return FileResponse(path, media_type="application/octet-stream", filename="database_backup.db")
