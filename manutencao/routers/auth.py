import logging

from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from manutencao.config import Settings, get_settings
from manutencao.db import get_session
from manutencao.deps import require_user
from manutencao.error import _auth_401
from manutencao.models import User
from manutencao.schemas import PasswordResetConfirm, PasswordResetRequest, Token, UserRead
from manutencao.security import create_access_token
from manutencao.services import accounts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    user = accounts.authenticate(session, form_data.username, form_data.password)
    if not user:
        raise _auth_401("INVALID_CREDENTIALS", "Usuário ou senha inválidos")

    token = create_access_token(user.username, settings.secret_key, settings.access_token_expire_minutes)
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=UserRead)
def me(user: User = Depends(require_user)):
    return user


@router.post("/password-reset/request")
def password_reset_request(data: PasswordResetRequest):
    # sem transporte de e-mail: o admin emite o link em POST /users/{id}/password-reset
    logger.warning("redefinição de senha solicitada para %s", data.username.strip())
    # mesma resposta para usuário existente ou não
    return {"ok": True}


@router.post("/password-reset/confirm")
def password_reset_confirm(data: PasswordResetConfirm, session: Session = Depends(get_session)):
    accounts.confirm_password_reset(session, data.token, data.new_password)
    session.commit()
    return {"ok": True}
