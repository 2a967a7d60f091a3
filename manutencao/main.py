import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlmodel import Session

from manutencao.config import Settings
from manutencao.db import create_db_and_tables, create_store_engine
from manutencao.error import DomainError
from manutencao.logging_config import setup_logging
from manutencao.routers import admin, auth, consumption, equipment, mobile, parts, reports, users, work_orders
from manutencao.services import accounts, seed

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Monta a aplicação. O ``engine`` é criado a partir de ``settings.database_url``
    na subida, a menos que venha injetado (testes); engine injetado não é descartado.
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level, settings.log_file)

        owns_engine = engine is None
        store = engine if engine is not None else create_store_engine(settings.database_url)
        app.state.engine = store
        create_db_and_tables(store)

        with Session(store) as session:
            accounts.ensure_admin(session, settings.admin_username, settings.admin_password, settings.admin_name)
            if settings.parts_seed_file:
                seed.sync_parts_catalog(session, settings.parts_seed_file)

        logger.info("serviço iniciado (%s)", store.url.render_as_string(hide_password=True))
        yield
        if owns_engine:
            store.dispose()
        logger.info("serviço encerrado")

    app = FastAPI(title="Manutenção Reciclagem - OS e Correias", lifespan=lifespan)
    app.state.settings = settings

    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(equipment.router)
    app.include_router(parts.router)
    app.include_router(work_orders.router)
    app.include_router(consumption.router)
    app.include_router(reports.router)
    app.include_router(mobile.router)
    app.include_router(admin.router)

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"code": "VALIDATION_ERROR", "message": "Parâmetros inválidos", "errors": jsonable_encoder(exc.errors())},
        )

    return app


app = create_app()
