import logging
import os

from fastapi import HTTPException, Request
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from manutencao.error import DomainError

logger = logging.getLogger(__name__)


def _enable_sqlite_fk(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_store_engine(database_url: str) -> Engine:
    """Cria o engine de ``database_url``; no SQLite liga as chaves estrangeiras e o timeout de bloqueio."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    path = database_url.split("///", 1)[1] if "///" in database_url else ""
    if path in ("", ":memory:"):
        engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    event.listen(engine, "connect", _enable_sqlite_fk)
    return engine


def sqlite_file_path(engine: Engine) -> str | None:
    if engine.dialect.name != "sqlite":
        return None
    database = engine.url.database
    if not database or database == ":memory:":
        return None
    return os.path.abspath(database)


def create_db_and_tables(engine: Engine) -> None:
    # registra as tabelas no metadata antes do create_all
    import manutencao.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_session(request: Request):
    session = Session(request.app.state.engine)
    try:
        yield session
    except HTTPException:
        # erro de autenticação: nada foi gravado
        raise
    except DomainError as e:
        # erro de negócio: descarta o que já foi enviado com flush
        session.rollback()
        logger.warning("rejected: %s (%s)", e.code, e.message)
        raise
    except Exception as e:
        session.rollback()
        logger.error("rollback: %s %s", type(e).__name__, e)
        raise
    finally:
        session.close()
