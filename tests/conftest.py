import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from manutencao.config import Settings
from manutencao.db import create_db_and_tables, create_store_engine
from manutencao.main import create_app
from manutencao.models import Equipment, Part

ADMIN_USER = "admin"
ADMIN_PASS = "admin123"


@pytest.fixture()
def settings():
    return Settings(
        _env_file=None,
        secret_key="test_secret",
        access_token_expire_minutes=120,
        database_url="sqlite://",
        admin_username=ADMIN_USER,
        admin_password=ADMIN_PASS,
        admin_name="Admin Teste",
        public_base_url="http://testserver",
        parts_seed_file=None,
    )


@pytest.fixture()
def engine():
    # "sqlite://" -> banco em memória com StaticPool (uma conexão compartilhada)
    engine = create_store_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def client(settings, engine):
    app = create_app(settings, engine=engine)
    with TestClient(app) as c:
        yield c


def login(client, username: str, password: str) -> dict:
    r = client.post("/auth/login", data={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture()
def admin_headers(client):
    return login(client, ADMIN_USER, ADMIN_PASS)


@pytest.fixture()
def make_user(client, admin_headers):
    """Cria um usuário pela API e devolve os headers de autenticação dele."""

    def _make(username: str, role: str, password: str = "senha123") -> dict:
        r = client.post(
            "/users",
            json={"username": username, "password": password, "name": username.title(), "role": role},
            headers=admin_headers,
        )
        assert r.status_code == 200, r.text
        return login(client, username, password)

    return _make


@pytest.fixture()
def staff_headers(make_user):
    return make_user("bruno", "funcionario")


@pytest.fixture()
def operator_headers(make_user):
    return make_user("ana", "operador")


@pytest.fixture()
def equipment_and_part(engine):
    """Um equipamento e uma correia com 3 unidades; devolve os ids."""
    with Session(engine) as s:
        equipment = Equipment(name="Prensa enfardadeira", code="PR-01", location="Galpão A")
        part = Part(name="A-42", size="1100mm", quantity=3, minimum=1)
        s.add(equipment)
        s.add(part)
        s.commit()
        return equipment.id, part.id


@pytest.fixture()
def login_as(client):
    def _login(username: str, password: str) -> dict:
        return login(client, username, password)

    return _login
