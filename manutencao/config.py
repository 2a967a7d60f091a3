from typing import Optional

from fastapi import Request
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # campos esperados no .env
    secret_key: str = "dev_secret"
    access_token_expire_minutes: int = 120

    database_url: str = "sqlite:///./data/manutencao.db"

    admin_username: str = "admin"
    admin_password: str = "12345"
    admin_name: str = "Administrador"

    # base usada nas URLs gravadas nos QR codes
    public_base_url: str = "http://localhost:8000"

    reset_token_expire_minutes: int = 30
    parts_seed_file: Optional[str] = "belts_seed.json"

    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings
