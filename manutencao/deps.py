from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlmodel import Session, select

from manutencao.config import Settings, get_settings
from manutencao.db import get_session
from manutencao.error import _auth_401
from manutencao.models import User
from manutencao.security import decode_token
from manutencao.services.permissions import authorize

# auto_error=False: o formato do 401 sem token fica por nossa conta
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def require_user(
    token: str | None = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> User:
    if not token:
        raise _auth_401("NOT_AUTHENTICATED", "Não autenticado ou sessão expirada, faça login novamente")

    try:
        username = decode_token(token, settings.secret_key)
    except (JWTError, ValueError):
        raise _auth_401("INVALID_TOKEN", "Token inválido ou expirado, faça login novamente")

    # token válido, mas a conta pode ter sido removida
    user = session.exec(select(User).where(User.username == username)).first()
    if not user:
        raise _auth_401("USER_NOT_FOUND", "Usuário não existe ou foi removido")

    return user


def require_capability(allowed: frozenset):
    """Dependência que autentica e depois confere o papel do usuário contra ``allowed``."""

    def _dependency(user: User = Depends(require_user)) -> User:
        authorize(user, allowed)
        return user

    return _dependency
