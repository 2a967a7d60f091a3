import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from manutencao.error import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from manutencao.models import PasswordResetToken, User, as_utc, utcnow
from manutencao.schemas import Role
from manutencao.security import hash_password, hash_reset_token, new_reset_token, verify_password

logger = logging.getLogger(__name__)

# limite do bcrypt, mantido para senhas portáveis entre esquemas
MAX_PASSWORD_BYTES = 72


def _check_password(password: str) -> None:
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError("Senha muito longa (máximo 72 bytes)", code="PASSWORD_TOO_LONG")


def get_user(session: Session, user_id: int) -> User:
    user = session.get(User, user_id)
    if not user:
        raise NotFoundError("Usuário não encontrado")
    return user


def create_user(
    session: Session,
    username: str,
    password: str,
    *,
    name: str = "",
    email: Optional[str] = None,
    role: Role = Role.operador,
) -> User:
    username = username.strip()
    existing = session.exec(select(User).where(User.username == username)).first()
    if existing:
        raise ConflictError("Usuário já existe", code="USERNAME_EXISTS")
    _check_password(password)

    user = User(
        username=username,
        password_hash=hash_password(password),
        name=name,
        email=email,
        role=Role(role).value,
    )
    session.add(user)
    # unique pode estourar em corrida entre dois cadastros
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        raise ConflictError("Usuário já existe", code="USERNAME_EXISTS")

    logger.info("usuário criado: %s (%s)", user.username, user.role)
    return user


def update_user(
    session: Session,
    user_id: int,
    *,
    name: Optional[str] = None,
    email: Optional[str] = None,
    role: Optional[Role] = None,
    password: Optional[str] = None,
) -> User:
    user = get_user(session, user_id)
    if name is not None:
        user.name = name
    if email is not None:
        user.email = email
    if role is not None:
        user.role = Role(role).value
    if password:
        _check_password(password)
        user.password_hash = hash_password(password)

    session.add(user)
    session.flush()
    logger.info("usuário atualizado: %s", user.username)
    return user


def delete_user(session: Session, actor: User, user_id: int) -> None:
    if actor.id == user_id:
        raise UnauthorizedError("Você não pode excluir a própria conta", code="SELF_DELETE")

    user = get_user(session, user_id)
    session.exec(delete(PasswordResetToken).where(PasswordResetToken.user_id == user.id))
    session.delete(user)
    session.flush()
    logger.info("usuário %s excluído por %s", user.username, actor.username)


def authenticate(session: Session, username: str, password: str) -> Optional[User]:
    user = session.exec(select(User).where(User.username == username)).first()
    if not user or not verify_password(password, user.password_hash):
        logger.warning("login falhou: %s", username)
        return None
    logger.info("login: %s", username)
    return user


def ensure_admin(session: Session, username: str, password: str, name: str = "") -> bool:
    """Cria o admin inicial se ainda não existir. Devolve True quando criou."""
    if session.exec(select(User).where(User.username == username)).first():
        return False
    create_user(session, username, password, name=name, role=Role.admin)
    session.commit()
    logger.info("admin inicial criado: %s", username)
    return True
def issue_password_reset(session: Session, user_id: int, expire_minutes: int = 30) -> str:
    """
    Gera um token de redefinição para o usuário e devolve o valor em claro.

    Só o hash do token fica no banco; quem receber o link é quem consegue usá-lo.
    """
    user = get_user(session, user_id)
    token = new_reset_token()
    session.add(
        PasswordResetToken(
            user_id=user.id,
            token_hash=hash_reset_token(token),
            expires_at=utcnow() + timedelta(minutes=expire_minutes),
        )
    )
    session.flush()

    logger.info("token de redefinição emitido para %s (validade %s min)", user.username, expire_minutes)
    return token


def confirm_password_reset(session: Session, token: str, new_password: str) -> User:
    reset = session.exec(
        select(PasswordResetToken).where(PasswordResetToken.token_hash == hash_reset_token(token or ""))
    ).first()
    if not reset or as_utc(reset.expires_at) <= utcnow():
        raise ValidationError("Token de redefinição inválido ou expirado", code="INVALID_TOKEN")

    _check_password(new_password)
    user = get_user(session, reset.user_id)
    user.password_hash = hash_password(new_password)
    session.add(user)
    session.delete(reset)
    session.flush()

    logger.info("senha redefinida: %s", user.username)
    return user
