from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from manutencao.config import Settings, get_settings
from manutencao.db import get_session
from manutencao.deps import require_capability
from manutencao.models import User
from manutencao.schemas import PasswordResetLink, UserCreate, UserRead, UserUpdate
from manutencao.services import accounts
from manutencao.services.permissions import MANAGE_USERS

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserRead)
def create_user(
    data: UserCreate,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_capability(MANAGE_USERS)),
):
    user = accounts.create_user(
        session, data.username, data.password, name=data.name, email=data.email, role=data.role
    )
    session.commit()
    session.refresh(user)
    return user


@router.get("", response_model=list[UserRead])
def list_users(
    session: Session = Depends(get_session),
    _admin: User = Depends(require_capability(MANAGE_USERS)),
):
    return session.exec(select(User).order_by(User.username)).all()


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    data: UserUpdate,
    session: Session = Depends(get_session),
    _admin: User = Depends(require_capability(MANAGE_USERS)),
):
    user = accounts.update_user(
        session, user_id, name=data.name, email=data.email, role=data.role, password=data.password
    )
    session.commit()
    session.refresh(user)
    return user


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    session: Session = Depends(get_session),
    admin: User = Depends(require_capability(MANAGE_USERS)),
):
    accounts.delete_user(session, admin, user_id)
    session.commit()
    return {"ok": True}


@router.post("/{user_id}/password-reset", response_model=PasswordResetLink)
def issue_password_reset(
    user_id: int,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
    _admin: User = Depends(require_capability(MANAGE_USERS)),
):
    # o link volta só para o admin, que repassa ao usuário
    token = accounts.issue_password_reset(session, user_id, settings.reset_token_expire_minutes)
    session.commit()
    return {
        "reset_url": f"{settings.public_base_url.rstrip('/')}/auth/password-reset?token={token}",
        "token": token,
        "expires_in_minutes": settings.reset_token_expire_minutes,
    }
