from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, SQLModel


# todas as datas são gravadas em UTC, com fuso
UTCDateTime = DateTime(timezone=True)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # o SQLite devolve as datas sem tzinfo
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    password_hash: str
    name: str = Field(default="")
    email: Optional[str] = None
    role: str = Field(default="operador", index=True)  # admin / funcionario / operador


class PasswordResetToken(SQLModel, table=True):
    __tablename__ = "password_reset_tokens"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    token_hash: str = Field(index=True, unique=True)  # sha256 do token enviado
    expires_at: datetime = Field(sa_type=UTCDateTime)
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Equipment(SQLModel, table=True):
    __tablename__ = "equipment"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    code: Optional[str] = Field(default=None, index=True)
    location: Optional[str] = None  # setor
    description: Optional[str] = None
    image: Optional[str] = None
    manual_pdf: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class WorkOrder(SQLModel, table=True):
    __tablename__ = "work_orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    equipment_id: Optional[int] = Field(default=None, foreign_key="equipment.id", index=True)

    requester: str = Field(index=True)  # username de quem abriu
    type: str = Field(default="corretiva")
    description: str

    status: str = Field(default="open", index=True)  # open / in_progress / closed

    opened_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)
    started_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    closed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    outcome: Optional[str] = None
    duration_minutes: Optional[int] = None

    photo_before: Optional[str] = None
    photo_after: Optional[str] = None


class Part(SQLModel, table=True):
    __tablename__ = "parts"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_parts_quantity_non_negative"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)  # modelo da correia
    size: Optional[str] = None
    quantity: int = Field(default=0)
    minimum: int = Field(default=1)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ConsumptionRecord(SQLModel, table=True):
    __tablename__ = "consumption_records"

    id: Optional[int] = Field(default=None, primary_key=True)

    equipment_id: int = Field(foreign_key="equipment.id", index=True)
    part_id: int = Field(foreign_key="parts.id", index=True)
    work_order_id: Optional[int] = Field(default=None, foreign_key="work_orders.id", index=True)

    quantity: int  # sempre > 0
    operator: Optional[str] = Field(default=None, index=True)  # username

    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)
