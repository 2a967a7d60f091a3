from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    admin = "admin"
    funcionario = "funcionario"
    operador = "operador"


class WorkOrderStatus(str, Enum):
    open = "open"
    in_progress = "in_progress"
    closed = "closed"


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# --- usuários ---

class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)
    name: str = ""
    email: Optional[str] = None
    role: Role = Role.operador


class UserUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[Role] = None
    password: Optional[str] = Field(None, min_length=1)


class UserRead(BaseModel):
    id: int
    username: str
    name: str
    email: Optional[str] = None
    role: Role


class PasswordResetRequest(BaseModel):
    username: str


class PasswordResetConfirm(BaseModel):
    token: str
    new_password: str = Field(..., min_length=1)


class PasswordResetLink(BaseModel):
    reset_url: str
    token: str
    expires_in_minutes: int


# --- equipamentos ---

class EquipmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    code: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    manual_pdf: Optional[str] = None


class EquipmentUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    code: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    manual_pdf: Optional[str] = None


class EquipmentRead(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    manual_pdf: Optional[str] = None
    created_at: datetime


class EquipmentListResponse(BaseModel):
    items: list[EquipmentRead]
    total: int
    limit: int
    offset: int
    q: str | None = None


# --- correias / peças ---

class PartCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    size: Optional[str] = None
    quantity: int = Field(0, ge=0)
    minimum: int = Field(1, ge=0)


class PartUpdate(BaseModel):
    size: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0, le=100000, description="contagem de estoque")
    minimum: Optional[int] = Field(None, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"quantity": 12, "minimum": 2},
                {"size": "B-52"},
            ]
        }
    }


class PartRead(BaseModel):
    id: int
    name: str
    size: Optional[str] = None
    quantity: int
    minimum: int
    updated_at: datetime


class PartListResponse(BaseModel):
    items: list[PartRead]
    total: int
    limit: int
    offset: int
    q: str | None = None


# --- ordens de serviço ---

class WorkOrderCreate(BaseModel):
    equipment_id: Optional[int] = None
    type: str = "corretiva"
    description: str
    photo_before: Optional[str] = None


class WorkOrderClose(BaseModel):
    outcome: str
    photo_after: Optional[str] = None
    # troca de correia durante o reparo (opcional)
    part_id: Optional[int] = None
    part_quantity: Optional[int] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"outcome": "correia substituída", "part_id": 12, "part_quantity": 1},
                {"outcome": "ajuste de tensão, sem troca"},
            ]
        }
    }


class WorkOrderRead(BaseModel):
    id: int
    equipment_id: Optional[int] = None
    requester: str
    type: str
    description: str
    status: WorkOrderStatus
    opened_at: datetime
    started_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    outcome: Optional[str] = None
    duration_minutes: Optional[int] = None
    photo_before: Optional[str] = None
    photo_after: Optional[str] = None


class WorkOrderListResponse(BaseModel):
    items: list[WorkOrderRead]
    total: int
    limit: int
    offset: int


class WorkOrderCloseResponse(BaseModel):
    order: WorkOrderRead
    consumption: Optional["ConsumptionRead"] = None


# --- baixa de estoque ---

class ConsumptionCreate(BaseModel):
    equipment_id: int
    part_id: int
    quantity: int


class ConsumptionRead(BaseModel):
    id: int
    equipment_id: int
    part_id: int
    work_order_id: Optional[int] = None
    quantity: int
    operator: Optional[str] = None
    created_at: datetime


class ConsumptionListResponse(BaseModel):
    items: list[ConsumptionRead]
    total: int
    limit: int
    offset: int


class MonthlyReportRow(BaseModel):
    equipment_name: str
    part_name: str
    total_quantity: int


class MonthlyReportResponse(BaseModel):
    month: str
    rows: list[MonthlyReportRow]


class DashboardResponse(BaseModel):
    equipment_count: int
    open_orders: int
    in_progress_orders: int
    closed_this_month: int
    low_stock: list[PartRead]
    recent_orders: list[WorkOrderRead]


# --- entradas via QR ---

class OrderEntryResponse(BaseModel):
    equipment: EquipmentRead
    open_order: Optional[WorkOrderRead] = None


class ConsumeEntryResponse(BaseModel):
    equipment: EquipmentRead
    parts: list[PartRead]


WorkOrderCloseResponse.model_rebuild()
