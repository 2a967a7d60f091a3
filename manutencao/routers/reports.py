from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy import func
from sqlmodel import Session, select

from manutencao.db import get_session
from manutencao.deps import require_capability
from manutencao.models import Equipment, User, WorkOrder, utcnow
from manutencao.schemas import DashboardResponse, MonthlyReportResponse, WorkOrderStatus
from manutencao.services import ledger, reports
from manutencao.services.permissions import VIEW_REPORTS

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/consumption", response_model=MonthlyReportResponse)
def consumption_report(
    month: str = Query(..., description="AAAA-MM"),
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(VIEW_REPORTS)),
):
    rows = ledger.monthly_report(session, month)
    return {"month": month, "rows": [row._asdict() for row in rows]}


@router.get("/consumption.pdf")
def consumption_report_pdf(
    month: str = Query(..., description="AAAA-MM"),
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(VIEW_REPORTS)),
):
    rows = ledger.monthly_report(session, month)
    return Response(
        content=reports.consumption_pdf(month, rows),
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="baixas_{month}.pdf"'},
    )


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    session: Session = Depends(get_session),
    _user: User = Depends(require_capability(VIEW_REPORTS)),
):
    def count_status(status: WorkOrderStatus) -> int:
        return session.exec(
            select(func.count()).select_from(WorkOrder).where(WorkOrder.status == status.value)
        ).one()

    month_start, month_end = ledger.month_bounds(utcnow().strftime("%Y-%m"))
    closed_this_month = session.exec(
        select(func.count())
        .select_from(WorkOrder)
        .where(WorkOrder.closed_at >= month_start, WorkOrder.closed_at < month_end)
    ).one()

    recent = session.exec(
        select(WorkOrder).order_by(WorkOrder.opened_at.desc(), WorkOrder.id.desc()).limit(10)
    ).all()

    return {
        "equipment_count": session.exec(select(func.count()).select_from(Equipment)).one(),
        "open_orders": count_status(WorkOrderStatus.open),
        "in_progress_orders": count_status(WorkOrderStatus.in_progress),
        "closed_this_month": closed_this_month,
        "low_stock": ledger.low_stock_parts(session),
        "recent_orders": recent,
    }
