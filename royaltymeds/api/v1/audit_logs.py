import math
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from royaltymeds.core.db import get_db
from royaltymeds.api.deps import admin_only
from royaltymeds.models.audit import AuditAction, AuditLog
from royaltymeds.models.user import User
from royaltymeds.schemas.audit import AuditLogOut, AuditLogPage, Pagination
from royaltymeds.services.audit import export_csv

router = APIRouter(prefix="/api/admin/audit-logs", tags=["admin - audit"])


EXPORT_LIMIT = 10000

def _filtered(q, user_id, resource_type, action, date_from, date_to):
    if user_id:
        q = q.where(AuditLog.user_id == user_id)
    if resource_type:
        q = q.where(AuditLog.resource_type == resource_type)
    if action:
        q = q.where(AuditLog.action == action)
    if date_from:
        q = q.where(AuditLog.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        # inclusive of the whole end day
        q = q.where(AuditLog.created_at < datetime.combine(date_to + timedelta(days=1), time.min))
    return q

@router.get("", response_model=AuditLogPage)
async def list_audit_logs(
    user_id: Optional[str] = None,
    resource_type: Optional[str] = None,
    action: Optional[AuditAction] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    filters = (user_id, resource_type, action, date_from, date_to)
    total = (await db.execute(_filtered(select(func.count(AuditLog.id)), *filters))).scalar_one()
    q = _filtered(select(AuditLog), *filters).order_by(AuditLog.created_at.desc())
    rows = (await db.execute(q.offset((page - 1) * page_size).limit(page_size))).scalars().all()
    return AuditLogPage(
        data=[AuditLogOut.model_validate(r) for r in rows],
        pagination=Pagination(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=math.ceil(total / page_size) if total else 0,
        ),
    )

@router.get("/export")
async def export_audit_logs(
    user_id: Optional[str] = None,
    resource_type: Optional[str] = None,
    action: Optional[AuditAction] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    _: User = Depends(admin_only),
    db: AsyncSession = Depends(get_db),
):
    q = _filtered(select(AuditLog), user_id, resource_type, action, date_from, date_to)
    rows = (await db.execute(q.order_by(AuditLog.created_at.desc()).limit(EXPORT_LIMIT))).scalars().all()
    filename = f"audit-logs-{date.today().isoformat()}.csv"
    return Response(
        content=export_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@router.get("/{log_id}", response_model=AuditLogOut)
async def get_audit_log(log_id: str, _: User = Depends(admin_only), db: AsyncSession = Depends(get_db)):
    log = (await db.execute(select(AuditLog).where(AuditLog.id == log_id))).scalar_one_or_none()
    if not log:
        raise HTTPException(status_code=404, detail="Audit log not found")
    return log
