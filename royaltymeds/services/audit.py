# royaltymeds/services/audit.py
import csv
import io
import logging
from typing import Any, Iterable, Optional

from fastapi.encoders import jsonable_encoder
from sqlalchemy import inspect as sa_inspect

from royaltymeds.core.db import SessionLocal
from royaltymeds.models.audit import AuditAction, AuditLog
from royaltymeds.models.user import User

logger = logging.getLogger(__name__)

JsonValue = Any

CSV_HEADER = ["ID", "Timestamp", "User Email", "Action", "Resource Type", "Resource ID", "Details"]


def snapshot(obj) -> Optional[dict[str, JsonValue]]:
    """Column values of an ORM instance as plain JSON data."""
    if obj is None:
        return None
    mapper = sa_inspect(obj).mapper
    return jsonable_encoder({attr.key: getattr(obj, attr.key) for attr in mapper.column_attrs})


async def record(
    actor: Optional[User],
    action: AuditAction,
    resource_type: str,
    resource_id: Optional[str] = None,
    before: JsonValue = None,
    after: JsonValue = None,
    description: Optional[str] = None,
    ip_address: Optional[str] = None,
) -> Optional[AuditLog]:
    """
    Append an audit entry in a session of its own.

    Called after the business change has been committed; a failed write is
    logged and swallowed so it never undoes that change.
    """
    entry = AuditLog(
        user_id=actor.id if actor else None,
        user_email=actor.email if actor else None,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        before=jsonable_encoder(before),
        after=jsonable_encoder(after),
        description=description,
        ip_address=ip_address,
    )
    try:
        async with SessionLocal() as session:
            session.add(entry)
            await session.commit()
    except Exception:
        logger.exception("Failed to write audit log %s %s/%s", action.value, resource_type, resource_id)
        return None
    return entry


def export_csv(logs: Iterable[AuditLog]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for log in logs:
        writer.writerow([
            log.id,
            log.created_at.isoformat() if log.created_at else "",
            log.user_email or "",
            log.action.value,
            log.resource_type,
            log.resource_id or "",
            log.description or "",
        ])
    return buf.getvalue()
