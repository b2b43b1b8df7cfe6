from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict

from royaltymeds.models.audit import AuditAction

class AuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    action: AuditAction
    resource_type: str
    resource_id: Optional[str] = None
    before: Optional[Any] = None
    after: Optional[Any] = None
    description: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime

class Pagination(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int

class AuditLogPage(BaseModel):
    data: List[AuditLogOut]
    pagination: Pagination
