from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from royaltymeds.core.db import get_db
from royaltymeds.core.errors import Forbidden
from royaltymeds.core.security import decode_access_token
from royaltymeds.models.user import RoleEnum, User


bearer = HTTPBearer(auto_error=False)

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

async def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> User:
    if creds is None:
        raise _unauthorized("Not authenticated")
    try:
        user_id = decode_access_token(creds.credentials).get("sub")
    except JWTError:
        raise _unauthorized("Invalid token")
    if not user_id:
        raise _unauthorized("Invalid token")

    user = await db.get(User, user_id)
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise Forbidden("Account is disabled")
    return user

def require_roles(*roles: RoleEnum):
    """Dependency factory; the message never says which role was expected."""
    async def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise Forbidden("Unauthorized")
        return user
    return _guard

admin_only = require_roles(RoleEnum.admin)
patient_only = require_roles(RoleEnum.patient)
doctor_only = require_roles(RoleEnum.doctor)

def client_ip(request: Request) -> str | None:
    # first hop when running behind the load balancer
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
