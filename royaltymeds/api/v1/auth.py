import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from royaltymeds.api.deps import get_current_user
from royaltymeds.core.db import get_db
from royaltymeds.core.errors import Forbidden, ValidationFailed
from royaltymeds.core.security import create_access_token, hash_password, verify_password
from royaltymeds.models.user import RoleEnum, User
from royaltymeds.schemas.auth import LoginIn, RegisterIn, TokenOut, UserOut

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


async def _user_by_email(db: AsyncSession, email: str) -> User | None:
    return (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()


@router.post("/register", response_model=UserOut, status_code=201)
async def register(payload: RegisterIn, db: AsyncSession = Depends(get_db)):
    if await _user_by_email(db, payload.email):
        raise ValidationFailed("Email is already registered")

    user = User(
        email=payload.email,
        full_name=payload.full_name.strip(),
        phone=payload.phone,
        role=RoleEnum(payload.role.value),
        hashed_password=hash_password(payload.password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("Registered %s account %s", user.role.value, user.id)
    return user


@router.post("/login", response_model=TokenOut)
async def login(payload: LoginIn, db: AsyncSession = Depends(get_db)):
    user = await _user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.hashed_password):
        logger.warning("Failed login for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise Forbidden("Account is disabled")

    user.last_login_at = datetime.utcnow()
    await db.commit()

    token = create_access_token(user.id, extra={"role": user.role.value, "email": user.email})
    return TokenOut(access_token=token, role=user.role)


@router.get("/me", response_model=UserOut)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
