from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from royaltymeds.core.db import get_db
from royaltymeds.api.deps import patient_only
from royaltymeds.models.drug import Drug, DrugStatus
from royaltymeds.models.order import CartItem
from royaltymeds.models.user import User
from royaltymeds.schemas.store import CartAddIn, CartItemOut, CartOut, CartUpdateIn
from royaltymeds.services.pricing import ZERO, effective_unit_price, money

router = APIRouter(prefix="/api/cart", tags=["cart"])


async def _cart_out(db: AsyncSession, user: User) -> CartOut:
    q = (
        select(CartItem)
        .options(selectinload(CartItem.drug))
        .where(CartItem.user_id == user.id)
        .order_by(CartItem.added_at)
        .execution_options(populate_existing=True)
    )
    items = []
    subtotal = ZERO
    for ci in (await db.execute(q)).scalars().all():
        price = effective_unit_price(ci.drug)
        line_total = money(price * ci.quantity)
        subtotal += line_total
        items.append(CartItemOut(
            id=ci.id,
            drug_id=ci.drug_id,
            drug_name=ci.drug.name,
            quantity=ci.quantity,
            unit_price=money(price),
            line_total=line_total,
            pharm_confirm=ci.drug.pharm_confirm,
        ))
    return CartOut(items=items, subtotal=subtotal)

async def _cart_item_or_404(db: AsyncSession, user: User, item_id: int) -> CartItem:
    ci = (await db.execute(
        select(CartItem).where(CartItem.id == item_id, CartItem.user_id == user.id)
    )).scalar_one_or_none()
    if not ci:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return ci

@router.get("", response_model=CartOut)
async def get_cart(user: User = Depends(patient_only), db: AsyncSession = Depends(get_db)):
    return await _cart_out(db, user)

@router.post("", response_model=CartOut, status_code=201)
async def add_to_cart(body: CartAddIn, user: User = Depends(patient_only), db: AsyncSession = Depends(get_db)):
    drug = (await db.execute(select(Drug).where(Drug.id == body.drug_id))).scalar_one_or_none()
    if not drug or drug.status != DrugStatus.active:
        raise HTTPException(status_code=404, detail="Product not found")

    existing = (await db.execute(
        select(CartItem).where(CartItem.user_id == user.id, CartItem.drug_id == drug.id)
    )).scalar_one_or_none()
    if existing:
        existing.quantity += body.quantity
    else:
        db.add(CartItem(user_id=user.id, drug_id=drug.id, quantity=body.quantity))
    await db.commit()
    return await _cart_out(db, user)

@router.patch("/{item_id}", response_model=CartOut)
async def update_cart_item(
    item_id: int,
    body: CartUpdateIn,
    user: User = Depends(patient_only),
    db: AsyncSession = Depends(get_db),
):
    ci = await _cart_item_or_404(db, user, item_id)
    ci.quantity = body.quantity
    await db.commit()
    return await _cart_out(db, user)

@router.delete("/{item_id}", response_model=CartOut)
async def remove_cart_item(item_id: int, user: User = Depends(patient_only), db: AsyncSession = Depends(get_db)):
    ci = await _cart_item_or_404(db, user, item_id)
    await db.delete(ci)
    await db.commit()
    return await _cart_out(db, user)

@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_cart(user: User = Depends(patient_only), db: AsyncSession = Depends(get_db)):
    await db.execute(delete(CartItem).where(CartItem.user_id == user.id))
    await db.commit()
