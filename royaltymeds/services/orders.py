# royaltymeds/services/orders.py
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from royaltymeds.core.errors import ValidationFailed
from royaltymeds.models.drug import Drug, DrugStatus, InventoryTransaction, InventoryTransactionType
from royaltymeds.models.order import CartItem, Order, OrderItem, OrderStatus
from royaltymeds.models.payment import TaxType
from royaltymeds.models.prescription import Prescription, PrescriptionStatus
from royaltymeds.models.user import User
from royaltymeds.schemas.order import AddressIn, CheckoutIn, PrescriptionOrderIn
from royaltymeds.services.pricing import (
    ListPrice, ZERO, compute_order_totals, effective_unit_price, money, order_total,
)
from royaltymeds.services.shipping import default_shipping_cost, get_payment_config, lookup_shipping_rate

logger = logging.getLogger(__name__)

ORDERABLE_RX = {
    PrescriptionStatus.approved,
    PrescriptionStatus.processing,
    PrescriptionStatus.partially_filled,
    PrescriptionStatus.filled,
}


def _set_address(order: Order, prefix: str, address: Optional[AddressIn]) -> None:
    if address is None:
        return
    for field in ("street_line_1", "street_line_2", "city", "state", "postal_code", "country"):
        setattr(order, f"{prefix}_{field}", getattr(address, field))


def _settle_totals(order: Order, tax_amount: Decimal, shipping_amount: Decimal, collect_on_delivery: bool) -> None:
    # the subtotal is the sum of the stored line totals so the order always adds up to its items
    order.subtotal_amount = sum((it.total_price for it in order.items), ZERO)
    order.tax_amount = money(tax_amount)
    order.shipping_amount = money(shipping_amount)
    order.shipping_collect_on_delivery = collect_on_delivery
    order.total_amount = order_total(order)


async def _tax_type(db: AsyncSession) -> TaxType:
    cfg = await get_payment_config(db)
    return cfg.tax_type if cfg else TaxType.none


async def create_order_from_cart(db: AsyncSession, actor: User, payload: CheckoutIn, order_number: str) -> Order:
    q = select(CartItem).options(selectinload(CartItem.drug)).where(CartItem.user_id == actor.id)
    cart = list((await db.execute(q)).scalars().all())
    if not cart:
        raise ValidationFailed("Cart is empty")
    for ci in cart:
        if ci.drug.status != DrugStatus.active:
            raise ValidationFailed(f"{ci.drug.name} is no longer available")

    ship = payload.shipping_address
    shipping = await lookup_shipping_rate(db, ship.state, ship.city)
    totals = compute_order_totals(
        [(ci.drug, ci.quantity) for ci in cart],
        await _tax_type(db),
        shipping,
        payload.collect_on_delivery,
    )

    needs_confirmation = any(ci.drug.pharm_confirm for ci in cart)
    order = Order(
        user_id=actor.id,
        order_number=order_number,
        status=OrderStatus.pending if needs_confirmation else OrderStatus.payment_pending,
        notes=payload.notes,
    )
    _set_address(order, "shipping", ship)
    _set_address(order, "billing", payload.billing_address)

    for ci in cart:
        price = effective_unit_price(ci.drug)
        order.items.append(OrderItem(
            drug_id=ci.drug_id,
            drug_name=ci.drug.name,
            quantity=ci.quantity,
            unit_price=money(price),
            total_price=money(price * ci.quantity),
            pharm_confirm=ci.drug.pharm_confirm,
        ))
    _settle_totals(order, totals.tax_amount, totals.shipping_amount, totals.collect_on_delivery)

    db.add(order)
    await db.execute(delete(CartItem).where(CartItem.user_id == actor.id))
    await db.commit()
    await db.refresh(order, attribute_names=["items"])
    logger.info("Order %s created for %s total=%s", order.order_number, actor.email, order.total_amount)
    return order


async def create_order_from_prescription(
    db: AsyncSession,
    rx: Prescription,
    payload: PrescriptionOrderIn,
    order_number: str,
) -> Order:
    """
    Raise an order for the patient from the pharmacy's priced medications.

    Every item needs a price greater than zero. Shipping comes from the
    rate table when an address is given, else the configured default cost.
    """
    if rx.status not in ORDERABLE_RX:
        raise ValidationFailed("Prescription must be approved before an order can be created")
    if not rx.items:
        raise ValidationFailed("Prescription has no items")
    if any(it.price is None or it.price <= 0 for it in rx.items):
        raise ValidationFailed("All medications must have prices before creating order")

    ship = payload.shipping_address
    if ship is not None:
        shipping = await lookup_shipping_rate(db, ship.state, ship.city)
    else:
        shipping = await default_shipping_cost(db)
    totals = compute_order_totals(
        [(ListPrice(it.price), 1) for it in rx.items],
        await _tax_type(db),
        shipping,
        payload.collect_on_delivery,
    )

    order = Order(
        user_id=rx.patient_id,
        order_number=order_number,
        status=OrderStatus.pending,
        is_prescription_order=True,
        prescription_id=rx.id,
        notes=payload.notes,
    )
    _set_address(order, "shipping", ship)
    for it in rx.items:
        order.items.append(OrderItem(
            drug_name=it.medication_name,
            quantity=it.total_amount,
            unit_price=money(it.price / it.total_amount),
            total_price=money(it.price),
            pharm_confirm=False,
        ))
    _settle_totals(order, totals.tax_amount, totals.shipping_amount, totals.collect_on_delivery)

    db.add(order)
    await db.commit()
    await db.refresh(order, attribute_names=["items"])
    logger.info("Order %s raised from prescription %s total=%s", order.order_number, rx.prescription_number, order.total_amount)
    return order


def update_shipping(
    order: Order,
    shipping_amount: Optional[Decimal] = None,
    custom_rate: Optional[Decimal] = None,
    collect_on_delivery: Optional[bool] = None,
    paid_online: Optional[bool] = None,
) -> Order:
    """A custom rate replaces the standard amount; the total is always recomputed."""
    if shipping_amount is not None:
        if shipping_amount < 0:
            raise ValidationFailed("Shipping amount cannot be negative")
        order.shipping_amount = money(shipping_amount)
    if custom_rate is not None:
        if custom_rate < 0:
            raise ValidationFailed("Custom shipping rate cannot be negative")
        order.shipping_custom_rate = money(custom_rate)
        order.shipping_amount = money(custom_rate)
    if collect_on_delivery is not None:
        order.shipping_collect_on_delivery = collect_on_delivery
    if paid_online is not None:
        order.shipping_paid_online = paid_online
    order.total_amount = order_total(order)
    return order


async def _drugs_for(db: AsyncSession, order: Order) -> dict[str, Drug]:
    ids = [it.drug_id for it in order.items if it.drug_id]
    rows = (await db.execute(select(Drug).where(Drug.id.in_(ids)))).scalars().all()
    return {d.id: d for d in rows}


async def check_inventory(db: AsyncSession, order: Order) -> list[dict]:
    """Catalog lines only; prescription lines are dispensed through fills."""
    drugs = await _drugs_for(db, order)
    out = []
    for it in order.items:
        if it.drug_id is None:
            continue
        drug = drugs.get(it.drug_id)
        on_hand = drug.quantity_on_hand if drug else 0
        out.append({
            "drug_id": it.drug_id,
            "drug_name": it.drug_name,
            "requested": it.quantity,
            "available": on_hand,
            "sufficient": on_hand >= it.quantity,
        })
    return out


async def record_shipment(db: AsyncSession, order: Order, actor: User) -> list[Drug]:
    """Take shipped quantities out of stock. Returns the drugs that are now at or below reorder level."""
    drugs = await _drugs_for(db, order)
    low: list[Drug] = []
    for it in order.items:
        if it.drug_id is None:
            continue
        drug = drugs.get(it.drug_id)
        if drug is None:
            logger.warning("Order %s references missing drug %s", order.order_number, it.drug_id)
            continue
        before = drug.quantity_on_hand
        after = max(0, before - it.quantity)
        drug.quantity_on_hand = after
        drug.low_stock_alert = after <= drug.reorder_level
        db.add(InventoryTransaction(
            drug_id=drug.id,
            transaction_type=InventoryTransactionType.sale,
            quantity_change=after - before,
            quantity_before=before,
            quantity_after=after,
            notes=f"Order {order.order_number} shipped",
            created_by=actor.id,
        ))
        if drug.low_stock_alert:
            low.append(drug)
    return low
