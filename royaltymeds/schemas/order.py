from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from royaltymeds.models.order import OrderStatus, PaymentMethod, PaymentStatus

class AddressIn(BaseModel):
    street_line_1: str = Field(..., min_length=1)
    street_line_2: Optional[str] = None
    city: str = Field(..., min_length=1)
    # parish
    state: str = Field(..., min_length=1)
    postal_code: Optional[str] = None
    country: str = Field(..., min_length=1)

class CheckoutIn(BaseModel):
    shipping_address: AddressIn
    billing_address: Optional[AddressIn] = None
    notes: Optional[str] = None
    collect_on_delivery: bool = False

class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    drug_id: Optional[str] = None
    drug_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    pharm_confirm: bool

class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    order_number: str
    user_id: str
    status: OrderStatus
    subtotal_amount: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total_amount: Decimal
    shipping_collect_on_delivery: bool
    shipping_custom_rate: Optional[Decimal] = None
    shipping_paid_online: bool
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    receipt_url: Optional[str] = None
    is_prescription_order: bool = False
    prescription_id: Optional[str] = None
    shipping_street_line_1: Optional[str] = None
    shipping_street_line_2: Optional[str] = None
    shipping_city: Optional[str] = None
    shipping_state: Optional[str] = None
    shipping_postal_code: Optional[str] = None
    shipping_country: Optional[str] = None
    billing_street_line_1: Optional[str] = None
    billing_street_line_2: Optional[str] = None
    billing_city: Optional[str] = None
    billing_state: Optional[str] = None
    billing_postal_code: Optional[str] = None
    billing_country: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    items: List[OrderItemOut] = Field(default_factory=list)

class PrescriptionOrderIn(BaseModel):
    # without an address the configured default delivery cost applies
    shipping_address: Optional[AddressIn] = None
    collect_on_delivery: bool = False
    notes: Optional[str] = None

class OrderStatusIn(BaseModel):
    status: OrderStatus

class OrderStatusOut(BaseModel):
    order: OrderOut
    low_stock: List[str] = Field(default_factory=list)

class PaymentStatusIn(BaseModel):
    payment_status: PaymentStatus

class ShippingUpdateIn(BaseModel):
    shipping_amount: Optional[Decimal] = None
    custom_rate: Optional[Decimal] = None
    collect_on_delivery: Optional[bool] = None
    paid_online: Optional[bool] = None

class InventoryLineOut(BaseModel):
    drug_id: Optional[str] = None
    drug_name: str
    requested: int
    available: int
    sufficient: bool

class InventoryCheckOut(BaseModel):
    all_available: bool
    items: List[InventoryLineOut]
