from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from royaltymeds.models.drug import DrugStatus

class DrugOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    sku: str
    category: str
    sub_category: Optional[str] = None
    manufacturer: Optional[str] = None
    description: Optional[str] = None
    file_url: Optional[str] = None
    unit_price: Decimal
    is_on_sale: bool
    sale_price: Optional[Decimal] = None
    sale_discount_percent: Optional[Decimal] = None
    effective_price: Decimal = Decimal("0")
    pharm_confirm: bool
    quantity_on_hand: int
    low_stock_alert: bool
    status: DrugStatus

class DrugSaleIn(BaseModel):
    is_on_sale: bool
    sale_price: Optional[Decimal] = Field(None, ge=0)
    sale_discount_percent: Optional[Decimal] = Field(None, ge=0, le=100)

# --- cart ---
class CartAddIn(BaseModel):
    drug_id: str
    quantity: int = Field(1, gt=0)

class CartUpdateIn(BaseModel):
    quantity: int = Field(..., gt=0)

class CartItemOut(BaseModel):
    id: int
    drug_id: str
    drug_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    pharm_confirm: bool

class CartOut(BaseModel):
    items: list[CartItemOut] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
