from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from royaltymeds.models.payment import TaxType

class PaymentConfigIn(BaseModel):
    bank_account_holder: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    routing_number: Optional[str] = None
    iban: Optional[str] = None
    swift_code: Optional[str] = None
    additional_instructions: Optional[str] = None
    tax_type: Optional[TaxType] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=100)
    default_shipping_cost: Optional[Decimal] = Field(None, ge=0)

class PaymentConfigOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: Optional[str] = None
    bank_account_holder: Optional[str] = None
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    routing_number: Optional[str] = None
    iban: Optional[str] = None
    swift_code: Optional[str] = None
    additional_instructions: Optional[str] = None
    tax_type: TaxType = TaxType.none
    tax_rate: Decimal = Decimal("0")
    default_shipping_cost: Decimal = Decimal("0")

def _city_or_none(v: Optional[str]) -> Optional[str]:
    # an empty city means the rate covers the whole parish
    if v is None:
        return None
    v = v.strip()
    return v or None

class ShippingRateIn(BaseModel):
    parish: str = Field(..., min_length=1)
    city_town: Optional[str] = None
    rate: Decimal = Field(..., ge=0)
    is_default: bool = False

    @field_validator("city_town")
    @classmethod
    def blank_city_is_parish_wide(cls, v: Optional[str]) -> Optional[str]:
        return _city_or_none(v)

class ShippingRatePatch(BaseModel):
    parish: Optional[str] = Field(None, min_length=1)
    city_town: Optional[str] = None
    rate: Optional[Decimal] = Field(None, ge=0)
    is_default: Optional[bool] = None

    @field_validator("city_town")
    @classmethod
    def blank_city_is_parish_wide(cls, v: Optional[str]) -> Optional[str]:
        return _city_or_none(v)

class ShippingRateOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    parish: str
    city_town: Optional[str] = None
    rate: Decimal
    is_default: bool
    created_at: datetime

class ShippingQuoteOut(BaseModel):
    parish: str
    city: Optional[str] = None
    rate: Decimal
