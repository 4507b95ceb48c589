"""
Checkout DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.types import condecimal


class PaymentDetails(BaseModel):
    """Instrument credentials supplied by the caller; omitted fields fall back to configuration."""

    model_config = ConfigDict(extra="forbid")

    card_number: Optional[str] = None
    card_holder: Optional[str] = None
    expiry_date: Optional[str] = None
    cvv: Optional[str] = None
    paypal_email: Optional[str] = None
    paypal_password: Optional[str] = None
    wallet_address: Optional[str] = None
    crypto_type: Optional[str] = None


class SplitPartOption(BaseModel):
    payment_method: str
    amount: condecimal(gt=0, decimal_places=2)  # type: ignore[valid-type]
    payment_details: Optional[PaymentDetails] = None

    @field_validator("payment_method")
    @classmethod
    def _normalize_method(cls, v: str) -> str:
        return (v or "").strip().lower()


class CheckoutOptions(BaseModel):
    payment_method: str = "credit_card"
    payment_strategy: str = "instant"
    decorators: list[str] = Field(default_factory=list)
    discount_code: Optional[str] = None
    loyalty_points: int = Field(default=0, ge=0)
    installments: Optional[int] = Field(default=None, ge=2, le=12)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0)
    payment_details: Optional[PaymentDetails] = None
    split_parts: list[SplitPartOption] = Field(default_factory=list, max_length=5)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("payment_method", "payment_strategy")
    @classmethod
    def _normalize_name(cls, v: str) -> str:
        return (v or "").strip().lower()

    @field_validator("decorators")
    @classmethod
    def _normalize_decorators(cls, v: list[str]) -> list[str]:
        return [name.strip().lower() for name in v if name and name.strip()]


class DebitRequest(BaseModel):
    """Pay the cart total from an external balance held in another currency."""

    balance: condecimal(ge=0)  # type: ignore[valid-type]
    balance_currency: str = Field(default="KZT", min_length=3, max_length=3)
    cart_currency: str = Field(default="USD", min_length=3, max_length=3)

    @field_validator("balance_currency", "cart_currency")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.upper()


class DebitResult(BaseModel):
    customer_id: str
    cart_total: Decimal
    cart_currency: str
    converted_total: Decimal
    balance_currency: str
    balance_before: Decimal
    balance_after: Decimal
