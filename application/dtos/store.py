"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_serializer

from domain.payment.entity import Receipt, Transaction
from domain.store.entity import Cart


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                return ts.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class AddressDTO(DTOBase):
    street: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    model_config = ConfigDict(from_attributes=True)


class CustomerCreateDTO(DTOBase):
    """客户注册DTO"""
    email: EmailStr = Field(..., description="邮箱地址")
    name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field("", description="手机号，10-15位数字")
    loyalty_points: int = Field(0, ge=0)
    address: AddressDTO = Field(default_factory=AddressDTO)


class CustomerResponseDTO(DTOBase):
    id: str
    email: str
    name: str
    phone: str
    loyalty_points: int
    address: AddressDTO
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductResponseDTO(DTOBase):
    id: str
    name: str
    description: str
    price: Decimal
    sku: str
    stock: int
    category: str

    model_config = ConfigDict(from_attributes=True)


class CartItemDTO(DTOBase):
    product_id: str
    name: str
    sku: str
    price: Decimal
    quantity: int
    line_total: Decimal

    model_config = ConfigDict(from_attributes=True)


class CartResponseDTO(DTOBase):
    id: str
    customer_id: str
    items: list[CartItemDTO]
    item_count: int
    total: Decimal
    updated_at: datetime

    @classmethod
    def from_entity(cls, cart: Cart) -> "CartResponseDTO":
        return cls(
            id=cart.id,
            customer_id=cart.customer_id,
            items=[CartItemDTO.model_validate(item) for item in cart.items],
            item_count=cart.item_count(),
            total=cart.total(),
            updated_at=cart.updated_at,
        )


class AddCartItemDTO(DTOBase):
    product_id: str
    quantity: int = Field(1, gt=0)


class UpdateQuantityDTO(DTOBase):
    """数量为0时移除商品"""
    quantity: int = Field(..., ge=0)


class TransactionResponseDTO(DTOBase):
    id: str
    customer_id: str
    amount: Decimal
    payment_method: str
    status: str
    payment_details: dict[str, Any]
    metadata: dict[str, Any]
    error_message: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, transaction: Transaction) -> "TransactionResponseDTO":
        return cls(
            id=transaction.id,
            customer_id=transaction.customer_id,
            amount=transaction.amount,
            payment_method=transaction.payment_method,
            status=transaction.status.value,
            payment_details=dict(transaction.payment_details),
            metadata=dict(transaction.metadata),
            error_message=transaction.error_message,
            processed_at=transaction.processed_at,
            created_at=transaction.created_at,
            updated_at=transaction.updated_at,
        )


class RefundRequestDTO(DTOBase):
    reason: Optional[str] = Field(None, max_length=500)


class ReceiptItemDTO(DTOBase):
    product_id: str
    name: str
    sku: str
    quantity: int
    unit_price: Decimal
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


class ReceiptResponseDTO(DTOBase):
    id: str
    transaction_id: str
    customer_id: str
    customer_name: str
    customer_email: str
    items: list[ReceiptItemDTO]
    subtotal: Decimal
    discount: Decimal
    loyalty_discount: Decimal
    tax: Decimal
    cashback: Decimal
    total: Decimal
    loyalty_points_earned: int
    payment_method: str
    payment_details: dict[str, Any]
    applied_decorators: list[str]
    created_at: datetime

    @classmethod
    def from_entity(cls, receipt: Receipt) -> "ReceiptResponseDTO":
        return cls(
            id=receipt.id,
            transaction_id=receipt.transaction_id,
            customer_id=receipt.customer_id,
            customer_name=receipt.customer_name,
            customer_email=receipt.customer_email,
            items=[ReceiptItemDTO.model_validate(item) for item in receipt.items],
            subtotal=receipt.subtotal,
            discount=receipt.discount,
            loyalty_discount=receipt.loyalty_discount,
            tax=receipt.tax,
            cashback=receipt.cashback,
            total=receipt.total,
            loyalty_points_earned=receipt.loyalty_points_earned,
            payment_method=receipt.payment_method,
            payment_details=dict(receipt.payment_details),
            applied_decorators=list(receipt.applied_decorators),
            created_at=receipt.created_at,
        )


class MetricsResponseDTO(DTOBase):
    success_count: int
    failure_count: int
    refund_count: int
    success_rate: float
    total_amount: Decimal
    payment_method_counts: dict[str, int]
