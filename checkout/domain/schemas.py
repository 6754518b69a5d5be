# checkout/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Literal
from decimal import Decimal
from datetime import datetime

from checkout.utils.settings import DEFAULT_PAYMENT_METHOD


class ContactIn(BaseModel):
    """Dane kontaktowe do zamowienia (wszystkie opcjonalne)."""

    name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = Field(None, min_length=7, max_length=20)
    email: str | None = Field(None, max_length=254, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AddressIn(BaseModel):
    """Adres dostawy; kompletnosc sprawdza serwis, nie schema."""

    line1: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


class CheckoutIn(BaseModel):
    """Request checkoutu. user_id przychodzi z warstwy auth."""

    store_id: int | None = Field(None, gt=0)
    payment_method: str = DEFAULT_PAYMENT_METHOD
    contact: ContactIn | None = None
    idempotency_key: str | None = Field(None, min_length=1, max_length=128)
    delivery_method: Literal["pickup", "delivery"] = "pickup"
    delivery_address: AddressIn | None = None
    notes: str | None = Field(None, max_length=500)


class OrderItemOut(BaseModel):
    id: int
    name: str
    quantity: int
    price: Decimal


class OrderOut(BaseModel):
    """Projekcja zamowienia dla klienta."""

    id: int
    created_at: datetime
    status: str
    store: str
    payment_method: str
    delivery_method: str
    delivery_address: dict | None = None
    items: List[OrderItemOut]
    subtotal: Decimal
    taxes: Decimal
    fees: Decimal
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


class CheckoutOut(BaseModel):
    order: OrderOut
    idempotent: bool = False


class OrderListOut(BaseModel):
    orders: List[OrderOut]
    page: int
    limit: int
    next_page: int | None = None


class OrderStatusIn(BaseModel):
    status: Literal["CONFIRMED", "READY", "COMPLETED", "CANCELLED"]


class CartItemOut(BaseModel):
    """Schema dla produktu w koszyku (response)."""

    product_id: int
    variant_id: int | None = None
    quantity: int
    price: Decimal


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    cart_id: int | None = None
    user_id: int
    store_id: int | None = None
    status: str | None = None
    items: List[CartItemOut]
    total: Decimal
