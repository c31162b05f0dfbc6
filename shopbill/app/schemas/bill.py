from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from shopbill.app.models.bill import ItemKind, ItemTag


# ─── Request ──────────────────────────────────────────────────────────────────


class CartLineIn(BaseModel):
    kind: ItemKind = ItemKind.PRODUCT
    reference_id: UUID
    quantity: int = 1
    unit_price: Decimal | None = None
    tag: ItemTag = ItemTag.NONE

    @field_validator("quantity")
    @classmethod
    def quantity_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Quantity must be greater than zero")
        return v

    @field_validator("kind", "tag", mode="before")
    @classmethod
    def upper_case(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v


class CustomerIn(BaseModel):
    customer_id: UUID | None = None
    name: str | None = None
    phone: str | None = None
    address: str | None = None


class BillCommitRequest(BaseModel):
    """Body for both creating a bill and replacing an existing bill's items.

    Amounts and the payment status are passed through as given and checked by
    the checkout engine, so an empty cart is reported before a bad amount.
    Leaving ``payment_status`` out creates an unpaid bill, or keeps an edited
    bill's current paid amount.
    """

    items: list[CartLineIn] = Field(default_factory=list)
    customer: CustomerIn | None = None
    discount: Decimal | str | None = Decimal("0")
    payment_status: str | None = None
    paid_amount: Decimal | str | None = None
    payment_method: str | None = None


class PaymentCreate(BaseModel):
    amount: Decimal | str | None = None
    payment_method: str | None = None
    note: str | None = None


class OrderBillRequest(BaseModel):
    """Operator edits applied to an order before it is billed.

    ``items`` is the final line list; omit it to bill the order as placed.
    """

    items: list[CartLineIn] | None = None
    discount: Decimal | str | None = Decimal("0")
    payment_status: str | None = None
    paid_amount: Decimal | str | None = None
    payment_method: str | None = None


# ─── Response ─────────────────────────────────────────────────────────────────


class BillItemOut(BaseModel):
    id: str
    kind: str
    reference_id: str
    name: str
    display_name: str
    name_ml: str | None
    quantity: int
    unit_price: str
    list_price: str
    tag: str
    line_total: str


class BillTransactionOut(BaseModel):
    id: str
    bill_id: str
    amount: str
    payment_method: str
    note: str | None
    recorded_at: str | None
    recorded_by: str | None


class BillOut(BaseModel):
    id: str
    bill_number: str
    business_id: str
    shop_id: str
    customer_id: str | None
    customer_name: str
    customer_phone: str | None
    customer_address: str | None
    subtotal: str
    discount: str
    total: str
    total_display: str
    payment_status: str
    paid_amount: str
    balance_due: str
    issued_at: str | None
    updated_at: str | None
    source_order_id: str | None
    items: list[BillItemOut]
    transactions: list[BillTransactionOut]


class BillDetailOut(BillOut):
    ledger_total: str


class BillListOut(BaseModel):
    id: str
    bill_number: str
    customer_name: str
    total: str
    paid_amount: str
    payment_status: str
    issued_at: str | None
    item_count: int
    source_order_id: str | None


class PaymentRecordedOut(BaseModel):
    payment: BillTransactionOut
    bill: BillOut


class StatusSummaryOut(BaseModel):
    bill_count: int
    total_billed: str
    total_collected: str
    outstanding: str


class DraftLineOut(BaseModel):
    kind: str
    reference_id: str
    name: str
    display_name: str
    quantity: int
    price: str
    edit_price: str
    tag: str
    line_total: str


class OrderDraftOut(BaseModel):
    order_id: str
    customer_name: str | None
    customer_phone: str | None
    customer_address: str | None
    payment_status: str
    subtotal: str
    items: list[DraftLineOut]
