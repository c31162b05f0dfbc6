from __future__ import annotations

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shopbill.app.core.database import Base


class PaymentStatus(str, enum.Enum):
    PAID = "PAID"
    UNPAID = "UNPAID"
    PARTIAL = "PARTIAL"


class ItemKind(str, enum.Enum):
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"


class ItemTag(str, enum.Enum):
    FREE = "FREE"
    SAMPLE = "SAMPLE"
    OTHER = "OTHER"
    NONE = "NONE"

    @property
    def forces_zero_price(self) -> bool:
        return self in (ItemTag.FREE, ItemTag.SAMPLE)

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Bill(Base):
    __tablename__ = "bills"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    shop_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    bill_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("customers.id"), nullable=True
    )
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    subtotal: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    total: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), nullable=False, default=PaymentStatus.UNPAID
    )
    # Denormalised running total of the ledger; only written together with it.
    paid_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False, default=Decimal("0")
    )
    issued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    source_order_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("orders.id"), nullable=True
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    items: Mapped[list[BillItem]] = relationship(
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillItem.position",
    )
    transactions: Mapped[list[BillTransaction]] = relationship(
        back_populates="bill",
        order_by="BillTransaction.recorded_at",
    )

    __table_args__ = (
        CheckConstraint("subtotal >= 0", name="ck_bill_subtotal_non_negative"),
        CheckConstraint("discount >= 0", name="ck_bill_discount_non_negative"),
        CheckConstraint("total >= 0", name="ck_bill_total_non_negative"),
        CheckConstraint("paid_amount >= 0", name="ck_bill_paid_non_negative"),
        Index("ix_bills_shop", "shop_id"),
        Index("ix_bills_issued_at", "issued_at"),
        Index("ix_bills_payment_status", "payment_status"),
        Index("ix_bills_source_order", "source_order_id"),
    )


class BillItem(Base):
    """Frozen snapshot of one cart line at commit time."""

    __tablename__ = "bill_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    bill_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bills.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    kind: Mapped[ItemKind] = mapped_column(Enum(ItemKind), nullable=False)
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("products.id"), nullable=True
    )
    service_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("services.id"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_ml: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    # Catalog/order price the line started from; restored when a tag is cleared.
    list_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    tag: Mapped[ItemTag] = mapped_column(
        Enum(ItemTag), nullable=False, default=ItemTag.NONE
    )

    bill: Mapped[Bill] = relationship(back_populates="items")

    @property
    def reference_id(self) -> uuid.UUID:
        return self.product_id if self.kind == ItemKind.PRODUCT else self.service_id

    @property
    def line_total(self) -> Decimal:
        return Decimal(str(self.price)) * self.quantity

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_bill_item_quantity_positive"),
        CheckConstraint("price >= 0", name="ck_bill_item_price_non_negative"),
        CheckConstraint(
            "(product_id IS NULL) <> (service_id IS NULL)",
            name="ck_bill_item_single_reference",
        ),
        Index("ix_bill_items_bill", "bill_id"),
    )


class BillTransaction(Base):
    """One payment event against a bill. Rows are only ever inserted."""

    __tablename__ = "bill_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    bill_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bills.id"), nullable=False
    )
    business_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    shop_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=20, scale=4), nullable=False
    )
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    recorded_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    bill: Mapped[Bill] = relationship(back_populates="transactions")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_bill_transaction_amount_positive"),
        Index("ix_bill_transactions_bill", "bill_id"),
        Index("ix_bill_transactions_recorded_at", "recorded_at"),
    )
