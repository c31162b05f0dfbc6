"""initial_billing_schema

Revision ID: a7c1e2d3f4b5
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "a7c1e2d3f4b5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(precision=20, scale=4)
JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

ENUM_TYPES = (
    "orderstatus",
    "orderpaymentstatus",
    "paymentstatus",
    "itemkind",
    "itemtag",
)


def upgrade() -> None:
    # 1. Catalog references
    op.create_table(
        "products",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("business_id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_ml", sa.String(255), nullable=True),
        sa.Column("sku", sa.String(100), nullable=True),
        sa.Column("unit", sa.String(50), nullable=True),
        sa.Column("price", MONEY, nullable=False),
        sa.Column("mrp", MONEY, nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("price >= 0", name="ck_product_price_non_negative"),
    )
    op.create_index("ix_products_shop", "products", ["shop_id"])
    op.create_index("ix_products_name", "products", ["name"])

    op.create_table(
        "services",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("business_id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_ml", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", MONEY, nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("price >= 0", name="ck_service_price_non_negative"),
    )
    op.create_index("ix_services_shop", "services", ["shop_id"])

    op.create_table(
        "customers",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("business_id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_ml", sa.String(255), nullable=True),
        sa.Column("phone_number", sa.String(50), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("gstin", sa.String(20), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_customers_business", "customers", ["business_id"])
    op.create_index("ix_customers_name", "customers", ["name"])
    op.create_index("ix_customers_phone", "customers", ["phone_number"])

    # 2. Storefront orders
    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("business_id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=True),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("customer_address", sa.Text(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("PENDING", "CONFIRMED", "COMPLETED", "CANCELLED", name="orderstatus"),
            nullable=False,
        ),
        sa.Column(
            "payment_status",
            sa.Enum("PAID", "UNPAID", name="orderpaymentstatus"),
            nullable=False,
        ),
        sa.Column("total_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_orders_shop", "orders", ["shop_id"])
    op.create_index("ix_orders_status", "orders", ["status"])

    op.create_table(
        "order_items",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("order_id", sa.Uuid(), sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", MONEY, nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("quantity > 0", name="ck_order_item_quantity_positive"),
    )
    op.create_index("ix_order_items_order", "order_items", ["order_id"])

    # 3. Bills, frozen items and the payment ledger
    op.create_table(
        "bills",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("business_id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("bill_number", sa.String(50), nullable=False, unique=True),
        sa.Column("customer_id", sa.Uuid(), sa.ForeignKey("customers.id"), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_phone", sa.String(50), nullable=True),
        sa.Column("customer_address", sa.Text(), nullable=True),
        sa.Column("subtotal", MONEY, nullable=False),
        sa.Column("discount", MONEY, nullable=False, server_default="0"),
        sa.Column("total", MONEY, nullable=False),
        sa.Column(
            "payment_status",
            sa.Enum("PAID", "UNPAID", "PARTIAL", name="paymentstatus"),
            nullable=False,
        ),
        sa.Column("paid_amount", MONEY, nullable=False, server_default="0"),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source_order_id", sa.Uuid(), sa.ForeignKey("orders.id"), nullable=True),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("subtotal >= 0", name="ck_bill_subtotal_non_negative"),
        sa.CheckConstraint("discount >= 0", name="ck_bill_discount_non_negative"),
        sa.CheckConstraint("total >= 0", name="ck_bill_total_non_negative"),
        sa.CheckConstraint("paid_amount >= 0", name="ck_bill_paid_non_negative"),
    )
    op.create_index("ix_bills_shop", "bills", ["shop_id"])
    op.create_index("ix_bills_issued_at", "bills", ["issued_at"])
    op.create_index("ix_bills_payment_status", "bills", ["payment_status"])
    op.create_index("ix_bills_source_order", "bills", ["source_order_id"])

    op.create_table(
        "bill_items",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("bill_id", sa.Uuid(), sa.ForeignKey("bills.id"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "kind",
            sa.Enum("PRODUCT", "SERVICE", name="itemkind"),
            nullable=False,
        ),
        sa.Column("product_id", sa.Uuid(), sa.ForeignKey("products.id"), nullable=True),
        sa.Column("service_id", sa.Uuid(), sa.ForeignKey("services.id"), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_ml", sa.String(255), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("price", MONEY, nullable=False),
        sa.Column("list_price", MONEY, nullable=False),
        sa.Column(
            "tag",
            sa.Enum("FREE", "SAMPLE", "OTHER", "NONE", name="itemtag"),
            nullable=False,
            server_default="NONE",
        ),
        sa.CheckConstraint("quantity > 0", name="ck_bill_item_quantity_positive"),
        sa.CheckConstraint("price >= 0", name="ck_bill_item_price_non_negative"),
        sa.CheckConstraint(
            "(product_id IS NULL) <> (service_id IS NULL)",
            name="ck_bill_item_single_reference",
        ),
    )
    op.create_index("ix_bill_items_bill", "bill_items", ["bill_id"])

    op.create_table(
        "bill_transactions",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("bill_id", sa.Uuid(), sa.ForeignKey("bills.id"), nullable=False),
        sa.Column("business_id", sa.Uuid(), nullable=False),
        sa.Column("shop_id", sa.Uuid(), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("payment_method", sa.String(50), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("recorded_by", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("amount > 0", name="ck_bill_transaction_amount_positive"),
    )
    op.create_index("ix_bill_transactions_bill", "bill_transactions", ["bill_id"])
    op.create_index("ix_bill_transactions_recorded_at", "bill_transactions", ["recorded_at"])

    # 4. Audit trail
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False, primary_key=True),
        sa.Column("table_name", sa.String(100), nullable=False),
        sa.Column("record_id", sa.String(255), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("changed_by", sa.Uuid(), nullable=True),
        sa.Column("old_values", JSON, nullable=True),
        sa.Column("new_values", JSON, nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_audit_table_record", "audit_logs", ["table_name", "record_id"])
    op.create_index("ix_audit_created_at", "audit_logs", ["created_at"])
    op.create_index("ix_audit_action", "audit_logs", ["action"])
    op.create_index("ix_audit_changed_by", "audit_logs", ["changed_by"])


def downgrade() -> None:
    for table in (
        "audit_logs",
        "bill_transactions",
        "bill_items",
        "bills",
        "order_items",
        "orders",
        "customers",
        "services",
        "products",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in ENUM_TYPES:
            postgresql.ENUM(name=name).drop(bind, checkfirst=True)
