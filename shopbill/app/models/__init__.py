"""Import every model so ``Base.metadata`` knows all tables."""

from shopbill.app.models.audit import AuditLog
from shopbill.app.models.bill import (
    Bill,
    BillItem,
    BillTransaction,
    ItemKind,
    ItemTag,
    PaymentStatus,
)
from shopbill.app.models.catalog import Product, Service
from shopbill.app.models.customer import Customer
from shopbill.app.models.order import Order, OrderItem, OrderPaymentStatus, OrderStatus

__all__ = [
    "AuditLog",
    "Bill",
    "BillItem",
    "BillTransaction",
    "Customer",
    "ItemKind",
    "ItemTag",
    "Order",
    "OrderItem",
    "OrderPaymentStatus",
    "OrderStatus",
    "PaymentStatus",
    "Product",
    "Service",
]
