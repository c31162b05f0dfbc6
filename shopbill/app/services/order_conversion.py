"""Turn a storefront order into a bill.

The operator starts from the order's lines (``open_order_draft``), may change
prices and quantities, tag lines Free/Sample/Other, drop lines or add catalog
products, and then commits. The committed bill keeps a reference to the order
and the order is marked COMPLETED in the same transaction, so either both
changes land or neither does.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from shopbill.app.core.exceptions import NotFoundError, ValidationError
from shopbill.app.models.bill import ItemKind, ItemTag, PaymentStatus
from shopbill.app.models.catalog import Product
from shopbill.app.models.order import Order, OrderPaymentStatus, OrderStatus
from shopbill.app.schemas.bill import CartLineIn
from shopbill.app.services.audit import log_action
from shopbill.app.services.bills import bill_to_dict
from shopbill.app.services.cart import Cart, LineItem
from shopbill.app.services.checkout import (
    CustomerDetails,
    ShopContext,
    build_cart,
    stage_bill,
)
from shopbill.app.services.money import ZERO, to_money
from shopbill.app.services.transaction import atomic

logger = logging.getLogger(__name__)

ORDER_BILL_PREFIX = "ORD-"


@dataclass
class OrderBillDraft:
    order_id: UUID
    business_id: UUID
    shop_id: UUID
    customer_name: str | None
    customer_phone: str | None
    customer_address: str | None
    payment_status: PaymentStatus
    cart: Cart

    def add_product(self, product: Product) -> LineItem:
        if product.shop_id != self.shop_id:
            raise NotFoundError(f"Product {product.id} not found")
        return self.cart.add_item(product, ItemKind.PRODUCT)

    def remove_product(self, product_id: UUID) -> None:
        self.cart.remove_item(ItemKind.PRODUCT, product_id)

    def change_quantity(self, product_id: UUID, delta: int) -> LineItem | None:
        return self.cart.set_quantity(ItemKind.PRODUCT, product_id, delta)

    def change_price(self, index: int, value: object) -> bool:
        return self.cart.set_unit_price(index, value)

    def change_tag(self, index: int, tag: ItemTag | str | None) -> LineItem:
        return self.cart.set_tag(index, tag)

    def subtotal(self) -> Decimal:
        return self.cart.subtotal()


def _load_order(db: Session, order_id: UUID, shop_id: UUID | None = None) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order or (shop_id is not None and order.shop_id != shop_id):
        raise NotFoundError("Order not found")
    return order


def _ensure_billable(order: Order) -> None:
    if order.status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED):
        raise ValidationError(
            f"Order is already {order.status.value.lower()} and cannot be billed"
        )


def open_order_draft(db: Session, order_id: UUID, shop_id: UUID | None = None) -> OrderBillDraft:
    """Seed an editable draft from the order's lines at their ordered prices."""
    order = _load_order(db, order_id, shop_id)
    _ensure_billable(order)

    cart = Cart()
    for item in order.items:
        cart.add_line(
            ItemKind.PRODUCT,
            item.product_id,
            item.product_name,
            Decimal(str(item.price)),
            quantity=item.quantity,
        )

    return OrderBillDraft(
        order_id=order.id,
        business_id=order.business_id,
        shop_id=order.shop_id,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        customer_address=order.customer_address,
        payment_status=(
            PaymentStatus.PAID
            if order.payment_status == OrderPaymentStatus.PAID
            else PaymentStatus.UNPAID
        ),
        cart=cart,
    )


def apply_draft_edits(
    db: Session,
    draft: OrderBillDraft,
    lines: Sequence[CartLineIn],
) -> OrderBillDraft:
    """Replace the draft's lines with the operator's final list.

    Lines that came from the order keep the ordered price as their reference
    price; new products are priced from the catalog. Lines left out are
    dropped from the bill.
    """
    draft.cart = build_cart(db, lines, draft.shop_id, reference=draft.cart)
    return draft


def draft_to_dict(draft: OrderBillDraft) -> dict:
    return {
        "order_id": str(draft.order_id),
        "customer_name": draft.customer_name,
        "customer_phone": draft.customer_phone,
        "customer_address": draft.customer_address,
        "payment_status": draft.payment_status.value,
        "subtotal": str(to_money(draft.subtotal())),
        "items": [
            {
                "kind": line.kind.value,
                "reference_id": str(line.reference_id),
                "name": line.name,
                "display_name": line.display_name,
                "quantity": line.quantity,
                "price": str(to_money(line.list_price)),
                "edit_price": str(to_money(line.unit_price)),
                "tag": line.tag.value,
                "line_total": str(to_money(line.line_total)),
            }
            for line in draft.cart
        ],
    }


def convert_order_to_bill(
    db: Session,
    draft: OrderBillDraft,
    *,
    operator_id: UUID | None,
    discount: object = ZERO,
    payment_status: PaymentStatus | str | None = None,
    paid_amount_input: object = None,
    payment_method: str | None = None,
    now: datetime | None = None,
    ip_address: str | None = None,
) -> dict:
    """Bill the draft and mark its order COMPLETED as a single unit."""
    order = _load_order(db, draft.order_id, draft.shop_id)
    _ensure_billable(order)

    with atomic(db, f"bill for order {order.id}"):
        bill = stage_bill(
            db,
            draft.cart,
            context=ShopContext(order.business_id, order.shop_id),
            operator_id=operator_id,
            discount=discount,
            payment_status=payment_status or draft.payment_status,
            paid_amount_input=paid_amount_input,
            customer=CustomerDetails(
                name=draft.customer_name,
                phone=draft.customer_phone,
                address=draft.customer_address,
            ),
            payment_method=payment_method,
            source_order_id=order.id,
            bill_number_prefix=ORDER_BILL_PREFIX,
            now=now,
            ip_address=ip_address,
        )
        order.status = OrderStatus.COMPLETED

        log_action(
            db,
            user_id=operator_id,
            action="ORDER_CONVERTED",
            resource_type="orders",
            resource_id=str(order.id),
            ip_address=ip_address,
            changes={
                "bill_number": bill.bill_number,
                "bill_id": str(bill.id),
                "status": OrderStatus.COMPLETED.value,
            },
        )

    logger.info("Converted order %s into bill %s", order.id, bill.bill_number)
    return bill_to_dict(bill)
