"""Commit a cart as a bill.

Validates the cart and payment intent, then writes the bill header, its item
snapshot, ledger entries and an audit row in one transaction. Nothing is
written unless every check passes, and a database failure rolls back the
whole unit.

Payment status resolution:

    PAID     paid_amount = total (operator input ignored)
    UNPAID   paid_amount = 0     (operator input ignored)
    PARTIAL  paid_amount = input, which must be a number in [0, total];
             0 is stored as UNPAID and exactly ``total`` as PAID

``paid_amount`` always equals the sum of the bill's ledger entries.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from shopbill.app.core.config import settings
from shopbill.app.core.exceptions import NotFoundError, ValidationError
from shopbill.app.models.bill import (
    Bill,
    BillItem,
    BillTransaction,
    ItemKind,
    PaymentStatus,
)
from shopbill.app.models.catalog import Product, Service
from shopbill.app.models.customer import Customer
from shopbill.app.schemas.bill import CartLineIn
from shopbill.app.services.audit import log_action
from shopbill.app.services.bills import (
    bill_to_dict,
    coerce_payment_status,
    get_ledger_total,
    load_bill,
)
from shopbill.app.services.cart import Cart
from shopbill.app.services.money import ZERO, parse_amount, to_money, total_after_discount
from shopbill.app.services.transaction import atomic

logger = logging.getLogger(__name__)

INITIAL_PAYMENT_NOTE = "Initial payment"
EDIT_ADJUSTMENT_NOTE = "Adjusted on edit"


@dataclass(frozen=True)
class ShopContext:
    business_id: UUID
    shop_id: UUID


@dataclass(frozen=True)
class CustomerDetails:
    customer_id: UUID | None = None
    name: str | None = None
    phone: str | None = None
    address: str | None = None


@dataclass(frozen=True)
class PaymentIntent:
    status: PaymentStatus
    paid_amount: Decimal


def generate_bill_number(now: datetime, prefix: str = "") -> str:
    """Timestamp-derived bill number, e.g. ``20260115-143205``.

    Uniqueness relies on the timestamp; a second commit in the same second
    collides with the unique index and fails as a PersistenceError.
    """
    return f"{prefix}{now:%Y%m%d-%H%M%S}"


def resolve_payment(
    payment_status: PaymentStatus | str,
    paid_amount_input: object,
    total: Decimal,
) -> PaymentIntent:
    status = coerce_payment_status(payment_status)
    if status == PaymentStatus.PAID:
        return PaymentIntent(PaymentStatus.PAID, total)
    if status == PaymentStatus.UNPAID:
        return PaymentIntent(PaymentStatus.UNPAID, ZERO)

    amount = parse_amount(paid_amount_input)
    if amount is None or amount < 0 or amount > total:
        raise ValidationError("Please enter a valid partial amount (less than total)")
    amount = to_money(amount)
    if amount == ZERO:
        return PaymentIntent(PaymentStatus.UNPAID, ZERO)
    if amount == total:
        return PaymentIntent(PaymentStatus.PAID, total)
    return PaymentIntent(PaymentStatus.PARTIAL, amount)


def _parse_discount(raw: object) -> Decimal:
    if raw is None:
        return ZERO
    discount = parse_amount(raw)
    if discount is None or discount < 0:
        raise ValidationError("Discount must be a non-negative amount")
    return to_money(discount)


def _resolve_customer(
    db: Session,
    customer: CustomerDetails,
    business_id: UUID,
) -> tuple[UUID | None, str, str | None, str | None]:
    name, phone, address = customer.name, customer.phone, customer.address
    if customer.customer_id:
        record = db.query(Customer).filter(Customer.id == customer.customer_id).first()
        if not record or record.business_id != business_id:
            raise NotFoundError("Customer not found")
        name = name or record.name
        phone = phone or record.phone_number
        address = address or record.address
    name = (name or "").strip() or settings.WALK_IN_CUSTOMER_NAME
    return customer.customer_id, name, phone, address


def build_cart(
    db: Session,
    lines: Sequence[CartLineIn],
    shop_id: UUID,
    reference: Cart | None = None,
) -> Cart:
    """Build a cart from an operator's final line list.

    Lines already present in ``reference`` keep that cart's add-time price;
    anything else is looked up in the shop's catalog at its current price.
    """
    cart = Cart()
    for wanted in lines:
        known = reference.get(wanted.kind, wanted.reference_id) if reference else None
        if known:
            line = cart.add_line(
                known.kind,
                known.reference_id,
                known.name,
                known.list_price,
                quantity=wanted.quantity,
                name_ml=known.name_ml,
            )
        else:
            model = Product if wanted.kind == ItemKind.PRODUCT else Service
            entry = db.query(model).filter(model.id == wanted.reference_id).first()
            if not entry or entry.shop_id != shop_id:
                raise NotFoundError(f"{wanted.kind.value.capitalize()} {wanted.reference_id} not found")
            line = cart.add_line(
                wanted.kind,
                entry.id,
                entry.name,
                Decimal(str(entry.price)),
                quantity=wanted.quantity,
                name_ml=entry.name_ml,
            )
        line.apply_tag(wanted.tag)
        if wanted.unit_price is not None:
            line.apply_price(wanted.unit_price)
    return cart


def _write_items(db: Session, bill: Bill, cart: Cart) -> None:
    for position, line in enumerate(cart):
        db.add(BillItem(
            bill_id=bill.id,
            position=position,
            kind=line.kind,
            product_id=line.reference_id if line.kind == ItemKind.PRODUCT else None,
            service_id=line.reference_id if line.kind == ItemKind.SERVICE else None,
            name=line.name,
            name_ml=line.name_ml,
            quantity=line.quantity,
            price=to_money(line.unit_price),
            list_price=to_money(line.list_price),
            tag=line.tag,
        ))


def _audit_values(bill: Bill, item_count: int) -> dict:
    return {
        "bill_number": bill.bill_number,
        "customer_name": bill.customer_name,
        "item_count": item_count,
        "subtotal": str(to_money(bill.subtotal)),
        "discount": str(to_money(bill.discount)),
        "total": str(to_money(bill.total)),
        "payment_status": bill.payment_status.value,
        "paid_amount": str(to_money(bill.paid_amount)),
        "source_order_id": str(bill.source_order_id) if bill.source_order_id else None,
    }


def stage_bill(
    db: Session,
    cart: Cart,
    *,
    context: ShopContext | None,
    operator_id: UUID | None,
    discount: object = ZERO,
    payment_status: PaymentStatus | str | None = None,
    paid_amount_input: object = None,
    editing_bill_id: UUID | None = None,
    customer: CustomerDetails | None = None,
    payment_method: str | None = None,
    source_order_id: UUID | None = None,
    bill_number_prefix: str = "",
    now: datetime | None = None,
    ip_address: str | None = None,
) -> Bill:
    """Validate and stage a bill in the session without committing.

    Callers own the transaction; see ``commit`` and the order converter.
    Without a ``payment_status`` a new bill is unpaid and an edited bill keeps
    the amount already paid on it.
    """
    if len(cart) == 0:
        raise ValidationError("Cart is empty")
    if context is None:
        raise ValidationError("Select a business and shop before billing")

    discount_amount = _parse_discount(discount)
    subtotal = to_money(cart.subtotal())
    total = to_money(total_after_discount(subtotal, discount_amount))
    existing = load_bill(db, editing_bill_id, context.shop_id) if editing_bill_id else None
    if payment_status is None and existing is not None:
        already_paid = to_money(existing.paid_amount)
        if already_paid > total:
            raise ValidationError(
                f"Payments of {already_paid} are already recorded for this bill; "
                "the total cannot be lower"
            )
        payment = resolve_payment(PaymentStatus.PARTIAL, already_paid, total)
    else:
        payment = resolve_payment(
            PaymentStatus.UNPAID if payment_status is None else payment_status,
            paid_amount_input,
            total,
        )

    now = now or datetime.now(timezone.utc)
    method = (payment_method or settings.DEFAULT_PAYMENT_METHOD).strip().lower()

    if existing is None:
        customer_id, name, phone, address = _resolve_customer(
            db, customer or CustomerDetails(), context.business_id
        )
        bill = Bill(
            business_id=context.business_id,
            shop_id=context.shop_id,
            bill_number=generate_bill_number(now, bill_number_prefix),
            customer_id=customer_id,
            customer_name=name,
            customer_phone=phone,
            customer_address=address,
            subtotal=subtotal,
            discount=discount_amount,
            total=total,
            payment_status=payment.status,
            paid_amount=payment.paid_amount,
            issued_at=now,
            source_order_id=source_order_id,
            created_by=operator_id,
        )
        db.add(bill)
        db.flush()

        if payment.paid_amount > ZERO:
            db.add(BillTransaction(
                bill_id=bill.id,
                business_id=bill.business_id,
                shop_id=bill.shop_id,
                amount=payment.paid_amount,
                payment_method=method,
                note=INITIAL_PAYMENT_NOTE,
                recorded_at=now,
                recorded_by=operator_id,
            ))
        _write_items(db, bill, cart)
        action = "BILL_CREATED"
        previous = None
    else:
        bill = existing
        previous = _audit_values(bill, len(bill.items))
        ledger_total = get_ledger_total(db, bill.id)
        if payment.paid_amount < ledger_total:
            raise ValidationError(
                f"Payments of {ledger_total} are already recorded for this bill; "
                "the paid amount cannot be lower"
            )
        if customer is not None:
            customer_id, name, phone, address = _resolve_customer(
                db, customer, bill.business_id
            )
            bill.customer_id = customer_id
            bill.customer_name = name
            bill.customer_phone = phone
            bill.customer_address = address

        bill.subtotal = subtotal
        bill.discount = discount_amount
        bill.total = total
        bill.payment_status = payment.status
        bill.paid_amount = payment.paid_amount
        bill.updated_at = now

        # Replace the snapshot wholesale; the ledger is left alone.
        bill.items.clear()
        db.flush()
        _write_items(db, bill, cart)

        adjustment = payment.paid_amount - ledger_total
        if adjustment > ZERO:
            db.add(BillTransaction(
                bill_id=bill.id,
                business_id=bill.business_id,
                shop_id=bill.shop_id,
                amount=adjustment,
                payment_method=method,
                note=EDIT_ADJUSTMENT_NOTE,
                recorded_at=now,
                recorded_by=operator_id,
            ))
        action = "BILL_UPDATED"

    db.flush()

    log_action(
        db,
        user_id=operator_id,
        action=action,
        resource_type="bills",
        resource_id=bill.bill_number,
        ip_address=ip_address,
        old_values=previous,
        changes=_audit_values(bill, len(cart)),
    )
    return bill


def commit(
    db: Session,
    cart: Cart,
    *,
    context: ShopContext | None,
    operator_id: UUID | None,
    discount: object = ZERO,
    payment_status: PaymentStatus | str | None = None,
    paid_amount_input: object = None,
    editing_bill_id: UUID | None = None,
    customer: CustomerDetails | None = None,
    payment_method: str | None = None,
    now: datetime | None = None,
    ip_address: str | None = None,
) -> dict:
    """Create a bill from ``cart``, or replace the items of ``editing_bill_id``.

    Raises ValidationError or NotFoundError before anything is written, and
    PersistenceError (after rolling back) if the database rejects the write.
    """
    description = f"bill {editing_bill_id}" if editing_bill_id else "new bill"
    with atomic(db, description):
        bill = stage_bill(
            db,
            cart,
            context=context,
            operator_id=operator_id,
            discount=discount,
            payment_status=payment_status,
            paid_amount_input=paid_amount_input,
            editing_bill_id=editing_bill_id,
            customer=customer,
            payment_method=payment_method,
            now=now,
            ip_address=ip_address,
        )

    logger.info(
        "%s bill %s: total=%s paid=%s status=%s",
        "Updated" if editing_bill_id else "Created",
        bill.bill_number, bill.total, bill.paid_amount, bill.payment_status.value,
    )
    return bill_to_dict(bill)
