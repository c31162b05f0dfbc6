"""Bill reads, the payment ledger and the add-payment path."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import desc
from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from shopbill.app.core.config import settings
from shopbill.app.core.exceptions import NotFoundError, ValidationError
from shopbill.app.models.bill import Bill, BillItem, BillTransaction, ItemTag, PaymentStatus
from shopbill.app.services.audit import log_action
from shopbill.app.services.money import ZERO, format_currency, parse_amount, to_money
from shopbill.app.services.transaction import atomic

logger = logging.getLogger(__name__)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat(timespec="seconds") if value else None


def coerce_payment_status(value: PaymentStatus | str) -> PaymentStatus:
    if isinstance(value, PaymentStatus):
        return value
    try:
        return PaymentStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown payment status: {value}")


def load_bill(db: Session, bill_id: UUID, shop_id: UUID | None = None) -> Bill:
    """Fetch a bill, treating one from another shop as missing."""
    bill = db.query(Bill).filter(Bill.id == bill_id).first()
    if not bill or (shop_id is not None and bill.shop_id != shop_id):
        raise NotFoundError("Bill not found")
    return bill


def get_ledger_total(db: Session, bill_id: UUID) -> Decimal:
    """Sum of every payment recorded against a bill."""
    result = (
        db.query(sa_func.coalesce(sa_func.sum(BillTransaction.amount), 0))
        .filter(BillTransaction.bill_id == bill_id)
        .scalar()
    )
    return to_money(result or ZERO)


# ─── Serialisation ──────────────────────────────────────────────────────────


def item_to_dict(item: BillItem) -> dict:
    display = item.name if item.tag == ItemTag.NONE else f"{item.name} ({item.tag.label})"
    return {
        "id": str(item.id),
        "kind": item.kind.value,
        "reference_id": str(item.reference_id),
        "name": item.name,
        "display_name": display,
        "name_ml": item.name_ml,
        "quantity": item.quantity,
        "unit_price": str(to_money(item.price)),
        "list_price": str(to_money(item.list_price)),
        "tag": item.tag.value,
        "line_total": str(to_money(item.line_total)),
    }


def transaction_to_dict(tx: BillTransaction) -> dict:
    return {
        "id": str(tx.id),
        "bill_id": str(tx.bill_id),
        "amount": str(to_money(tx.amount)),
        "payment_method": tx.payment_method,
        "note": tx.note,
        "recorded_at": _iso(tx.recorded_at),
        "recorded_by": str(tx.recorded_by) if tx.recorded_by else None,
    }


def bill_to_dict(bill: Bill) -> dict:
    total = to_money(bill.total)
    paid = to_money(bill.paid_amount)
    return {
        "id": str(bill.id),
        "bill_number": bill.bill_number,
        "business_id": str(bill.business_id),
        "shop_id": str(bill.shop_id),
        "customer_id": str(bill.customer_id) if bill.customer_id else None,
        "customer_name": bill.customer_name,
        "customer_phone": bill.customer_phone,
        "customer_address": bill.customer_address,
        "subtotal": str(to_money(bill.subtotal)),
        "discount": str(to_money(bill.discount)),
        "total": str(total),
        "total_display": format_currency(total),
        "payment_status": bill.payment_status.value,
        "paid_amount": str(paid),
        "balance_due": str(total - paid),
        "issued_at": _iso(bill.issued_at),
        "updated_at": _iso(bill.updated_at),
        "source_order_id": str(bill.source_order_id) if bill.source_order_id else None,
        "items": [item_to_dict(i) for i in bill.items],
        "transactions": [transaction_to_dict(t) for t in bill.transactions],
    }


# ─── Reads ──────────────────────────────────────────────────────────────────


def get_bill(db: Session, bill_id: UUID, shop_id: UUID | None = None) -> dict:
    """Full bill detail: header, frozen items and the payment ledger."""
    bill = load_bill(db, bill_id, shop_id)
    out = bill_to_dict(bill)
    out["ledger_total"] = str(get_ledger_total(db, bill.id))
    return out


def list_bills(
    db: Session,
    shop_id: UUID,
    payment_status: PaymentStatus | str | None = None,
) -> list[dict]:
    """Bills of one shop, newest first, optionally filtered by payment status."""
    query = db.query(Bill).filter(Bill.shop_id == shop_id)
    if payment_status:
        query = query.filter(Bill.payment_status == coerce_payment_status(payment_status))

    bills = query.order_by(desc(Bill.issued_at)).all()
    return [
        {
            "id": str(b.id),
            "bill_number": b.bill_number,
            "customer_name": b.customer_name,
            "total": str(to_money(b.total)),
            "paid_amount": str(to_money(b.paid_amount)),
            "payment_status": b.payment_status.value,
            "issued_at": _iso(b.issued_at),
            "item_count": len(b.items),
            "source_order_id": str(b.source_order_id) if b.source_order_id else None,
        }
        for b in bills
    ]


def list_payments(db: Session, bill_id: UUID, shop_id: UUID | None = None) -> list[dict]:
    bill = load_bill(db, bill_id, shop_id)
    txs = (
        db.query(BillTransaction)
        .filter(BillTransaction.bill_id == bill.id)
        .order_by(BillTransaction.recorded_at)
        .all()
    )
    return [transaction_to_dict(t) for t in txs]


def summarize_payment_status(db: Session, shop_id: UUID) -> dict:
    """Per-status bill counts and amounts for the payment-status report."""
    rows = (
        db.query(
            Bill.payment_status,
            sa_func.count(Bill.id),
            sa_func.coalesce(sa_func.sum(Bill.total), 0),
            sa_func.coalesce(sa_func.sum(Bill.paid_amount), 0),
        )
        .filter(Bill.shop_id == shop_id)
        .group_by(Bill.payment_status)
        .all()
    )
    by_status = {row[0]: row for row in rows}

    summary: dict[str, dict] = {}
    for status in PaymentStatus:
        _, count, billed, collected = by_status.get(status, (status, 0, ZERO, ZERO))
        billed = to_money(billed)
        collected = to_money(collected)
        summary[status.value] = {
            "bill_count": count,
            "total_billed": str(billed),
            "total_collected": str(collected),
            "outstanding": str(billed - collected),
        }
    return summary


# ─── Add payment ────────────────────────────────────────────────────────────


def record_payment(
    db: Session,
    bill_id: UUID,
    *,
    amount: object,
    operator_id: UUID | None,
    method: str | None = None,
    note: str | None = None,
    shop_id: UUID | None = None,
    now: datetime | None = None,
    ip_address: str | None = None,
) -> dict:
    """Append one payment to a bill's ledger and update its header.

    The new ``paid_amount`` is derived from the ledger sum, and header and
    ledger row are committed together.
    """
    value = parse_amount(amount)
    if value is None or value <= 0:
        raise ValidationError("Please enter a valid amount")
    value = to_money(value)

    bill = load_bill(db, bill_id, shop_id)
    if bill.payment_status == PaymentStatus.PAID:
        raise ValidationError("Bill is already fully paid")

    total = to_money(bill.total)
    ledger_total = get_ledger_total(db, bill.id)
    balance = total - ledger_total
    if value > balance:
        raise ValidationError(f"Amount exceeds balance due ({balance})")

    now = now or datetime.now(timezone.utc)
    method = (method or settings.DEFAULT_PAYMENT_METHOD).strip().lower()
    new_paid = ledger_total + value
    previous = {
        "paid_amount": str(to_money(bill.paid_amount)),
        "status": bill.payment_status.value,
    }

    with atomic(db, f"payment for bill {bill.bill_number}"):
        tx = BillTransaction(
            bill_id=bill.id,
            business_id=bill.business_id,
            shop_id=bill.shop_id,
            amount=value,
            payment_method=method,
            note=note,
            recorded_at=now,
            recorded_by=operator_id,
        )
        db.add(tx)

        bill.paid_amount = new_paid
        bill.payment_status = PaymentStatus.PAID if new_paid >= total else PaymentStatus.PARTIAL
        bill.updated_at = now

        log_action(
            db,
            user_id=operator_id,
            action="PAYMENT_RECORDED",
            resource_type="bills",
            resource_id=bill.bill_number,
            ip_address=ip_address,
            old_values=previous,
            changes={
                "amount": str(value),
                "payment_method": method,
                "new_total_paid": str(new_paid),
                "status": bill.payment_status.value,
            },
        )

    logger.info(
        "Recorded payment of %s on bill %s (paid %s of %s)",
        value, bill.bill_number, new_paid, total,
    )
    return {
        "payment": transaction_to_dict(tx),
        "bill": bill_to_dict(bill),
    }
