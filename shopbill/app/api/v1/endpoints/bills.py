from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from shopbill.app.api.deps import get_current_operator, get_shop_context, require_shop_context
from shopbill.app.core.database import get_db
from shopbill.app.core.exceptions import NotFoundError, PersistenceError, ValidationError
from shopbill.app.schemas.bill import (
    BillCommitRequest,
    BillDetailOut,
    BillListOut,
    BillOut,
    BillTransactionOut,
    PaymentCreate,
    PaymentRecordedOut,
)
from shopbill.app.services.bills import get_bill, list_bills, list_payments, load_bill, record_payment
from shopbill.app.services.cart import Cart
from shopbill.app.services.checkout import CustomerDetails, ShopContext, build_cart, commit

router = APIRouter()


def _customer(payload: BillCommitRequest) -> CustomerDetails | None:
    if payload.customer is None:
        return None
    return CustomerDetails(**payload.customer.model_dump())


@router.post("", response_model=BillOut, status_code=status.HTTP_201_CREATED)
def create_bill(
    payload: BillCommitRequest,
    request: Request,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
    context: ShopContext | None = Depends(get_shop_context),
) -> dict:
    try:
        if context is None and payload.items:
            raise ValidationError("Select a business and shop before billing")
        # An empty body still goes through commit so the empty cart is reported first
        cart = build_cart(db, payload.items, context.shop_id) if context else Cart()
        return commit(
            db,
            cart,
            context=context,
            operator_id=operator_id,
            discount=payload.discount,
            payment_status=payload.payment_status,
            paid_amount_input=payload.paid_amount,
            customer=_customer(payload),
            payment_method=payload.payment_method,
            ip_address=request.client.host if request.client else None,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PersistenceError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Checkout failed; the bill was not saved",
        )


@router.put("/{bill_id}", response_model=BillOut)
def edit_bill(
    bill_id: UUID,
    payload: BillCommitRequest,
    request: Request,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
    context: ShopContext = Depends(require_shop_context),
) -> dict:
    try:
        existing = load_bill(db, bill_id, context.shop_id)
        cart = build_cart(db, payload.items, context.shop_id, reference=Cart.from_bill(existing))
        return commit(
            db,
            cart,
            context=context,
            operator_id=operator_id,
            discount=payload.discount,
            payment_status=payload.payment_status,
            paid_amount_input=payload.paid_amount,
            editing_bill_id=bill_id,
            customer=_customer(payload),
            payment_method=payload.payment_method,
            ip_address=request.client.host if request.client else None,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PersistenceError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Saving the bill failed; no changes were made",
        )


@router.get("", response_model=list[BillListOut])
def get_bills(
    payment_status: str | None = Query(None),
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
    context: ShopContext = Depends(require_shop_context),
) -> list[dict]:
    try:
        return list_bills(db, context.shop_id, payment_status=payment_status)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("/{bill_id}", response_model=BillDetailOut)
def get_single_bill(
    bill_id: UUID,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
    context: ShopContext | None = Depends(get_shop_context),
) -> dict:
    try:
        return get_bill(db, bill_id, context.shop_id if context else None)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post(
    "/{bill_id}/payments",
    response_model=PaymentRecordedOut,
    status_code=status.HTTP_201_CREATED,
)
def add_payment(
    bill_id: UUID,
    payload: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
    context: ShopContext | None = Depends(get_shop_context),
) -> dict:
    try:
        return record_payment(
            db,
            bill_id,
            amount=payload.amount,
            operator_id=operator_id,
            method=payload.payment_method,
            note=payload.note,
            shop_id=context.shop_id if context else None,
            ip_address=request.client.host if request.client else None,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PersistenceError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to add payment",
        )


@router.get("/{bill_id}/payments", response_model=list[BillTransactionOut])
def get_payments(
    bill_id: UUID,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
    context: ShopContext | None = Depends(get_shop_context),
) -> list[dict]:
    try:
        return list_payments(db, bill_id, context.shop_id if context else None)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
