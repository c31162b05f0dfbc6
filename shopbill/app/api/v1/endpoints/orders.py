from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from shopbill.app.api.deps import get_current_operator, get_shop_context
from shopbill.app.core.database import get_db
from shopbill.app.core.exceptions import NotFoundError, PersistenceError, ValidationError
from shopbill.app.schemas.bill import BillOut, OrderBillRequest, OrderDraftOut
from shopbill.app.services.checkout import ShopContext
from shopbill.app.services.order_conversion import (
    apply_draft_edits,
    convert_order_to_bill,
    draft_to_dict,
    open_order_draft,
)

router = APIRouter()


@router.get("/{order_id}/bill-draft", response_model=OrderDraftOut)
def get_bill_draft(
    order_id: UUID,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
    context: ShopContext | None = Depends(get_shop_context),
) -> dict:
    try:
        draft = open_order_draft(db, order_id, context.shop_id if context else None)
        return draft_to_dict(draft)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/{order_id}/bill", response_model=BillOut, status_code=status.HTTP_201_CREATED)
def bill_order(
    order_id: UUID,
    payload: OrderBillRequest,
    request: Request,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
    context: ShopContext | None = Depends(get_shop_context),
) -> dict:
    try:
        draft = open_order_draft(db, order_id, context.shop_id if context else None)
        if payload.items is not None:
            apply_draft_edits(db, draft, payload.items)
        return convert_order_to_bill(
            db,
            draft,
            operator_id=operator_id,
            discount=payload.discount,
            payment_status=payload.payment_status,
            paid_amount_input=payload.paid_amount,
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
            detail="Converting the order failed; nothing was saved",
        )
