from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shopbill.app.api.deps import get_current_operator, require_shop_context
from shopbill.app.core.database import get_db
from shopbill.app.schemas.bill import StatusSummaryOut
from shopbill.app.services.bills import summarize_payment_status
from shopbill.app.services.checkout import ShopContext

router = APIRouter()


@router.get("/payment-status", response_model=dict[str, StatusSummaryOut])
def payment_status_report(
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
    context: ShopContext = Depends(require_shop_context),
) -> dict:
    return summarize_payment_status(db, context.shop_id)
