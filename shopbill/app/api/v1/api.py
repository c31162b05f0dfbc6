from fastapi import APIRouter

from shopbill.app.api.v1.endpoints import bills, orders, reports

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(bills.router, prefix="/bills", tags=["bills"])
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
