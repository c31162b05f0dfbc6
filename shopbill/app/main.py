from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shopbill.app.api.v1.api import api_router
from shopbill.app.core.config import settings
from shopbill.app.core.logging import configure_logging

configure_logging()

app = FastAPI(title="Shop Billing & Payment Reconciliation")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=[
        "Authorization",
        "Content-Type",
        "Accept",
        "X-Business-Id",
        "X-Shop-Id",
    ],
)

app.include_router(api_router)
