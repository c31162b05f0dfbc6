"""Shared test fixtures.

Each test gets a fresh in-memory SQLite database with every table created, so
services can commit and roll back for real without tests seeing each other.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import shopbill.app.models  # noqa: F401  (registers every table on Base.metadata)
from shopbill.app.core.database import Base, get_db
from shopbill.app.core.security import create_access_token
from shopbill.app.main import app
from shopbill.app.models.catalog import Product, Service
from shopbill.app.models.customer import Customer
from shopbill.app.models.order import Order, OrderItem, OrderPaymentStatus
from shopbill.app.services.checkout import ShopContext


# ─── DB session on a throwaway database ───────────────────────────────────────


@pytest.fixture()
def db() -> Generator[Session, None, None]:
    """Yield a session on a private in-memory database; dropped after the test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()

    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def client(db: Session) -> Generator[TestClient, None, None]:
    """FastAPI TestClient wired to the test session."""

    def _override_get_db() -> Generator[Session, None, None]:
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ─── Operator & shop context ─────────────────────────────────────────────────


@pytest.fixture()
def operator_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture()
def operator_token(operator_id: uuid.UUID) -> str:
    return create_access_token(subject=str(operator_id))


@pytest.fixture()
def context() -> ShopContext:
    return ShopContext(business_id=uuid.uuid4(), shop_id=uuid.uuid4())


@pytest.fixture()
def other_context(context: ShopContext) -> ShopContext:
    """A second shop under the same business."""
    return ShopContext(business_id=context.business_id, shop_id=uuid.uuid4())


def auth(token: str) -> dict[str, str]:
    """Return Authorization header dict."""
    return {"Authorization": f"Bearer {token}"}


def shop_headers(token: str, context: ShopContext) -> dict[str, str]:
    """Authorization plus the selected business/shop headers."""
    return {
        **auth(token),
        "X-Business-Id": str(context.business_id),
        "X-Shop-Id": str(context.shop_id),
    }


# ─── Catalog fixtures ─────────────────────────────────────────────────────────


def _product(db: Session, context: ShopContext, name: str, price: str, **kwargs) -> Product:
    p = Product(
        business_id=context.business_id,
        shop_id=context.shop_id,
        name=name,
        price=Decimal(price),
        **kwargs,
    )
    db.add(p)
    db.commit()
    return p


@pytest.fixture()
def product_a(db: Session, context: ShopContext) -> Product:
    return _product(db, context, "Basmati Rice 5kg", "100.0000", sku="RICE-5", name_ml="ബസ്മതി അരി")


@pytest.fixture()
def product_b(db: Session, context: ShopContext) -> Product:
    return _product(db, context, "Coconut Oil 1L", "50.0000", sku="OIL-1")


@pytest.fixture()
def foreign_product(db: Session, other_context: ShopContext) -> Product:
    """Product that belongs to a different shop."""
    return _product(db, other_context, "Other Shop Soap", "30.0000")


@pytest.fixture()
def service(db: Session, context: ShopContext) -> Service:
    s = Service(
        business_id=context.business_id,
        shop_id=context.shop_id,
        name="Home Delivery",
        price=Decimal("40.0000"),
        duration_minutes=30,
    )
    db.add(s)
    db.commit()
    return s


# ─── Customer fixture ───────────────────────────────────────────────────────


@pytest.fixture()
def customer(db: Session, context: ShopContext) -> Customer:
    c = Customer(
        business_id=context.business_id,
        shop_id=context.shop_id,
        name="Anil Kumar",
        phone_number="9847012345",
        address="MG Road, Kochi",
    )
    db.add(c)
    db.commit()
    return c


# ─── Order fixtures ──────────────────────────────────────────────────────────


def _order(
    db: Session,
    context: ShopContext,
    products: list[tuple[Product, int, str]],
    payment_status: OrderPaymentStatus = OrderPaymentStatus.UNPAID,
) -> Order:
    order = Order(
        business_id=context.business_id,
        shop_id=context.shop_id,
        customer_name="Meera Nair",
        customer_phone="9995551234",
        customer_address="Vyttila, Kochi",
        payment_status=payment_status,
    )
    total = Decimal("0")
    for position, (product, quantity, price) in enumerate(products):
        order.items.append(OrderItem(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            price=Decimal(price),
            position=position,
        ))
        total += Decimal(price) * quantity
    order.total_amount = total
    db.add(order)
    db.commit()
    return order


@pytest.fixture()
def order(db: Session, context: ShopContext, product_a: Product, product_b: Product) -> Order:
    """Unpaid pending order: 2 x product_a at 90 (ordered price) + 1 x product_b at 50."""
    return _order(db, context, [(product_a, 2, "90.0000"), (product_b, 1, "50.0000")])


@pytest.fixture()
def paid_order(db: Session, context: ShopContext, product_a: Product) -> Order:
    return _order(
        db, context, [(product_a, 1, "100.0000")],
        payment_status=OrderPaymentStatus.PAID,
    )
