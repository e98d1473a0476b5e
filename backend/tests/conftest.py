"""
Shared fixtures: in-memory SQLite database, fixed clock, row factories.
"""
import os

# Must be set before complaint_engine.database builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from complaint_engine.database import Base
from complaint_engine.models.db_models import (
    ComplaintDB, ComplaintStatus, OrderDB, PaymentTransactionDB, TenantDB, UserDB, UserRole,
)


NOW = datetime(2026, 3, 10, 12, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def clock():
    return lambda: NOW


# =============================================================================
# ROW FACTORIES
# =============================================================================

@pytest.fixture
def make_user(db):
    def _make(role=UserRole.CLIENT, name=None):
        user = UserDB(
            id=str(uuid4()),
            email=f"{uuid4().hex[:12]}@example.com",
            name=name or role.value.title(),
            role=role,
            created_at=NOW - timedelta(days=30),
        )
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_tenant(db):
    def _make(cook, is_active=True):
        tenant = TenantDB(
            id=str(uuid4()),
            name=f"{cook.name}'s Kitchen",
            slug=f"kitchen-{uuid4().hex[:8]}",
            cook_id=cook.id,
            is_active=is_active,
        )
        db.add(tenant)
        db.commit()
        return tenant
    return _make


@pytest.fixture
def make_order(db):
    def _make(tenant, client, cook, order_number=None, grand_total=Decimal("8500")):
        order = OrderDB(
            id=str(uuid4()),
            order_number=order_number or f"ORD-{uuid4().hex[:6].upper()}",
            tenant_id=tenant.id,
            client_id=client.id,
            cook_id=cook.id,
            grand_total=grand_total,
        )
        db.add(order)
        db.commit()
        return order
    return _make


@pytest.fixture
def make_payment(db):
    def _make(order, amount, status="successful", created_at=None):
        payment = PaymentTransactionDB(
            id=str(uuid4()),
            order_id=order.id,
            status=status,
            amount=Decimal(str(amount)),
            created_at=created_at or NOW - timedelta(days=2),
        )
        db.add(payment)
        db.commit()
        return payment
    return _make


@pytest.fixture
def make_complaint(db):
    def _make(order, status=ComplaintStatus.OPEN, age=timedelta(hours=25), category="food_quality", **columns):
        values = dict(
            id=str(uuid4()),
            order_id=order.id,
            client_id=order.client_id,
            cook_id=order.cook_id,
            tenant_id=order.tenant_id,
            category=category,
            description="The jollof rice was cold and the chicken undercooked.",
            status=status,
            created_at=NOW - age,
            submitted_at=NOW - age,
        )
        values.update(columns)
        complaint = ComplaintDB(**values)
        db.add(complaint)
        db.commit()
        return complaint
    return _make


@pytest.fixture
def marketplace(make_user, make_tenant, make_order, make_payment):
    """One admin, one client, one cook with an active tenant, one paid order (8500)."""
    admin = make_user(UserRole.ADMIN, name="Ada Admin")
    client = make_user(UserRole.CLIENT, name="Chidi Client")
    cook = make_user(UserRole.COOK, name="Kemi Cook")
    tenant = make_tenant(cook)
    order = make_order(tenant, client, cook, order_number="ORD-260001")
    payment = make_payment(order, "8500")
    return SimpleNamespace(
        admin=admin, client=client, cook=cook, tenant=tenant, order=order, payment=payment,
    )
