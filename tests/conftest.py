"""Pytest configuration: in-memory database, seeded parties and an API client."""

import os
from datetime import date
from decimal import Decimal

# Set test database URL BEFORE any imports from realty_contracts
# This ensures the SessionLocal and engine use the test database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from realty_contracts.api.app import app  # noqa: E402
from realty_contracts.models import (  # noqa: E402
    Base,
    MainContractType,
    PaymentStatus,
    Property,
    User,
    UserRole,
)
from realty_contracts.services import get_db  # noqa: E402
from realty_contracts.services.deposit_contract_service import (  # noqa: E402
    DepositContractService,
)
from realty_contracts.services.payment_service import PaymentService  # noqa: E402
from realty_contracts.services.purchase_contract_service import (  # noqa: E402
    PurchaseContractService,
)
from realty_contracts.services.validation_service import (  # noqa: E402
    make_deposit_draft,
    make_purchase_draft,
)

START = date(2026, 1, 15)


@pytest.fixture
def db_engine():
    """Fresh in-memory schema per test."""
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
def db_session(db_engine):
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


def _user(db_session, first_name, last_name, role, **extra) -> User:
    user = User(first_name=first_name, last_name=last_name, role=role, **extra)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def admin(db_session) -> User:
    return _user(db_session, "Alice", "Admin", UserRole.ADMIN, email="alice@agency.test")


@pytest.fixture
def customer(db_session) -> User:
    return _user(db_session, "Carl", "Buyer", UserRole.CUSTOMER, phone="+84 900 000 001")


@pytest.fixture
def owner(db_session) -> User:
    return _user(db_session, "Olga", "Seller", UserRole.OWNER, phone="+84 900 000 002")


@pytest.fixture
def agent(db_session) -> User:
    return _user(db_session, "Andy", "Broker", UserRole.AGENT, employee_code="AG-001")


@pytest.fixture
def listing(db_session, owner) -> Property:
    prop = Property(
        owner_id=owner.id,
        title="Riverside Villa",
        address="12 River Road",
        price=Decimal("2000000000"),
    )
    db_session.add(prop)
    db_session.commit()
    return prop


@pytest.fixture
def deposit_service(db_session) -> DepositContractService:
    return DepositContractService(db_session)


@pytest.fixture
def purchase_service(db_session) -> PurchaseContractService:
    return PurchaseContractService(db_session)


@pytest.fixture
def payment_service(db_session) -> PaymentService:
    return PaymentService(db_session)


@pytest.fixture
def deposit_terms(listing, customer, agent):
    """Keyword arguments for a valid deposit contract draft."""

    def build(**overrides):
        values = {
            "property_id": listing.id,
            "customer_id": customer.id,
            "agent_id": agent.id,
            "main_contract_type": MainContractType.PURCHASE,
            "deposit_amount": 500_000_000,
            "agreed_price": 2_000_000_000,
            "start_date": START,
        }
        values.update(overrides)
        return make_deposit_draft(**values)

    return build


@pytest.fixture
def purchase_terms(listing, customer, agent):
    """Keyword arguments for a valid purchase contract draft."""

    def build(**overrides):
        values = {
            "property_id": listing.id,
            "customer_id": customer.id,
            "agent_id": agent.id,
            "property_value": 2_000_000_000,
            "advance_payment_amount": 200_000_000,
            "commission_amount": 40_000_000,
            "start_date": START,
        }
        values.update(overrides)
        return make_purchase_draft(**values)

    return build


@pytest.fixture
def active_deposit(deposit_service, payment_service, deposit_terms, admin):
    """Factory for a deposit contract taken to ACTIVE through its DEPOSIT payment."""

    def build(**overrides):
        contract = deposit_service.create(deposit_terms(**overrides), admin.id)
        deposit_service.approve(contract.id, admin.id)
        deposit_service.request_payment(contract.id, admin.id)
        payment = next(p for p in contract.payments if p.payment_type.value == "DEPOSIT")
        payment_service.record_settlement(payment.id, PaymentStatus.SUCCESS, actor_id=admin.id)
        return deposit_service.get(contract.id)

    return build


@pytest.fixture
def client(db_session):
    """API client bound to the test session."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
