"""Two sessions on separate connections to one SQLite file.

Each session is a separate caller; the status guard and the schedule must hold
without any help from a shared identity map.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from realty_contracts.models import (
    Base,
    DepositContract,
    DepositContractStatus,
    PaymentType,
)
from realty_contracts.services.audit_service import AuditService
from realty_contracts.services.deposit_contract_service import DepositContractService
from realty_contracts.services.errors import InvalidStateTransitionError, StaleStateError
from realty_contracts.services.purchase_contract_service import PurchaseContractService
from realty_contracts.services.state_machine import compare_and_set_status, deposit_machine

pytestmark = pytest.mark.integration

TODAY = date(2026, 2, 1)


@pytest.fixture
def db_engine(tmp_path):
    """File-backed schema; every session gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'contracts.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def other_session(db_engine):
    session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


class TestCompareAndSetAcrossConnections:
    def test_second_writer_sees_stale_state(
        self, db_session, other_session, deposit_service, deposit_terms
    ):
        contract = deposit_service.create(deposit_terms())

        # Both callers read DRAFT before either writes
        for session in (db_session, other_session):
            status = deposit_machine.read_status(session, DepositContract, contract.id)
            assert status == DepositContractStatus.DRAFT

        compare_and_set_status(
            other_session,
            DepositContract,
            contract.id,
            DepositContractStatus.DRAFT,
            DepositContractStatus.WAITING_OFFICIAL,
        )
        other_session.commit()

        with pytest.raises(StaleStateError):
            compare_and_set_status(
                db_session,
                DepositContract,
                contract.id,
                DepositContractStatus.DRAFT,
                DepositContractStatus.VOIDED,
            )
        db_session.rollback()

        assert (
            deposit_machine.read_status(db_session, DepositContract, contract.id)
            == DepositContractStatus.WAITING_OFFICIAL
        )

    def test_only_one_approval_commits(
        self, db_session, other_session, deposit_service, deposit_terms, admin
    ):
        contract = deposit_service.create(deposit_terms())

        DepositContractService(other_session).approve(contract.id, admin.id)
        with pytest.raises(InvalidStateTransitionError):
            deposit_service.approve(contract.id, admin.id)

        approvals = [
            e
            for e in AuditService.history(db_session, "deposit_contract", contract.id)
            if e.action == "approve"
        ]
        assert len(approvals) == 1
        assert deposit_service.get(contract.id).status == DepositContractStatus.WAITING_OFFICIAL


class TestScheduleUsesCommittedTerms:
    def test_edit_from_another_session_before_approval(
        self, other_session, purchase_service, purchase_terms
    ):
        contract = purchase_service.create(purchase_terms())
        assert contract.advance_payment_amount == Decimal("200000000")

        PurchaseContractService(other_session).update(
            contract.id, {"advance_payment_amount": 300_000_000}
        )

        approved = purchase_service.approve(contract.id, today=TODAY)

        advance = next(p for p in approved.payments if p.payment_type is PaymentType.ADVANCE)
        assert advance.amount == Decimal("300000000")
        full_pay = next(p for p in approved.payments if p.payment_type is PaymentType.FULL_PAY)
        assert full_pay.amount == Decimal("1700000000")
