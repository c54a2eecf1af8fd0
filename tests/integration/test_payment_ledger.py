"""Integration tests for the payment ledger."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from realty_contracts.models import ContractKind, PaymentStatus, PaymentType, Property
from realty_contracts.services.audit_service import AuditService
from realty_contracts.services.errors import (
    InvalidStateTransitionError,
    NotFoundError,
    StaleStateError,
    ValidationError,
    ViolationKind,
)
from realty_contracts.services.payment_service import LedgerState, PaymentFilters
from realty_contracts.services.state_machine import compare_and_set_status

pytestmark = pytest.mark.integration

TODAY = date(2026, 2, 1)


@pytest.fixture
def approved_purchase(purchase_service, purchase_terms):
    contract = purchase_service.create(purchase_terms())
    return purchase_service.approve(contract.id, today=TODAY)


def payment_of(contract, payment_type):
    return next(p for p in contract.payments if p.payment_type is payment_type)


class TestSettlement:
    def test_success_sets_paid_time(self, payment_service, approved_purchase):
        advance = payment_of(approved_purchase, PaymentType.ADVANCE)
        paid = datetime(2026, 2, 2, 9, 30, tzinfo=timezone.utc)

        payment = payment_service.record_settlement(
            advance.id, PaymentStatus.SUCCESS, paid_time=paid, transaction_reference="TX-1"
        )

        assert payment.status == PaymentStatus.SUCCESS
        assert payment.paid_time.replace(tzinfo=None) == paid.replace(tzinfo=None)
        assert payment.transaction_reference == "TX-1"

    def test_failure_leaves_paid_time_empty(self, payment_service, approved_purchase):
        advance = payment_of(approved_purchase, PaymentType.ADVANCE)
        payment = payment_service.record_settlement(
            advance.id, PaymentStatus.FAILED, paid_time=datetime.now(timezone.utc)
        )
        assert payment.status == PaymentStatus.FAILED
        assert payment.paid_time is None

    def test_system_settlement_keeps_provenance(self, payment_service, approved_purchase):
        advance = payment_of(approved_purchase, PaymentType.ADVANCE)
        payment = payment_service.record_settlement(advance.id, PaymentStatus.SUCCESS, system=True)
        assert payment.status == PaymentStatus.SYSTEM_SUCCESS
        assert payment.status.semantic == PaymentStatus.SUCCESS

    def test_system_outcome_implies_system(self, payment_service, approved_purchase):
        advance = payment_of(approved_purchase, PaymentType.ADVANCE)
        payment = payment_service.record_settlement(advance.id, PaymentStatus.SYSTEM_FAILED)
        assert payment.status == PaymentStatus.SYSTEM_FAILED

    def test_settled_payment_cannot_be_settled_again(self, payment_service, approved_purchase):
        advance = payment_of(approved_purchase, PaymentType.ADVANCE)
        payment_service.record_settlement(advance.id, PaymentStatus.SUCCESS)
        with pytest.raises(InvalidStateTransitionError):
            payment_service.record_settlement(advance.id, PaymentStatus.FAILED)

    def test_pending_is_not_an_outcome(self, payment_service, approved_purchase):
        advance = payment_of(approved_purchase, PaymentType.ADVANCE)
        with pytest.raises(InvalidStateTransitionError):
            payment_service.record_settlement(advance.id, PaymentStatus.PENDING)

    def test_unknown_payment(self, payment_service):
        with pytest.raises(NotFoundError):
            payment_service.record_settlement(999, PaymentStatus.SUCCESS)

    def test_settlement_is_audited(self, payment_service, approved_purchase, admin, db_session):
        advance = payment_of(approved_purchase, PaymentType.ADVANCE)
        payment_service.record_settlement(advance.id, PaymentStatus.SUCCESS, actor_id=admin.id)
        entry = AuditService.history(db_session, "payment", advance.id)[-1]
        assert entry.action == "settle"
        assert entry.changes["from"] == "SYSTEM_PENDING"
        assert entry.changes["to"] == "SUCCESS"

    def test_compare_and_set_detects_concurrent_settlement(
        self, db_session, payment_service, approved_purchase
    ):
        from realty_contracts.models import Payment

        advance = payment_of(approved_purchase, PaymentType.ADVANCE)
        payment_service.record_settlement(advance.id, PaymentStatus.SUCCESS)

        with pytest.raises(StaleStateError):
            compare_and_set_status(
                db_session,
                Payment,
                advance.id,
                PaymentStatus.SYSTEM_PENDING,
                PaymentStatus.FAILED,
            )
        db_session.rollback()


class TestManualRecording:
    def test_defaults_parties_to_customer_and_owner(
        self, payment_service, purchase_service, purchase_terms, customer, owner
    ):
        contract = purchase_service.create(purchase_terms())
        payment = payment_service.record_payment(
            ContractKind.PURCHASE,
            contract.id,
            PaymentType.INSTALLMENT,
            "150000000",
            due_date=TODAY,
            installment_number=1,
        )
        assert (payment.payer_id, payment.payee_id) == (customer.id, owner.id)
        assert payment.status == PaymentStatus.PENDING
        assert payment.scheduled is False
        assert payment.contract_kind == ContractKind.PURCHASE

    def test_rejects_non_positive_amount(self, payment_service, approved_purchase):
        with pytest.raises(ValidationError) as exc_info:
            payment_service.record_payment(
                ContractKind.PURCHASE, approved_purchase.id, PaymentType.INSTALLMENT, 0
            )
        assert exc_info.value.code == ViolationKind.NON_POSITIVE_AMOUNT

    @pytest.mark.parametrize("amount", ["1e30", 10**16])
    def test_rejects_amount_beyond_column_precision(
        self, payment_service, approved_purchase, amount
    ):
        with pytest.raises(ValidationError) as exc_info:
            payment_service.record_payment(
                ContractKind.PURCHASE, approved_purchase.id, PaymentType.INSTALLMENT, amount
            )
        assert exc_info.value.code == ViolationKind.INVALID_AMOUNT
        assert exc_info.value.field == "amount"

    def test_rejects_agent_payout_types(self, payment_service, approved_purchase):
        with pytest.raises(ValidationError) as exc_info:
            payment_service.record_payment(
                ContractKind.PURCHASE, approved_purchase.id, PaymentType.SALARY, 10
            )
        assert exc_info.value.field == "paymentType"

    def test_rejects_voided_contract(self, payment_service, purchase_service, approved_purchase, admin):
        purchase_service.void(approved_purchase.id, admin.id)
        with pytest.raises(InvalidStateTransitionError):
            payment_service.record_payment(
                ContractKind.PURCHASE, approved_purchase.id, PaymentType.INSTALLMENT, 10
            )

    def test_unknown_contract(self, payment_service):
        with pytest.raises(NotFoundError):
            payment_service.record_payment(ContractKind.DEPOSIT, 77, PaymentType.DEPOSIT, 10)


class TestAgentPayouts:
    def test_salary(self, payment_service, agent, admin):
        payment = payment_service.create_salary_payment(agent.id, 15_000_000, actor_id=admin.id)
        assert payment.payment_type == PaymentType.SALARY
        assert payment.payee_id == agent.id
        assert payment.contract_kind is None

    def test_bonus(self, payment_service, agent):
        payment = payment_service.create_bonus_payment(agent.id, 5_000_000, notes="Q1 target")
        assert payment.payment_type == PaymentType.BONUS
        assert payment.notes == "Q1 target"

    def test_payee_must_be_agent(self, payment_service, customer):
        with pytest.raises(NotFoundError):
            payment_service.create_salary_payment(customer.id, 1)

    def test_unroundable_payout_amount(self, payment_service, agent):
        with pytest.raises(ValidationError) as exc_info:
            payment_service.create_bonus_payment(agent.id, 1e30)
        assert exc_info.value.code == ViolationKind.INVALID_AMOUNT


class TestReadPath:
    def test_filters_by_contract_and_type(self, payment_service, approved_purchase):
        page = payment_service.list_payments(
            PaymentFilters(
                contract_kind=ContractKind.PURCHASE,
                contract_id=approved_purchase.id,
                payment_types=[PaymentType.ADVANCE, PaymentType.FULL_PAY],
            )
        )
        assert page.total == 2
        assert {p.payment_type for p in page.items} == {PaymentType.ADVANCE, PaymentType.FULL_PAY}

    def test_filters_by_status_payer_and_amount(
        self, payment_service, approved_purchase, owner
    ):
        advance = payment_of(approved_purchase, PaymentType.ADVANCE)
        payment_service.record_settlement(advance.id, PaymentStatus.SUCCESS)

        settled = payment_service.list_payments(PaymentFilters(statuses=[PaymentStatus.SUCCESS]))
        assert [p.id for p in settled.items] == [advance.id]

        by_owner = payment_service.list_payments(PaymentFilters(payer_id=owner.id))
        assert [p.payment_type for p in by_owner.items] == [PaymentType.SERVICE_FEE]

        large = payment_service.list_payments(
            PaymentFilters(amount_min=Decimal("100000000"), amount_max=Decimal("500000000"))
        )
        assert [p.payment_type for p in large.items] == [PaymentType.ADVANCE]

    def test_filters_by_property(
        self, payment_service, approved_purchase, active_deposit, listing, owner, db_session
    ):
        harbour = Property(owner_id=owner.id, title="Harbour Loft")
        db_session.add(harbour)
        db_session.commit()
        active_deposit()
        elsewhere = active_deposit(property_id=harbour.id)

        riverside = payment_service.list_payments(PaymentFilters(property_id=listing.id))
        assert riverside.total == 4
        assert {p.payment_type for p in riverside.items} == {
            PaymentType.DEPOSIT,
            PaymentType.ADVANCE,
            PaymentType.SERVICE_FEE,
            PaymentType.FULL_PAY,
        }

        loft = payment_service.list_payments(PaymentFilters(property_id=harbour.id))
        assert [p.deposit_contract_id for p in loft.items] == [elsewhere.id]

    def test_filters_by_due_date(self, payment_service, approved_purchase):
        page = payment_service.list_payments(
            PaymentFilters(due_date_from=date(2026, 2, 10), due_date_to=date(2026, 3, 31))
        )
        assert [p.payment_type for p in page.items] == [PaymentType.FULL_PAY]

    def test_pages(self, payment_service, approved_purchase):
        page = payment_service.list_payments(PaymentFilters(page=2, size=2))
        assert page.total == 3
        assert page.total_pages == 2
        assert len(page.items) == 1


class TestLedgerSummary:
    def test_no_payments(self, payment_service, purchase_service, purchase_terms):
        contract = purchase_service.create(purchase_terms())
        summary = payment_service.ledger_summary(ContractKind.PURCHASE, contract.id)
        assert summary.state == LedgerState.NONE
        assert summary.total_scheduled == Decimal("0")

    def test_open_ledger_totals(self, payment_service, approved_purchase):
        advance = payment_of(approved_purchase, PaymentType.ADVANCE)
        payment_service.record_settlement(advance.id, PaymentStatus.SUCCESS)

        summary = payment_service.ledger_summary(ContractKind.PURCHASE, approved_purchase.id)

        assert summary.state == LedgerState.OPEN
        assert summary.total_scheduled == Decimal("2040000000")
        assert summary.total_paid == Decimal("200000000")
        assert summary.total_outstanding == Decimal("1840000000")

    def test_settled_ledger(self, payment_service, approved_purchase):
        for payment in approved_purchase.payments:
            payment_service.record_settlement(payment.id, PaymentStatus.SUCCESS)
        summary = payment_service.ledger_summary(ContractKind.PURCHASE, approved_purchase.id)
        assert summary.state == LedgerState.SETTLED
        assert summary.total_outstanding == Decimal("0")

    def test_failed_ledger(self, payment_service, purchase_service, approved_purchase, admin):
        purchase_service.void(approved_purchase.id, admin.id)
        summary = payment_service.ledger_summary(ContractKind.PURCHASE, approved_purchase.id)
        assert summary.state == LedgerState.FAILED
        assert summary.total_failed == Decimal("2040000000")

    def test_unknown_contract(self, payment_service):
        with pytest.raises(NotFoundError):
            payment_service.ledger_summary(ContractKind.DEPOSIT, 12345)
