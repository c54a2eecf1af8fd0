"""Payment ledger: scheduling, settlement and read access for contract payments.

Provides methods for:
- Deriving the payment schedule of an approved contract (idempotent)
- Recording settlements (PENDING -> SUCCESS/FAILED, with SYSTEM_ provenance)
- Recording payments manually against a contract
- Agent payouts (SALARY, BONUS) that belong to no contract
- Ledger summaries and the filtered, paginated payment list
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from realty_contracts.config import settings
from realty_contracts.models import (
    CancelledBy,
    ContractKind,
    DepositContract,
    Payment,
    PaymentStatus,
    PaymentType,
    PurchaseContract,
    User,
    UserRole,
)
from realty_contracts.services.audit_service import AuditService
from realty_contracts.services.errors import (
    InvalidStateTransitionError,
    NotFoundError,
    StateError,
    ValidationError,
    Violation,
    ViolationKind,
)
from realty_contracts.services.query_service import Page, paginate
from realty_contracts.services.state_machine import (
    ContractAction,
    compare_and_set_status,
    deposit_machine,
)
from realty_contracts.services.validation_service import (
    ZERO,
    MoneyLike,
    amount_limit_violation,
    parse_money,
)

logger = logging.getLogger(__name__)

CONTRACT_MODELS = {
    ContractKind.DEPOSIT: DepositContract,
    ContractKind.PURCHASE: PurchaseContract,
}

OPEN_STATUSES = (PaymentStatus.PENDING, PaymentStatus.SYSTEM_PENDING)
SUCCESS_STATUSES = (PaymentStatus.SUCCESS, PaymentStatus.SYSTEM_SUCCESS)
AGENT_PAYOUT_TYPES = (PaymentType.SALARY, PaymentType.BONUS)


class LedgerState(str, Enum):
    """Aggregate state of a contract's payments."""

    NONE = "NONE"
    OPEN = "OPEN"
    SETTLED = "SETTLED"
    FAILED = "FAILED"


@dataclass
class LedgerSummary:
    """Totals over one contract's payments."""

    contract_kind: ContractKind
    contract_id: int
    payments: list[Payment]
    total_scheduled: Decimal = ZERO
    total_paid: Decimal = ZERO
    total_outstanding: Decimal = ZERO
    total_failed: Decimal = ZERO
    state: LedgerState = LedgerState.NONE


@dataclass
class PaymentFilters:
    """Filters for the payment read path. All given filters must match."""

    contract_kind: ContractKind | None = None
    contract_id: int | None = None
    property_id: int | None = None
    payment_types: list[PaymentType] = field(default_factory=list)
    statuses: list[PaymentStatus] = field(default_factory=list)
    payer_id: int | None = None
    payee_id: int | None = None
    due_date_from: date | None = None
    due_date_to: date | None = None
    paid_time_from: datetime | None = None
    paid_time_to: datetime | None = None
    amount_min: Decimal | None = None
    amount_max: Decimal | None = None
    page: int | None = None
    size: int | None = None


def contract_fk(kind: ContractKind):
    """Payment column referencing a contract of this kind."""
    if kind is ContractKind.DEPOSIT:
        return Payment.deposit_contract_id
    return Payment.purchase_contract_id


def kind_of(contract) -> ContractKind:
    if isinstance(contract, DepositContract):
        return ContractKind.DEPOSIT
    if isinstance(contract, PurchaseContract):
        return ContractKind.PURCHASE
    raise TypeError(f"Not a contract: {type(contract).__name__}")


def _amount_violation(amount: Decimal | None) -> list[Violation]:
    if amount is None:
        return [Violation(ViolationKind.MISSING_REQUIRED_FIELD, "amount", "Amount is required")]
    if amount <= ZERO:
        return [
            Violation(ViolationKind.NON_POSITIVE_AMOUNT, "amount", "Amount must be greater than zero")
        ]
    too_large = amount_limit_violation(amount, "amount", "Amount")
    return [too_large] if too_large else []


class PaymentService:
    """Payment ledger operations.

    Scheduling and closing methods only stage changes in the session; they run
    inside a contract transition and are committed by the contract service.
    Settlement, manual recording and payouts commit on their own.
    """

    def __init__(self, db: Session):
        """Initialize payment service.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    # Scheduling

    def schedule(self, contract, today: date | None = None) -> list[Payment]:
        """Derive the payment schedule for a contract.

        Running it again for the same contract returns the same rows and
        creates nothing new.
        """
        if isinstance(contract, DepositContract):
            self.schedule_deposit_payment(contract, today)
        else:
            self.schedule_purchase_payments(contract, today)
        return self.scheduled_payments(kind_of(contract), contract.id)

    def scheduled_payments(self, kind: ContractKind, contract_id: int) -> list[Payment]:
        return (
            self.db.query(Payment)
            .filter(contract_fk(kind) == contract_id, Payment.scheduled.is_(True))
            .order_by(Payment.id)
            .all()
        )

    def purchase_plan(self, contract: PurchaseContract, today: date | None = None) -> list[dict]:
        """Payments a purchase contract's terms call for, in schedule order.

        - ADVANCE: customer -> owner, when advancePaymentAmount > 0
        - SERVICE_FEE: owner -> agent, when commissionAmount > 0
        - FULL_PAY: customer -> owner for the remainder after the advance and
          any linked deposit, when positive
        """
        today = today or date.today()
        advance_due = today + timedelta(days=settings.advance_due_days)
        advance = contract.advance_payment_amount or ZERO
        commission = contract.commission_amount or ZERO
        deposit_amount = (
            contract.deposit_contract.deposit_amount if contract.deposit_contract else ZERO
        )

        plan = []
        if advance > ZERO:
            plan.append(
                {
                    "payment_type": PaymentType.ADVANCE,
                    "amount": advance,
                    "due_date": advance_due,
                    "payer_id": contract.customer_id,
                    "payee_id": contract.owner_id,
                }
            )
        if commission > ZERO:
            plan.append(
                {
                    "payment_type": PaymentType.SERVICE_FEE,
                    "amount": commission,
                    "due_date": advance_due,
                    "payer_id": contract.owner_id,
                    "payee_id": contract.agent_id,
                }
            )
        remainder = contract.property_value - advance - deposit_amount
        if remainder > ZERO:
            plan.append(
                {
                    "payment_type": PaymentType.FULL_PAY,
                    "amount": remainder,
                    "due_date": contract.start_date
                    + timedelta(days=settings.full_pay_due_days),
                    "payer_id": contract.customer_id,
                    "payee_id": contract.owner_id,
                }
            )
        return plan

    def schedule_purchase_payments(
        self, contract: PurchaseContract, today: date | None = None
    ) -> list[Payment]:
        """Create the missing scheduled rows of a purchase contract.

        Keyed by payment type: a type that already has a scheduled row is
        skipped whatever that row's status.

        Returns:
            Newly created payments
        """
        existing = {
            p.payment_type for p in self.scheduled_payments(ContractKind.PURCHASE, contract.id)
        }
        created = []
        for item in self.purchase_plan(contract, today):
            if item["payment_type"] in existing:
                continue
            payment = Payment(
                purchase_contract_id=contract.id,
                status=PaymentStatus.SYSTEM_PENDING,
                scheduled=True,
                **item,
            )
            self.db.add(payment)
            created.append(payment)
        self.db.flush()
        for payment in created:
            logger.info(
                f"Scheduled {payment.payment_type.value} payment {payment.id} "
                f"for purchase contract {contract.id}: {payment.amount}"
            )
        return created

    def schedule_deposit_payment(
        self, contract: DepositContract, today: date | None = None
    ) -> Payment:
        """Schedule the DEPOSIT payment of a deposit contract.

        Returns the existing row when a pending or settled DEPOSIT payment is
        already scheduled; after a failed one a fresh row is created.
        """
        for payment in self.scheduled_payments(ContractKind.DEPOSIT, contract.id):
            if payment.payment_type is PaymentType.DEPOSIT and payment.status.semantic in (
                PaymentStatus.PENDING,
                PaymentStatus.SUCCESS,
            ):
                logger.debug(f"Deposit contract {contract.id} already has payment {payment.id}")
                return payment

        today = today or date.today()
        payment = Payment(
            deposit_contract_id=contract.id,
            payment_type=PaymentType.DEPOSIT,
            status=PaymentStatus.SYSTEM_PENDING,
            scheduled=True,
            amount=contract.deposit_amount,
            due_date=today + timedelta(days=settings.deposit_due_days),
            payer_id=contract.customer_id,
            payee_id=contract.owner_id,
        )
        self.db.add(payment)
        self.db.flush()
        logger.info(
            f"Scheduled DEPOSIT payment {payment.id} for deposit contract {contract.id}: "
            f"{payment.amount}"
        )
        return payment

    def create_penalty_payment(
        self, contract: DepositContract, cancelled_by: CancelledBy
    ) -> Payment:
        """Stage the cancellation penalty of a deposit contract.

        The owner owes the agreed cancellation penalty, left open until paid.
        The customer forfeits the deposit already paid: that row is settled at
        once and offsets the DEPOSIT payment, so nothing is owed twice.
        """
        payment = Payment(
            deposit_contract_id=contract.id,
            payment_type=PaymentType.PENALTY,
            scheduled=True,
            due_date=date.today(),
            notes=f"Cancellation by {cancelled_by.value.lower()}",
        )
        if cancelled_by is CancelledBy.CUSTOMER:
            deposit = self.settled_deposit_payment(contract.id)
            if deposit is None:
                raise StateError(
                    f"Deposit contract {contract.id} has no settled deposit to forfeit"
                )
            payment.amount = deposit.amount
            payment.payer_id, payment.payee_id = deposit.payer_id, deposit.payee_id
            payment.status = PaymentStatus.SYSTEM_SUCCESS
            payment.paid_time = deposit.paid_time or datetime.now(timezone.utc)
            payment.offset_payment_id = deposit.id
        else:
            payment.amount = contract.cancellation_penalty
            payment.payer_id, payment.payee_id = contract.owner_id, contract.customer_id
            payment.status = PaymentStatus.SYSTEM_PENDING
        self.db.add(payment)
        self.db.flush()
        logger.info(
            f"Penalty payment {payment.id} for deposit contract {contract.id}: "
            f"{payment.amount} ({cancelled_by.value})"
        )
        return payment

    def settled_deposit_payment(self, contract_id: int) -> Payment | None:
        """The successful DEPOSIT payment of a deposit contract, if any."""
        return (
            self.db.query(Payment)
            .filter(
                Payment.deposit_contract_id == contract_id,
                Payment.payment_type == PaymentType.DEPOSIT,
                Payment.status.in_(SUCCESS_STATUSES),
            )
            .order_by(Payment.id)
            .first()
        )

    def close_open_payments(self, kind: ContractKind, contract_id: int) -> int:
        """Close every open payment of a contract as SYSTEM_FAILED.

        Returns:
            Number of payments closed
        """
        result = self.db.execute(
            update(Payment)
            .where(contract_fk(kind) == contract_id, Payment.status.in_(OPEN_STATUSES))
            .values(status=PaymentStatus.SYSTEM_FAILED, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info(
                f"Closed {result.rowcount} open payment(s) of {kind.value.lower()} "
                f"contract {contract_id}"
            )
        return result.rowcount

    # Settlement

    def record_settlement(
        self,
        payment_id: int,
        outcome: PaymentStatus,
        paid_time: datetime | None = None,
        system: bool = False,
        transaction_reference: str | None = None,
        notes: str | None = None,
        actor_id: int | None = None,
    ) -> Payment:
        """Settle an open payment.

        Args:
            payment_id: Payment to settle
            outcome: SUCCESS or FAILED (a SYSTEM_ variant implies system=True)
            paid_time: When the money arrived; defaults to now, ignored on failure
            system: Record as system-initiated (SYSTEM_* status)
            transaction_reference: Optional bank/transaction reference
            notes: Optional notes
            actor_id: User recording the settlement

        Returns:
            Updated Payment

        Raises:
            NotFoundError: Payment does not exist
            InvalidStateTransitionError: Payment is not open, or outcome is PENDING
        """
        outcome = PaymentStatus(outcome)
        current = self._read_status(payment_id)
        if outcome.semantic is PaymentStatus.PENDING:
            raise InvalidStateTransitionError("payment", "settle as PENDING", current.value)
        if not current.is_open:
            logger.warning(f"Payment {payment_id} is already settled ({current.value})")
            raise InvalidStateTransitionError(
                "payment", "settle", current.value, [s.value for s in OPEN_STATUSES]
            )

        new_status = outcome.with_provenance(system or outcome.is_system)
        values = {}
        if new_status.semantic is PaymentStatus.SUCCESS:
            values["paid_time"] = paid_time or datetime.now(timezone.utc)
        if transaction_reference:
            values["transaction_reference"] = transaction_reference
        if notes:
            values["notes"] = notes

        try:
            compare_and_set_status(
                self.db, Payment, payment_id, current, new_status, entity_name="payment", **values
            )
            payment = self.db.get(Payment, payment_id)
            self.db.refresh(payment)
            self._apply_settlement_effects(payment, actor_id)
            AuditService.log(
                self.db,
                "payment",
                payment_id,
                "settle",
                actor_id,
                {"from": current, "to": new_status, **values},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(payment)
        logger.info(f"Settled payment {payment_id}: {current.value} -> {new_status.value}")
        return payment

    def _apply_settlement_effects(self, payment: Payment, actor_id: int | None) -> None:
        """Drive the deposit contract from its DEPOSIT payment's outcome."""
        if payment.payment_type is not PaymentType.DEPOSIT or payment.deposit_contract_id is None:
            return

        contract_id = payment.deposit_contract_id
        current = deposit_machine.read_status(self.db, DepositContract, contract_id)
        semantic = payment.status.semantic
        if semantic is PaymentStatus.SUCCESS:
            action = ContractAction.RECEIVE_DEPOSIT
        elif semantic is PaymentStatus.FAILED:
            action = ContractAction.DEPOSIT_FAILED
        else:
            return
        if not deposit_machine.can(action, current):
            return

        previous, new = deposit_machine.transition(self.db, DepositContract, contract_id, action)
        AuditService.log(
            self.db,
            "deposit_contract",
            contract_id,
            action.value,
            actor_id,
            {"from": previous, "to": new, "paymentId": payment.id},
        )

    # Manual recording

    def record_payment(
        self,
        contract_kind: ContractKind,
        contract_id: int,
        payment_type: PaymentType,
        amount: MoneyLike,
        due_date: date | None = None,
        payer_id: int | None = None,
        payee_id: int | None = None,
        status: PaymentStatus = PaymentStatus.PENDING,
        paid_time: datetime | None = None,
        installment_number: int | None = None,
        transaction_reference: str | None = None,
        notes: str | None = None,
        actor_id: int | None = None,
    ) -> Payment:
        """Record a payment against a contract.

        Payer and payee default to the contract's customer and owner. A
        successful DEPOSIT payment activates its deposit contract.

        Raises:
            ValidationError: Non-positive amount or an agent payout type
            NotFoundError: Contract does not exist
            InvalidStateTransitionError: Contract is VOIDED
        """
        contract_kind = ContractKind(contract_kind)
        payment_type = PaymentType(payment_type)
        status = PaymentStatus(status)
        amount = parse_money(amount, "amount")

        violations = _amount_violation(amount)
        if payment_type in AGENT_PAYOUT_TYPES:
            violations.append(
                Violation(
                    ViolationKind.INVALID_PAYMENT_TYPE,
                    "paymentType",
                    f"{payment_type.value} payments are agent payouts, not contract payments",
                )
            )
        if violations:
            raise ValidationError(violations)

        model = CONTRACT_MODELS[contract_kind]
        contract = self.db.get(model, contract_id)
        if contract is None:
            raise NotFoundError(f"{contract_kind.value.title()} contract {contract_id} not found")
        if contract.status.value == "VOIDED":
            raise InvalidStateTransitionError(
                f"{contract_kind.value.lower()} contract", "record payment", contract.status.value
            )

        if payer_id is None and payee_id is None:
            payer_id, payee_id = contract.customer_id, contract.owner_id

        payment = Payment(
            payment_type=payment_type,
            status=status,
            amount=amount,
            due_date=due_date,
            paid_time=(paid_time or datetime.now(timezone.utc))
            if status.semantic is PaymentStatus.SUCCESS
            else None,
            payer_id=payer_id,
            payee_id=payee_id,
            installment_number=installment_number,
            transaction_reference=transaction_reference,
            notes=notes,
        )
        if contract_kind is ContractKind.DEPOSIT:
            payment.deposit_contract_id = contract_id
        else:
            payment.purchase_contract_id = contract_id

        try:
            self.db.add(payment)
            self.db.flush()
            self._apply_settlement_effects(payment, actor_id)
            AuditService.log(
                self.db,
                "payment",
                payment.id,
                "record",
                actor_id,
                {"type": payment_type, "status": status, "amount": amount},
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error recording payment for {contract_kind.value} {contract_id}: {e}")
            raise

        self.db.refresh(payment)
        logger.info(
            f"Recorded {payment_type.value} payment {payment.id} for "
            f"{contract_kind.value.lower()} contract {contract_id}: {amount} ({status.value})"
        )
        return payment

    def create_salary_payment(
        self,
        agent_id: int,
        amount: MoneyLike,
        due_date: date | None = None,
        notes: str | None = None,
        actor_id: int | None = None,
    ) -> Payment:
        """Record a SALARY payout to an agent."""
        return self._agent_payout(PaymentType.SALARY, agent_id, amount, due_date, notes, actor_id)

    def create_bonus_payment(
        self,
        agent_id: int,
        amount: MoneyLike,
        due_date: date | None = None,
        notes: str | None = None,
        actor_id: int | None = None,
    ) -> Payment:
        """Record a BONUS payout to an agent."""
        return self._agent_payout(PaymentType.BONUS, agent_id, amount, due_date, notes, actor_id)

    def _agent_payout(
        self,
        payment_type: PaymentType,
        agent_id: int,
        amount: MoneyLike,
        due_date: date | None,
        notes: str | None,
        actor_id: int | None,
    ) -> Payment:
        amount = parse_money(amount, "amount")
        violations = _amount_violation(amount)
        if violations:
            raise ValidationError(violations)

        agent = self.db.get(User, agent_id)
        if agent is None or agent.role != UserRole.AGENT:
            raise NotFoundError(f"Agent {agent_id} not found", field="agentId")

        payment = Payment(
            payment_type=payment_type,
            status=PaymentStatus.PENDING,
            amount=amount,
            due_date=due_date or date.today(),
            payee_id=agent_id,
            notes=notes,
        )
        try:
            self.db.add(payment)
            self.db.flush()
            AuditService.log(
                self.db,
                "payment",
                payment.id,
                payment_type.value.lower(),
                actor_id,
                {"agentId": agent_id, "amount": amount},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(payment)
        logger.info(f"Created {payment_type.value} payment {payment.id} for agent {agent_id}: {amount}")
        return payment

    # Read path

    def get_payment(self, payment_id: int) -> Payment:
        payment = self.db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return payment

    def _read_status(self, payment_id: int) -> PaymentStatus:
        status = self.db.execute(
            select(Payment.status).where(Payment.id == payment_id)
        ).scalar_one_or_none()
        if status is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return status

    def list_payments(self, filters: PaymentFilters) -> Page[Payment]:
        """Page of payments matching all given filters, newest first."""
        stmt = select(Payment).options(
            selectinload(Payment.payer),
            selectinload(Payment.payee),
            selectinload(Payment.deposit_contract),
            selectinload(Payment.purchase_contract),
        )

        if filters.contract_kind is not None:
            column = contract_fk(filters.contract_kind)
            if filters.contract_id is not None:
                stmt = stmt.where(column == filters.contract_id)
            else:
                stmt = stmt.where(column.is_not(None))
        elif filters.contract_id is not None:
            stmt = stmt.where(
                (Payment.deposit_contract_id == filters.contract_id)
                | (Payment.purchase_contract_id == filters.contract_id)
            )
        if filters.property_id is not None:
            # Through whichever contract the payment belongs to
            stmt = stmt.where(
                Payment.deposit_contract_id.in_(
                    select(DepositContract.id).where(
                        DepositContract.property_id == filters.property_id
                    )
                )
                | Payment.purchase_contract_id.in_(
                    select(PurchaseContract.id).where(
                        PurchaseContract.property_id == filters.property_id
                    )
                )
            )
        if filters.payment_types:
            stmt = stmt.where(Payment.payment_type.in_(filters.payment_types))
        if filters.statuses:
            stmt = stmt.where(Payment.status.in_(filters.statuses))
        if filters.payer_id is not None:
            stmt = stmt.where(Payment.payer_id == filters.payer_id)
        if filters.payee_id is not None:
            stmt = stmt.where(Payment.payee_id == filters.payee_id)
        if filters.due_date_from:
            stmt = stmt.where(Payment.due_date >= filters.due_date_from)
        if filters.due_date_to:
            stmt = stmt.where(Payment.due_date <= filters.due_date_to)
        if filters.paid_time_from:
            stmt = stmt.where(Payment.paid_time >= filters.paid_time_from)
        if filters.paid_time_to:
            stmt = stmt.where(Payment.paid_time <= filters.paid_time_to)
        if filters.amount_min is not None:
            stmt = stmt.where(Payment.amount >= filters.amount_min)
        if filters.amount_max is not None:
            stmt = stmt.where(Payment.amount <= filters.amount_max)

        stmt = stmt.order_by(Payment.created_at.desc(), Payment.id.desc())
        return paginate(self.db, stmt, filters.page, filters.size)

    def ledger_summary(self, kind: ContractKind, contract_id: int) -> LedgerSummary:
        """Totals and aggregate state of one contract's payments.

        Raises:
            NotFoundError: Contract does not exist
        """
        kind = ContractKind(kind)
        if self.db.get(CONTRACT_MODELS[kind], contract_id) is None:
            raise NotFoundError(f"{kind.value.title()} contract {contract_id} not found")

        payments = (
            self.db.query(Payment)
            .filter(contract_fk(kind) == contract_id)
            .order_by(Payment.id)
            .all()
        )
        summary = LedgerSummary(contract_kind=kind, contract_id=contract_id, payments=payments)
        for payment in payments:
            if payment.offset_payment_id is not None:
                # Settled by money already counted on the offset row
                continue
            semantic = payment.status.semantic
            if semantic is PaymentStatus.SUCCESS:
                summary.total_paid += payment.amount
            elif semantic is PaymentStatus.PENDING:
                summary.total_outstanding += payment.amount
            else:
                summary.total_failed += payment.amount
            if payment.scheduled and semantic is not PaymentStatus.FAILED:
                summary.total_scheduled += payment.amount

        if not payments:
            summary.state = LedgerState.NONE
        elif summary.total_outstanding > ZERO:
            summary.state = LedgerState.OPEN
        elif summary.total_paid > ZERO:
            summary.state = LedgerState.SETTLED
        else:
            summary.state = LedgerState.FAILED
        return summary


__all__ = [
    "PaymentService",
    "PaymentFilters",
    "LedgerSummary",
    "LedgerState",
    "CONTRACT_MODELS",
    "OPEN_STATUSES",
    "SUCCESS_STATUSES",
    "contract_fk",
    "kind_of",
]
