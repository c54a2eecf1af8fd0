"""Deposit contract service: creation and lifecycle of deposit contracts."""

import logging
from datetime import date
from typing import Any

from realty_contracts.config import settings
from realty_contracts.models import (
    CancelledBy,
    ContractKind,
    DepositContract,
    DepositContractStatus,
)
from realty_contracts.services.audit_service import AuditService
from realty_contracts.services.contract_service import ContractService
from realty_contracts.services.errors import ContractError
from realty_contracts.services.state_machine import ContractAction, deposit_machine
from realty_contracts.services.validation_service import (
    DepositContractDraft,
    apply_deposit_defaults,
    ensure_valid,
)

logger = logging.getLogger(__name__)


class DepositContractService(ContractService):
    """Deposit contracts.

    Status is driven mostly by the DEPOSIT payment: requesting it moves the
    contract to PENDING_PAYMENT, receiving it activates the contract and a
    failed payment sends it back to WAITING_OFFICIAL.
    """

    model = DepositContract
    machine = deposit_machine
    kind = ContractKind.DEPOSIT
    entity_type = "deposit_contract"
    draft_type = DepositContractDraft
    updatable_fields = frozenset(
        {
            "property_id",
            "customer_id",
            "agent_id",
            "main_contract_type",
            "deposit_amount",
            "agreed_price",
            "cancellation_penalty",
            "start_date",
            "end_date",
            "special_terms",
        }
    )

    def number_prefix(self) -> str:
        return settings.contract_number_prefix_deposit

    def create(self, draft: DepositContractDraft, actor_id: int | None = None) -> DepositContract:
        """Create a deposit contract in DRAFT.

        The cancellation penalty defaults to the deposit amount.

        Args:
            draft: Contract terms
            actor_id: Staff member creating the contract

        Returns:
            Created DepositContract

        Raises:
            ValidationError: Terms break a financial rule or miss a required field
            NotFoundError: Referenced property, customer or agent does not exist
        """
        try:
            ensure_valid(draft)
        except ContractError as e:
            logger.warning(f"Deposit contract rejected: {e.code}")
            raise
        draft = apply_deposit_defaults(draft)
        self.check_references(draft.property_id, draft.customer_id, draft.agent_id)

        contract = DepositContract(
            contract_number=self.generate_contract_number(),
            property_id=draft.property_id,
            customer_id=draft.customer_id,
            agent_id=draft.agent_id,
            main_contract_type=draft.main_contract_type,
            deposit_amount=draft.deposit_amount,
            agreed_price=draft.agreed_price,
            cancellation_penalty=draft.cancellation_penalty,
            start_date=draft.start_date,
            end_date=draft.end_date,
            special_terms=draft.special_terms,
            status=DepositContractStatus.DRAFT,
        )
        try:
            self.db.add(contract)
            self.db.flush()
            AuditService.log(
                self.db,
                self.entity_type,
                contract.id,
                "create",
                actor_id,
                {
                    "contractNumber": contract.contract_number,
                    "depositAmount": contract.deposit_amount,
                    "agreedPrice": contract.agreed_price,
                    "cancellationPenalty": contract.cancellation_penalty,
                },
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating deposit contract: {e}")
            raise

        self.db.refresh(contract)
        logger.info(f"Created deposit contract {contract.id} ({contract.contract_number})")
        return contract

    def approve(self, contract_id: int, actor_id: int | None = None) -> DepositContract:
        """Staff approval: DRAFT -> WAITING_OFFICIAL."""
        return self.run_transition(contract_id, ContractAction.APPROVE, actor_id)

    def request_payment(
        self, contract_id: int, actor_id: int | None = None, today: date | None = None
    ) -> DepositContract:
        """Ask the customer for the deposit: WAITING_OFFICIAL -> PENDING_PAYMENT.

        Schedules the DEPOSIT payment. Repeating the request while the contract
        is already PENDING_PAYMENT changes nothing and creates no new payment.
        """
        contract = self.get(contract_id)
        current = self.machine.read_status(self.db, DepositContract, contract_id)
        if current == DepositContractStatus.PENDING_PAYMENT:
            try:
                self.payments.schedule_deposit_payment(contract, today)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            logger.info(f"Deposit payment already requested for deposit contract {contract_id}")
            self.db.refresh(contract)
            return contract

        def schedule(previous, new):
            self.db.refresh(contract)
            payment = self.payments.schedule_deposit_payment(contract, today)
            return {"paymentId": payment.id, "amount": payment.amount}

        return self.run_transition(
            contract_id, ContractAction.REQUEST_PAYMENT, actor_id, effects=schedule
        )

    def on_cancel(
        self, contract: DepositContract, previous, cancelled_by: CancelledBy
    ) -> dict[str, Any] | None:
        """Write the cancellation penalty once the deposit has been paid."""
        if not self.deposit_received(contract.id):
            return None
        penalty = self.payments.create_penalty_payment(contract, cancelled_by)
        return {"penaltyPaymentId": penalty.id, "penalty": penalty.amount}

    def deposit_received(self, contract_id: int) -> bool:
        return self.payments.settled_deposit_payment(contract_id) is not None


__all__ = ["DepositContractService"]
