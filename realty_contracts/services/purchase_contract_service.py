"""Purchase contract service: creation with deposit linkage and lifecycle."""

import logging
from datetime import date
from typing import Any

from sqlalchemy.exc import IntegrityError

from realty_contracts.config import settings
from realty_contracts.models import (
    ContractKind,
    DepositContract,
    DepositContractStatus,
    PurchaseContract,
    PurchaseContractStatus,
)
from realty_contracts.services.audit_service import AuditService
from realty_contracts.services.contract_service import ContractService
from realty_contracts.services.errors import ContractError, DepositAlreadyLinkedError
from realty_contracts.services.linkage_service import LinkageResolver
from realty_contracts.services.state_machine import (
    ContractAction,
    deposit_machine,
    purchase_machine,
)
from realty_contracts.services.validation_service import (
    ZERO,
    PurchaseContractDraft,
    ensure_valid,
)

logger = logging.getLogger(__name__)


class PurchaseContractService(ContractService):
    """Purchase contracts, optionally converted from an ACTIVE deposit contract."""

    model = PurchaseContract
    machine = purchase_machine
    kind = ContractKind.PURCHASE
    entity_type = "purchase_contract"
    draft_type = PurchaseContractDraft
    # deposit_contract_id is fixed at creation
    updatable_fields = frozenset(
        {
            "property_id",
            "customer_id",
            "agent_id",
            "property_value",
            "advance_payment_amount",
            "commission_amount",
            "start_date",
            "special_terms",
        }
    )

    def number_prefix(self) -> str:
        return settings.contract_number_prefix_purchase

    def create(
        self, draft: PurchaseContractDraft, actor_id: int | None = None
    ) -> PurchaseContract:
        """Create a purchase contract in DRAFT, linking a deposit contract if given.

        Args:
            draft: Contract terms, with an optional deposit_contract_id
            actor_id: Staff member creating the contract

        Returns:
            Created PurchaseContract

        Raises:
            ValidationError: Terms break a financial rule or miss a required field
            NotFoundError: Referenced property, customer or agent does not exist
            LinkageError: The deposit contract cannot be linked
        """
        try:
            ensure_valid(draft)
        except ContractError as e:
            logger.warning(f"Purchase contract rejected: {e.code}")
            raise
        self.check_references(draft.property_id, draft.customer_id, draft.agent_id)
        deposit = LinkageResolver(self.db).resolve(draft)

        contract = PurchaseContract(
            contract_number=self.generate_contract_number(),
            property_id=draft.property_id,
            customer_id=draft.customer_id,
            agent_id=draft.agent_id,
            deposit_contract_id=deposit.id if deposit else None,
            property_value=draft.property_value,
            advance_payment_amount=draft.advance_payment_amount or ZERO,
            commission_amount=draft.commission_amount or ZERO,
            start_date=draft.start_date,
            special_terms=draft.special_terms,
            status=PurchaseContractStatus.DRAFT,
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
                    "propertyValue": contract.property_value,
                    "depositContractId": contract.deposit_contract_id,
                },
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if deposit is not None:
                # Lost the race for the deposit: the unique constraint caught it
                logger.warning(
                    f"Link rejected: deposit contract {deposit.id} linked concurrently"
                )
                raise DepositAlreadyLinkedError(
                    f"Deposit contract {deposit.id} is already linked to another purchase contract",
                    deposit.id,
                ) from e
            logger.error(f"IntegrityError creating purchase contract: {e}")
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error creating purchase contract: {e}")
            raise

        self.db.refresh(contract)
        if deposit is not None:
            logger.info(
                f"Created purchase contract {contract.id} ({contract.contract_number}) "
                f"linked to deposit contract {deposit.id}"
            )
        else:
            logger.info(f"Created purchase contract {contract.id} ({contract.contract_number})")
        return contract

    def approve(
        self, contract_id: int, actor_id: int | None = None, today: date | None = None
    ) -> PurchaseContract:
        """Staff approval from DRAFT; schedules the contract's payments.

        The target status (WAITING_OFFICIAL or ACTIVE) comes from
        `settings.purchase_approval_status`.
        """
        contract = self.get(contract_id)
        target = PurchaseContractStatus(settings.purchase_approval_status)

        def schedule(previous, new):
            # Terms may have been edited in another session before the status write
            self.db.refresh(contract)
            created = self.payments.schedule_purchase_payments(contract, today)
            return {"scheduledPayments": [p.id for p in created]}

        return self.run_transition(
            contract_id, ContractAction.APPROVE, actor_id, target=target, effects=schedule
        )

    def on_complete(self, contract_id: int, actor_id: int | None) -> dict[str, Any] | None:
        """Complete the linked deposit contract once it is converted."""
        contract = self.get(contract_id)
        deposit_id = contract.deposit_contract_id
        if deposit_id is None:
            return None
        current = deposit_machine.read_status(self.db, DepositContract, deposit_id)
        if current != DepositContractStatus.ACTIVE:
            return None

        previous, new = deposit_machine.transition(
            self.db, DepositContract, deposit_id, ContractAction.COMPLETE_PAPERWORK
        )
        AuditService.log(
            self.db,
            "deposit_contract",
            deposit_id,
            ContractAction.COMPLETE_PAPERWORK.value,
            actor_id,
            {"from": previous, "to": new, "purchaseContractId": contract_id},
        )
        return {"completedDepositContractId": deposit_id}


__all__ = ["PurchaseContractService"]
