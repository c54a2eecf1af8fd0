"""Shared lifecycle operations for deposit and purchase contracts.

Every status change goes through the contract type's state machine, so the
precondition is checked against the persisted status and written with a
compare-and-set. Side effects (payment scheduling, closing payments, cascades)
run in the same transaction and are committed together with the status.
"""

import logging
import uuid
from datetime import date
from typing import Any, Callable

from sqlalchemy.orm import Session

from realty_contracts.models import CancelledBy, Property, User, UserRole
from realty_contracts.services.audit_service import AuditService
from realty_contracts.services.errors import (
    ContractError,
    NotFoundError,
    PermissionDeniedError,
)
from realty_contracts.services.payment_service import PaymentService
from realty_contracts.services.state_machine import ContractAction, StateMachine
from realty_contracts.services.validation_service import ensure_valid

logger = logging.getLogger(__name__)


class ContractService:
    """Base class for contract services.

    Subclasses set `model`, `machine`, `kind`, `entity_type`, `draft_type` and
    `updatable_fields`, and implement `create`.
    """

    model: type
    machine: StateMachine
    kind: Any
    entity_type: str
    draft_type: type
    updatable_fields: frozenset[str] = frozenset()

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db
        self.payments = PaymentService(db)

    @property
    def label(self) -> str:
        return self.machine.entity_name

    def number_prefix(self) -> str:
        raise NotImplementedError

    def generate_contract_number(self, today: date | None = None) -> str:
        """Human-readable unique number, e.g. DC-20260115-3F9A0C."""
        today = today or date.today()
        return f"{self.number_prefix()}-{today:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"

    def get(self, contract_id: int):
        """Fetch a contract by id.

        Raises:
            NotFoundError: Contract does not exist
        """
        contract = self.db.get(self.model, contract_id)
        if contract is None:
            raise NotFoundError(f"{self.label.capitalize()} {contract_id} not found")
        return contract

    # Guards

    def check_references(
        self, property_id: int, customer_id: int, agent_id: int | None = None
    ) -> None:
        """Make sure referenced property, customer and agent exist."""
        if self.db.get(Property, property_id) is None:
            raise NotFoundError(f"Property {property_id} not found", field="propertyId")
        if self.db.get(User, customer_id) is None:
            raise NotFoundError(f"Customer {customer_id} not found", field="customerId")
        if agent_id is not None:
            agent = self.db.get(User, agent_id)
            if agent is None or agent.role != UserRole.AGENT:
                raise NotFoundError(f"Agent {agent_id} not found", field="agentId")

    def require_admin(self, actor_id: int | None, action: str) -> User:
        actor = self.db.get(User, actor_id) if actor_id is not None else None
        if actor is None or actor.role != UserRole.ADMIN:
            logger.warning(f"{action} on {self.label} denied for actor {actor_id}")
            raise PermissionDeniedError(f"Only administrators can {action} a {self.label}")
        return actor

    def require_party(self, contract, cancelled_by: CancelledBy, actor_id: int) -> None:
        """The acting user must be the party named by `cancelled_by`."""
        expected = contract.customer_id if cancelled_by is CancelledBy.CUSTOMER else contract.owner_id
        if actor_id != expected:
            logger.warning(
                f"Cancel of {self.label} {contract.id} denied: actor {actor_id} "
                f"is not the {cancelled_by.value.lower()}"
            )
            raise PermissionDeniedError(
                f"Only the {cancelled_by.value.lower()} can cancel on their own behalf"
            )

    # Transitions

    def run_transition(
        self,
        contract_id: int,
        action: ContractAction,
        actor_id: int | None = None,
        target=None,
        changes: dict[str, Any] | None = None,
        effects: Callable[[Any, Any], dict[str, Any] | None] | None = None,
        **values: Any,
    ):
        """Compare-and-set the status, run side effects, audit and commit.

        Args:
            contract_id: Contract id
            action: Action to perform
            actor_id: User performing it (recorded in the audit log)
            target: Explicit target status when the action has several
            changes: Extra audit details
            effects: Called with (previous, new) status after the status write;
                may return more audit details
            **values: Columns written together with the status

        Returns:
            The refreshed contract
        """
        details = dict(changes or {})
        try:
            previous, new = self.machine.transition(
                self.db, self.model, contract_id, action, target, **values
            )
            if effects:
                details.update(effects(previous, new) or {})
            AuditService.log(
                self.db,
                self.entity_type,
                contract_id,
                action.value,
                actor_id,
                {"from": previous, "to": new, **values, **details},
            )
            self.db.commit()
        except ContractError as e:
            self.db.rollback()
            logger.warning(f"{action.value} on {self.label} {contract_id} rejected: {e.code}")
            raise
        except Exception as e:
            self.db.rollback()
            logger.error(f"Error during {action.value} on {self.label} {contract_id}: {e}")
            raise

        contract = self.get(contract_id)
        self.db.refresh(contract)
        return contract

    def update(self, contract_id: int, changes: dict[str, Any], actor_id: int | None = None):
        """Partially update a DRAFT contract.

        None and empty-string values are dropped, so a field is never cleared by
        omission. The merged terms are validated again before the write.

        Raises:
            NotFoundError: Contract does not exist
            InvalidStateTransitionError: Contract is not DRAFT
            ValidationError: Merged terms break a financial rule
        """
        contract = self.get(contract_id)
        current = self.machine.read_status(self.db, self.model, contract_id)
        self.machine.resolve(ContractAction.UPDATE, current)

        changes = {
            key: value
            for key, value in changes.items()
            if key in self.updatable_fields and value is not None and value != ""
        }
        draft = self.draft_type.from_model(contract).merged(changes)
        try:
            ensure_valid(draft)
        except ContractError as e:
            logger.warning(f"Update of {self.label} {contract_id} rejected: {e.code}")
            raise
        if {"property_id", "customer_id", "agent_id"} & changes.keys():
            self.check_references(draft.property_id, draft.customer_id, draft.agent_id)

        values = {key: getattr(draft, key) for key in changes}
        return self.run_transition(contract_id, ContractAction.UPDATE, actor_id, **values)

    def complete_paperwork(self, contract_id: int, actor_id: int | None = None):
        """Mark official paperwork done (-> COMPLETED)."""
        return self.run_transition(
            contract_id,
            ContractAction.COMPLETE_PAPERWORK,
            actor_id,
            effects=lambda previous, new: self.on_complete(contract_id, actor_id),
        )

    def on_complete(self, contract_id: int, actor_id: int | None) -> dict[str, Any] | None:
        return None

    def void(self, contract_id: int, actor_id: int | None, reason: str | None = None):
        """Administrative void (-> VOIDED) from any non-terminal status.

        No money moves: open payments are closed as SYSTEM_FAILED.

        Raises:
            PermissionDeniedError: Actor is not an administrator
            InvalidStateTransitionError: Contract is COMPLETED, CANCELLED or VOIDED
            StaleStateError: Status changed concurrently
        """
        self.require_admin(actor_id, "void")

        def close_payments(previous, new):
            return {"closedPayments": self.payments.close_open_payments(self.kind, contract_id)}

        return self.run_transition(
            contract_id,
            ContractAction.VOID,
            actor_id,
            changes={"reason": reason} if reason else None,
            effects=close_payments,
        )

    def cancel(
        self,
        contract_id: int,
        cancelled_by: CancelledBy,
        reason: str | None = None,
        actor_id: int | None = None,
    ):
        """Cancellation by the customer or the owner (-> CANCELLED).

        Records who cancelled and why, and closes open payments.

        Raises:
            PermissionDeniedError: Actor is not the named party
            InvalidStateTransitionError: Action not available from the current status
        """
        cancelled_by = CancelledBy(cancelled_by)
        contract = self.get(contract_id)
        if actor_id is not None:
            self.require_party(contract, cancelled_by, actor_id)

        def close_payments(previous, new):
            details = {
                "closedPayments": self.payments.close_open_payments(self.kind, contract_id)
            }
            details.update(self.on_cancel(contract, previous, cancelled_by) or {})
            return details

        return self.run_transition(
            contract_id,
            ContractAction.CANCEL,
            actor_id,
            effects=close_payments,
            cancellation_reason=reason,
            cancelled_by=cancelled_by,
        )

    def on_cancel(self, contract, previous, cancelled_by: CancelledBy) -> dict[str, Any] | None:
        return None


__all__ = ["ContractService"]
