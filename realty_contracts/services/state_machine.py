"""Contract status graphs and guarded, optimistic status transitions.

Usage:
    purchase_machine.resolve(ContractAction.APPROVE, current)  # -> target status

    # read -> check -> compare-and-set, inside the caller's transaction
    previous, new = purchase_machine.transition(db, PurchaseContract, 42, ContractAction.VOID)

A transition re-reads the persisted status, checks the action against that value
and then writes with `UPDATE ... WHERE id = :id AND status = :expected`. If the
row changed in between, no row matches and StaleStateError is raised; the caller
must refetch and retry.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from realty_contracts.models import (
    DepositContract,
    DepositContractStatus,
    PurchaseContract,
    PurchaseContractStatus,
)
from realty_contracts.services.errors import (
    InvalidStateTransitionError,
    NotFoundError,
    StaleStateError,
)

logger = logging.getLogger(__name__)


class ContractAction(str, Enum):
    """Actions that move (or guard) a contract's status."""

    UPDATE = "update"
    APPROVE = "approve"
    REQUEST_PAYMENT = "request_payment"
    RECEIVE_DEPOSIT = "receive_deposit"
    DEPOSIT_FAILED = "deposit_failed"
    COMPLETE_PAPERWORK = "complete_paperwork"
    VOID = "void"
    CANCEL = "cancel"


@dataclass(frozen=True)
class Transition:
    """An action allowed from `sources`; the first target is the default."""

    action: ContractAction
    sources: frozenset
    targets: tuple
    description: str = ""


class StateMachine:
    """Status graph for one contract type."""

    def __init__(self, entity_name: str, terminal: set):
        self.entity_name = entity_name
        self.terminal = frozenset(terminal)
        self._transitions: dict[ContractAction, Transition] = {}

    def register(
        self,
        action: ContractAction,
        sources: set,
        targets: tuple | Enum,
        description: str = "",
    ) -> "StateMachine":
        """Register an action. Returns self for chaining."""
        if not isinstance(targets, tuple):
            targets = (targets,)
        if self.terminal & set(sources):
            raise ValueError(f"{self.entity_name}: {action.value} cannot leave a terminal state")
        self._transitions[action] = Transition(action, frozenset(sources), targets, description)
        return self

    def sources(self, action: ContractAction) -> frozenset:
        return self._transitions[action].sources

    def can(self, action: ContractAction, current) -> bool:
        transition = self._transitions.get(action)
        return transition is not None and current in transition.sources

    def allowed_actions(self, current) -> list[ContractAction]:
        return [action for action, t in self._transitions.items() if current in t.sources]

    def resolve(self, action: ContractAction, current, target=None):
        """Return the status `action` leads to from `current`.

        Raises:
            InvalidStateTransitionError: Action not available from `current`,
                or `target` is not one of the action's targets
        """
        transition = self._transitions.get(action)
        if transition is None or current not in transition.sources:
            allowed = sorted(s.value for s in transition.sources) if transition else []
            raise InvalidStateTransitionError(
                self.entity_name, action.value, _value(current), allowed
            )
        if target is None:
            return transition.targets[0]
        if target not in transition.targets:
            raise InvalidStateTransitionError(
                self.entity_name,
                f"{action.value} to {_value(target)}",
                _value(current),
                sorted(s.value for s in transition.sources),
            )
        return target

    def read_status(self, db: Session, model: type, entity_id: int):
        """Read the persisted status, bypassing any stale ORM state."""
        status = db.execute(select(model.status).where(model.id == entity_id)).scalar_one_or_none()
        if status is None:
            raise NotFoundError(f"{self.entity_name} {entity_id} not found")
        return status

    def transition(
        self,
        db: Session,
        model: type,
        entity_id: int,
        action: ContractAction,
        target=None,
        **values: Any,
    ) -> tuple:
        """Read, check and compare-and-set the status of one contract.

        Does not commit; the caller commits together with the side effects.

        Args:
            db: Database session
            model: DepositContract or PurchaseContract
            entity_id: Contract id
            action: Action to perform
            target: Explicit target when the action has several
            **values: Extra columns written in the same UPDATE

        Returns:
            (previous_status, new_status)

        Raises:
            NotFoundError: Contract does not exist
            InvalidStateTransitionError: Action not available from the current status
            StaleStateError: Status changed between read and write
        """
        current = self.read_status(db, model, entity_id)
        new = self.resolve(action, current, target)
        compare_and_set_status(db, model, entity_id, current, new, entity_name=self.entity_name, **values)
        logger.info(
            "%s %d: %s %s -> %s",
            self.entity_name,
            entity_id,
            action.value,
            _value(current),
            _value(new),
        )
        return current, new


def compare_and_set_status(
    db: Session,
    model: type,
    entity_id: int,
    expected,
    new,
    entity_name: str | None = None,
    **values: Any,
) -> None:
    """Atomically write `new` status only if the row still has `expected`.

    Raises:
        StaleStateError: No row matched (status changed concurrently)
    """
    result = db.execute(
        update(model)
        .where(model.id == entity_id, model.status == expected)
        .values(status=new, updated_at=datetime.now(timezone.utc), **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        name = entity_name or model.__tablename__
        logger.warning("Stale state on %s %d: expected %s", name, entity_id, _value(expected))
        raise StaleStateError(name, entity_id, _value(expected))


def _value(status) -> str:
    return status.value if isinstance(status, Enum) else str(status)


D = DepositContractStatus
P = PurchaseContractStatus

deposit_machine = (
    StateMachine("deposit contract", terminal={D.COMPLETED, D.CANCELLED, D.VOIDED})
    .register(ContractAction.UPDATE, {D.DRAFT}, D.DRAFT, "Edit terms while in draft")
    .register(ContractAction.APPROVE, {D.DRAFT}, D.WAITING_OFFICIAL, "Staff approval")
    .register(
        ContractAction.REQUEST_PAYMENT,
        {D.WAITING_OFFICIAL},
        D.PENDING_PAYMENT,
        "Deposit payment requested from the customer",
    )
    .register(
        ContractAction.RECEIVE_DEPOSIT,
        {D.DRAFT, D.WAITING_OFFICIAL, D.PENDING_PAYMENT},
        D.ACTIVE,
        "Deposit amount received",
    )
    .register(
        ContractAction.DEPOSIT_FAILED,
        {D.PENDING_PAYMENT},
        D.WAITING_OFFICIAL,
        "Deposit payment failed; a new one may be requested",
    )
    .register(
        ContractAction.COMPLETE_PAPERWORK,
        {D.WAITING_OFFICIAL, D.ACTIVE},
        D.COMPLETED,
        "Official paperwork done",
    )
    .register(
        ContractAction.VOID,
        {D.DRAFT, D.PENDING_PAYMENT, D.WAITING_OFFICIAL, D.ACTIVE},
        D.VOIDED,
        "Administrative correction; no money moves",
    )
    .register(
        ContractAction.CANCEL,
        {D.PENDING_PAYMENT, D.ACTIVE},
        D.CANCELLED,
        "Cancelled by customer or owner",
    )
)

purchase_machine = (
    StateMachine("purchase contract", terminal={P.COMPLETED, P.CANCELLED, P.VOIDED})
    .register(ContractAction.UPDATE, {P.DRAFT}, P.DRAFT, "Edit terms while in draft")
    .register(
        ContractAction.APPROVE,
        {P.DRAFT},
        (P.WAITING_OFFICIAL, P.ACTIVE),
        "Staff approval; schedules payments",
    )
    .register(
        ContractAction.COMPLETE_PAPERWORK,
        {P.WAITING_OFFICIAL},
        P.COMPLETED,
        "Official paperwork done",
    )
    .register(
        ContractAction.VOID,
        {P.DRAFT, P.WAITING_OFFICIAL, P.ACTIVE},
        P.VOIDED,
        "Administrative correction; no money moves",
    )
    .register(
        ContractAction.CANCEL,
        {P.WAITING_OFFICIAL, P.ACTIVE},
        P.CANCELLED,
        "Cancelled by customer or owner",
    )
)

MACHINES = {
    DepositContract: deposit_machine,
    PurchaseContract: purchase_machine,
}


__all__ = [
    "ContractAction",
    "Transition",
    "StateMachine",
    "compare_and_set_status",
    "deposit_machine",
    "purchase_machine",
    "MACHINES",
]
