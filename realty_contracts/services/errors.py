"""Domain exceptions for the contract lifecycle.

Every error carries a machine-readable `code`, the HTTP status the API answers
with, and the offending field where one applies, so a client can highlight the
input that caused it.
"""

from dataclasses import asdict, dataclass
from typing import Any


class ViolationKind:
    """Kinds of financial/required-field rule violations."""

    MISSING_REQUIRED_FIELD = "MissingRequiredField"
    INVALID_COMMISSION = "InvalidCommission"
    NON_POSITIVE_AMOUNT = "NonPositiveAmount"
    NEGATIVE_AMOUNT = "NegativeAmount"
    INVALID_DATE_RANGE = "InvalidDateRange"
    INVALID_PAYMENT_TYPE = "InvalidPaymentType"
    INVALID_AMOUNT = "InvalidAmount"


@dataclass(frozen=True)
class Violation:
    """A single failed validation rule."""

    kind: str
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


class ContractError(Exception):
    """Base exception for contract lifecycle errors."""

    code = "contract_error"
    http_status = 400

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        self.field = field
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "field": self.field, "violations": []}


# Validation


class ValidationError(ContractError):
    """One or more client-correctable rule violations. Never retried."""

    code = "ValidationError"
    http_status = 422

    def __init__(self, violations: list[Violation]):
        self.violations = list(violations)
        first = self.violations[0] if self.violations else None
        summary = "; ".join(v.message for v in self.violations) or "Invalid contract"
        super().__init__(summary, field=first.field if first else None)
        if len(self.violations) == 1:
            self.code = self.violations[0].kind

    def kinds(self) -> set[str]:
        return {v.kind for v in self.violations}

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["violations"] = [v.to_dict() for v in self.violations]
        return data


# Linkage


class LinkageError(ContractError):
    """The requested deposit contract cannot be linked to this purchase contract."""

    code = "LinkageError"
    http_status = 409

    def __init__(self, message: str, deposit_contract_id: int | None = None):
        self.deposit_contract_id = deposit_contract_id
        super().__init__(message, field="depositContractId")


class DepositNotFoundError(LinkageError):
    """Linked deposit contract does not exist."""

    code = "DepositNotFound"
    http_status = 404


class DepositNotEligibleError(LinkageError):
    """Deposit contract is not ACTIVE (or does not secure this purchase)."""

    code = "DepositNotEligible"


class DepositAlreadyLinkedError(LinkageError):
    """Another purchase contract already references this deposit contract."""

    code = "DepositAlreadyLinked"


class PriceMismatchError(LinkageError):
    """Purchase property value differs from the deposit's agreed price."""

    code = "PriceMismatch"


# State


class StateError(ContractError):
    """Requested action conflicts with the contract's status."""

    code = "StateError"
    http_status = 409


class InvalidStateTransitionError(StateError):
    """Action is not available from the current status."""

    code = "InvalidStateTransition"

    def __init__(self, entity: str, action: str, current: str, allowed: list[str] | None = None):
        self.entity = entity
        self.action = action
        self.current = current
        self.allowed = allowed or []
        allowed_str = f" Allowed from: {', '.join(self.allowed)}." if self.allowed else ""
        super().__init__(
            f"Cannot {action} {entity} in status {current}.{allowed_str}", field="status"
        )


class StaleStateError(StateError):
    """Status changed between read and write. Refetch and retry."""

    code = "StaleState"

    def __init__(self, entity: str, entity_id: int, expected: str):
        self.entity = entity
        self.entity_id = entity_id
        self.expected = expected
        super().__init__(
            f"{entity} {entity_id} is no longer {expected}; refetch and retry", field="status"
        )


# Pass-through


class NotFoundError(ContractError):
    """Referenced entity does not exist."""

    code = "NotFound"
    http_status = 404


class PermissionDeniedError(ContractError):
    """Actor is not allowed to perform the action."""

    code = "PermissionDenied"
    http_status = 403


__all__ = [
    "ViolationKind",
    "Violation",
    "ContractError",
    "ValidationError",
    "LinkageError",
    "DepositNotFoundError",
    "DepositNotEligibleError",
    "DepositAlreadyLinkedError",
    "PriceMismatchError",
    "StateError",
    "InvalidStateTransitionError",
    "StaleStateError",
    "NotFoundError",
    "PermissionDeniedError",
]
