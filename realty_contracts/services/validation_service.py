"""Financial validation for contract terms.

Pure functions: no database access, no logging side effects, so the same rules
can run anywhere a draft exists. Every rule is evaluated and all violations are
reported together.

Rules:
- deposit contracts: depositAmount > 0, agreedPrice > 0, cancellationPenalty > 0
  when given (defaults to depositAmount), endDate not before startDate
- purchase contracts: propertyValue > 0, advancePaymentAmount >= 0,
  0 <= commissionAmount < propertyValue
- required references: propertyId, customerId, startDate
- every amount fits the storage columns: below 10^16 with two decimal places
"""

from dataclasses import dataclass, fields, replace
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Union

from pydantic.alias_generators import to_camel

from realty_contracts.models import DepositContract, MainContractType, PurchaseContract
from realty_contracts.services.errors import ValidationError, Violation, ViolationKind

MoneyLike = Union[Decimal, int, float, str, None]

ZERO = Decimal("0")
CENTS = Decimal("0.01")
# Numeric(18, 2) leaves 16 integer digits
MAX_AMOUNT = Decimal("1e16")


def to_money(value: MoneyLike) -> Decimal | None:
    """Convert a numeric value to a 2-place Decimal, keeping None as None.

    Floats go through str() to avoid binary precision artifacts.

    Raises:
        ValueError: Not a number, not finite, or too many digits to round
    """
    if value is None or value == "":
        return None
    try:
        if isinstance(value, float):
            value = str(value)
        result = Decimal(value)
        if not result.is_finite():
            raise ValueError(f"Not a currency amount: {value!r}")
        return result.quantize(CENTS)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a currency amount: {value!r}") from e


def parse_money(value: MoneyLike, field: str) -> Decimal | None:
    """to_money() that reports bad input as a ValidationError on `field`."""
    try:
        return to_money(value)
    except ValueError as e:
        raise ValidationError([Violation(ViolationKind.INVALID_AMOUNT, field, str(e))]) from e


def amount_limit_violation(value: Decimal | None, field: str, label: str) -> Violation | None:
    if value is None or abs(value) < MAX_AMOUNT:
        return None
    return Violation(
        ViolationKind.INVALID_AMOUNT, field, f"{label} must be less than {MAX_AMOUNT:,.0f}"
    )


@dataclass(frozen=True)
class DepositContractDraft:
    """Deposit contract terms before persistence."""

    property_id: int | None = None
    customer_id: int | None = None
    agent_id: int | None = None
    main_contract_type: MainContractType | None = None
    deposit_amount: Decimal | None = None
    agreed_price: Decimal | None = None
    cancellation_penalty: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None
    special_terms: str | None = None

    @classmethod
    def from_model(cls, contract: DepositContract) -> "DepositContractDraft":
        return cls(**{f.name: getattr(contract, f.name) for f in fields(cls)})

    def merged(self, changes: dict[str, Any]) -> "DepositContractDraft":
        """Apply a partial update; keys not present keep their current value."""
        return replace(self, **_coerce_money(changes, _DEPOSIT_MONEY_FIELDS))


@dataclass(frozen=True)
class PurchaseContractDraft:
    """Purchase contract terms before persistence."""

    property_id: int | None = None
    customer_id: int | None = None
    agent_id: int | None = None
    deposit_contract_id: int | None = None
    property_value: Decimal | None = None
    advance_payment_amount: Decimal | None = None
    commission_amount: Decimal | None = None
    start_date: date | None = None
    special_terms: str | None = None

    @classmethod
    def from_model(cls, contract: PurchaseContract) -> "PurchaseContractDraft":
        return cls(**{f.name: getattr(contract, f.name) for f in fields(cls)})

    def merged(self, changes: dict[str, Any]) -> "PurchaseContractDraft":
        """Apply a partial update; keys not present keep their current value."""
        return replace(self, **_coerce_money(changes, _PURCHASE_MONEY_FIELDS))


_DEPOSIT_MONEY_FIELDS = ("deposit_amount", "agreed_price", "cancellation_penalty")
_PURCHASE_MONEY_FIELDS = ("property_value", "advance_payment_amount", "commission_amount")


def _coerce_money(values: dict[str, Any], money_fields: tuple[str, ...]) -> dict[str, Any]:
    coerced: dict[str, Any] = {}
    violations: list[Violation] = []
    for key, value in values.items():
        if key not in money_fields:
            coerced[key] = value
            continue
        try:
            coerced[key] = to_money(value)
        except ValueError as e:
            violations.append(Violation(ViolationKind.INVALID_AMOUNT, to_camel(key), str(e)))
    if violations:
        raise ValidationError(violations)
    return coerced


def make_deposit_draft(**values: Any) -> DepositContractDraft:
    return DepositContractDraft(**_coerce_money(values, _DEPOSIT_MONEY_FIELDS))


def make_purchase_draft(**values: Any) -> PurchaseContractDraft:
    return PurchaseContractDraft(**_coerce_money(values, _PURCHASE_MONEY_FIELDS))


def _require(violations: list[Violation], value: Any, field: str, label: str) -> None:
    if value is None or value == "":
        violations.append(
            Violation(ViolationKind.MISSING_REQUIRED_FIELD, field, f"{label} is required")
        )


def _positive(violations: list[Violation], value: Decimal | None, field: str, label: str) -> None:
    if value is None:
        _require(violations, value, field, label)
    elif value <= ZERO:
        violations.append(
            Violation(ViolationKind.NON_POSITIVE_AMOUNT, field, f"{label} must be greater than zero")
        )


def _within_limit(
    violations: list[Violation], value: Decimal | None, field: str, label: str
) -> None:
    violation = amount_limit_violation(value, field, label)
    if violation:
        violations.append(violation)


def apply_deposit_defaults(draft: DepositContractDraft) -> DepositContractDraft:
    """Default the owner's cancellation penalty to the deposit amount."""
    if draft.cancellation_penalty is None and draft.deposit_amount is not None:
        return replace(draft, cancellation_penalty=draft.deposit_amount)
    return draft


def validate_deposit_contract(draft: DepositContractDraft) -> list[Violation]:
    """Check deposit contract terms.

    Args:
        draft: Deposit terms (defaults not yet applied is fine)

    Returns:
        All violations found; empty list when valid
    """
    violations: list[Violation] = []

    _require(violations, draft.property_id, "propertyId", "Property")
    _require(violations, draft.customer_id, "customerId", "Customer")
    _require(violations, draft.main_contract_type, "mainContractType", "Main contract type")
    _require(violations, draft.start_date, "startDate", "Start date")

    _positive(violations, draft.deposit_amount, "depositAmount", "Deposit amount")
    _positive(violations, draft.agreed_price, "agreedPrice", "Agreed price")

    if draft.cancellation_penalty is not None and draft.cancellation_penalty <= ZERO:
        violations.append(
            Violation(
                ViolationKind.NON_POSITIVE_AMOUNT,
                "cancellationPenalty",
                "Cancellation penalty must be greater than zero",
            )
        )

    _within_limit(violations, draft.deposit_amount, "depositAmount", "Deposit amount")
    _within_limit(violations, draft.agreed_price, "agreedPrice", "Agreed price")
    _within_limit(
        violations, draft.cancellation_penalty, "cancellationPenalty", "Cancellation penalty"
    )

    if draft.start_date and draft.end_date and draft.start_date > draft.end_date:
        violations.append(
            Violation(
                ViolationKind.INVALID_DATE_RANGE,
                "endDate",
                "Start date cannot be after end date",
            )
        )

    return violations


def validate_purchase_contract(draft: PurchaseContractDraft) -> list[Violation]:
    """Check purchase contract terms.

    Args:
        draft: Purchase terms

    Returns:
        All violations found; empty list when valid
    """
    violations: list[Violation] = []

    _require(violations, draft.property_id, "propertyId", "Property")
    _require(violations, draft.customer_id, "customerId", "Customer")
    _require(violations, draft.start_date, "startDate", "Start date")

    _positive(violations, draft.property_value, "propertyValue", "Property value")

    advance = draft.advance_payment_amount
    if advance is not None and advance < ZERO:
        violations.append(
            Violation(
                ViolationKind.NEGATIVE_AMOUNT,
                "advancePaymentAmount",
                "Advance payment amount cannot be negative",
            )
        )

    commission = draft.commission_amount
    if commission is not None:
        if commission < ZERO:
            violations.append(
                Violation(
                    ViolationKind.INVALID_COMMISSION,
                    "commissionAmount",
                    "Commission amount cannot be negative",
                )
            )
        elif draft.property_value is not None and ZERO < draft.property_value <= commission:
            violations.append(
                Violation(
                    ViolationKind.INVALID_COMMISSION,
                    "commissionAmount",
                    "Commission must be less than property value",
                )
            )

    _within_limit(violations, draft.property_value, "propertyValue", "Property value")
    _within_limit(
        violations, draft.advance_payment_amount, "advancePaymentAmount", "Advance payment amount"
    )
    _within_limit(violations, commission, "commissionAmount", "Commission amount")

    return violations


def validate(draft: DepositContractDraft | PurchaseContractDraft) -> list[Violation]:
    """Validate either kind of contract draft."""
    if isinstance(draft, DepositContractDraft):
        return validate_deposit_contract(draft)
    if isinstance(draft, PurchaseContractDraft):
        return validate_purchase_contract(draft)
    raise TypeError(f"Unsupported draft type: {type(draft).__name__}")


def ensure_valid(draft: DepositContractDraft | PurchaseContractDraft) -> None:
    """Raise ValidationError carrying every violation, if any."""
    violations = validate(draft)
    if violations:
        raise ValidationError(violations)


__all__ = [
    "DepositContractDraft",
    "PurchaseContractDraft",
    "make_deposit_draft",
    "make_purchase_draft",
    "apply_deposit_defaults",
    "validate_deposit_contract",
    "validate_purchase_contract",
    "validate",
    "ensure_valid",
    "to_money",
    "parse_money",
    "amount_limit_violation",
    "MAX_AMOUNT",
]
