"""Unit tests for the error payloads and the wire schemas."""

from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from realty_contracts.api.errors import error_response
from realty_contracts.api.schemas.common import Paging
from realty_contracts.api.schemas.contracts import (
    DepositContractCreate,
    DepositContractUpdate,
    PurchaseContractUpdate,
)
from realty_contracts.services.errors import (
    DepositNotFoundError,
    InvalidStateTransitionError,
    NotFoundError,
    PriceMismatchError,
    ValidationError,
    Violation,
    ViolationKind,
)


@pytest.mark.unit
class TestErrorPayloads:
    def test_single_violation_takes_its_kind_as_code(self):
        error = ValidationError(
            [Violation(ViolationKind.INVALID_COMMISSION, "commissionAmount", "Too high")]
        )
        body = error_response(error)["error"]
        assert body["code"] == "InvalidCommission"
        assert body["field"] == "commissionAmount"
        assert body["violations"] == [
            {"kind": "InvalidCommission", "field": "commissionAmount", "message": "Too high"}
        ]

    def test_several_violations(self):
        error = ValidationError(
            [
                Violation(ViolationKind.MISSING_REQUIRED_FIELD, "propertyId", "Property is required"),
                Violation(ViolationKind.NON_POSITIVE_AMOUNT, "depositAmount", "Must be positive"),
            ]
        )
        assert error.code == "ValidationError"
        assert error.http_status == 422
        assert "Property is required; Must be positive" == error.message

    def test_other_errors_have_empty_violations(self):
        body = error_response(NotFoundError("Payment 4 not found"))["error"]
        assert body == {
            "code": "NotFound",
            "message": "Payment 4 not found",
            "field": None,
            "violations": [],
        }

    @pytest.mark.parametrize(
        "error,status",
        [
            (DepositNotFoundError("missing", 1), 404),
            (PriceMismatchError("mismatch", 1), 409),
            (InvalidStateTransitionError("purchase contract", "approve", "COMPLETED"), 409),
        ],
    )
    def test_status_codes(self, error, status):
        assert error.http_status == status

    def test_transition_message_lists_allowed_states(self):
        error = InvalidStateTransitionError("deposit contract", "cancel", "DRAFT", ["ACTIVE"])
        assert error.message == "Cannot cancel deposit contract in status DRAFT. Allowed from: ACTIVE."


@pytest.mark.unit
class TestSchemas:
    def test_create_accepts_camel_case(self):
        payload = DepositContractCreate.model_validate(
            {"propertyId": 1, "customerId": 2, "depositAmount": "500000000", "startDate": "2026-01-15"}
        )
        draft = payload.to_draft()
        assert draft.property_id == 1
        assert draft.deposit_amount == Decimal("500000000.00")
        assert draft.cancellation_penalty is None

    def test_update_keeps_only_sent_fields(self):
        changes = DepositContractUpdate.model_validate({"agreedPrice": 10}).to_changes()
        assert changes == {"agreed_price": Decimal("10")}

    def test_purchase_update_rejects_deposit_link(self):
        with pytest.raises(PydanticValidationError):
            PurchaseContractUpdate.model_validate({"depositContractId": 5})

    def test_paging_serializes_camel_case(self):
        paging = Paging(page=1, size=20, total=41, total_pages=3)
        assert paging.model_dump(by_alias=True) == {
            "page": 1,
            "size": 20,
            "total": 41,
            "totalPages": 3,
        }
