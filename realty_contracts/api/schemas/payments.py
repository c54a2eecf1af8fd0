"""Pydantic schemas for payments and contract ledgers."""

from datetime import date, datetime

from pydantic import Field

from realty_contracts.api.schemas.common import CamelModel, Money, MoneyInput
from realty_contracts.models import ContractKind, PaymentStatus, PaymentType
from realty_contracts.services.payment_service import LedgerState


class PaymentResponse(CamelModel):
    """A payment row with its contract and parties resolved for display."""

    id: int
    contract_kind: ContractKind | None = None
    contract_id: int | None = None
    contract_number: str | None = None
    property_title: str | None = None
    payment_type: PaymentType
    status: PaymentStatus
    amount: Money
    due_date: date | None = None
    paid_time: datetime | None = None
    payer_id: int | None = None
    payer_name: str | None = None
    payee_id: int | None = None
    payee_name: str | None = None
    installment_number: int | None = None
    scheduled: bool = False
    offset_payment_id: int | None = None
    transaction_reference: str | None = None
    notes: str | None = None
    created_at: datetime


class PaymentCreate(CamelModel):
    """Payload for POST /api/payments."""

    contract_kind: ContractKind
    contract_id: int
    payment_type: PaymentType
    amount: MoneyInput
    due_date: date | None = None
    payer_id: int | None = None
    payee_id: int | None = None
    status: PaymentStatus = PaymentStatus.PENDING
    paid_time: datetime | None = None
    installment_number: int | None = Field(None, ge=1)
    transaction_reference: str | None = Field(None, max_length=100)
    notes: str | None = None


class SettlementRequest(CamelModel):
    """Payload for PATCH /api/payments/{id}/status."""

    status: PaymentStatus = Field(..., description="SUCCESS or FAILED (SYSTEM_ variants allowed)")
    paid_time: datetime | None = None
    system: bool = False
    transaction_reference: str | None = Field(None, max_length=100)
    notes: str | None = None


class AgentPayoutCreate(CamelModel):
    """Payload for POST /api/payments/salary and /api/payments/bonus."""

    agent_id: int
    amount: MoneyInput
    due_date: date | None = None
    notes: str | None = None


class LedgerSummaryResponse(CamelModel):
    contract_kind: ContractKind
    contract_id: int
    total_scheduled: Money
    total_paid: Money
    total_outstanding: Money
    total_failed: Money
    state: LedgerState
    payments: list[PaymentResponse]
