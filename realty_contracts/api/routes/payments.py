"""Payment ledger API routes."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from realty_contracts.api.dependencies import get_actor_id
from realty_contracts.api.schemas.common import PageResponse
from realty_contracts.api.schemas.payments import (
    AgentPayoutCreate,
    LedgerSummaryResponse,
    PaymentCreate,
    PaymentResponse,
    SettlementRequest,
)
from realty_contracts.models import ContractKind, PaymentStatus, PaymentType
from realty_contracts.services import get_db
from realty_contracts.services.payment_service import PaymentFilters, PaymentService

router = APIRouter(prefix="/api/payments", tags=["payments"])
ledger_router = APIRouter(prefix="/api/contracts", tags=["payments"])


@router.get("", response_model=PageResponse[PaymentResponse])
def list_payments(
    contract_kind: ContractKind | None = Query(None, alias="contractKind"),
    contract_id: int | None = Query(None, alias="contractId"),
    property_id: int | None = Query(None, alias="propertyId"),
    payment_types: list[PaymentType] | None = Query(None, alias="paymentTypes"),
    statuses: list[PaymentStatus] | None = Query(None),
    payer_id: int | None = Query(None, alias="payerId"),
    payee_id: int | None = Query(None, alias="payeeId"),
    due_date_from: date | None = Query(None, alias="dueDateFrom"),
    due_date_to: date | None = Query(None, alias="dueDateTo"),
    paid_time_from: datetime | None = Query(None, alias="paidTimeFrom"),
    paid_time_to: datetime | None = Query(None, alias="paidTimeTo"),
    amount_min: Decimal | None = Query(None, alias="amountMin"),
    amount_max: Decimal | None = Query(None, alias="amountMax"),
    page: int = Query(1, ge=1),
    size: int | None = Query(None, ge=1),
    db: Session = Depends(get_db),
):
    """Payments filtered by contract, property, type, status, parties, dates and amount."""
    filters = PaymentFilters(
        contract_kind=contract_kind,
        contract_id=contract_id,
        property_id=property_id,
        payment_types=payment_types or [],
        statuses=statuses or [],
        payer_id=payer_id,
        payee_id=payee_id,
        due_date_from=due_date_from,
        due_date_to=due_date_to,
        paid_time_from=paid_time_from,
        paid_time_to=paid_time_to,
        amount_min=amount_min,
        amount_max=amount_max,
        page=page,
        size=size,
    )
    result = PaymentService(db).list_payments(filters)
    return PageResponse.from_page(result, PaymentResponse)


@router.get("/{payment_id}", response_model=PaymentResponse)
def get_payment(payment_id: int, db: Session = Depends(get_db)):
    return PaymentResponse.model_validate(PaymentService(db).get_payment(payment_id))


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def record_payment(
    payload: PaymentCreate,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Record a payment against a contract after the fact."""
    payment = PaymentService(db).record_payment(
        contract_kind=payload.contract_kind,
        contract_id=payload.contract_id,
        payment_type=payload.payment_type,
        amount=payload.amount,
        due_date=payload.due_date,
        payer_id=payload.payer_id,
        payee_id=payload.payee_id,
        status=payload.status,
        paid_time=payload.paid_time,
        installment_number=payload.installment_number,
        transaction_reference=payload.transaction_reference,
        notes=payload.notes,
        actor_id=actor_id,
    )
    return PaymentResponse.model_validate(payment)


@router.patch("/{payment_id}/status", response_model=PaymentResponse)
def settle_payment(
    payment_id: int,
    payload: SettlementRequest,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Settle an open payment as SUCCESS or FAILED."""
    payment = PaymentService(db).record_settlement(
        payment_id,
        payload.status,
        paid_time=payload.paid_time,
        system=payload.system,
        transaction_reference=payload.transaction_reference,
        notes=payload.notes,
        actor_id=actor_id,
    )
    return PaymentResponse.model_validate(payment)


@router.post("/salary", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_salary_payment(
    payload: AgentPayoutCreate,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    payment = PaymentService(db).create_salary_payment(
        payload.agent_id, payload.amount, payload.due_date, payload.notes, actor_id
    )
    return PaymentResponse.model_validate(payment)


@router.post("/bonus", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_bonus_payment(
    payload: AgentPayoutCreate,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    payment = PaymentService(db).create_bonus_payment(
        payload.agent_id, payload.amount, payload.due_date, payload.notes, actor_id
    )
    return PaymentResponse.model_validate(payment)


@ledger_router.get("/{kind}/{contract_id}/ledger", response_model=LedgerSummaryResponse)
def get_contract_ledger(
    kind: Literal["deposit", "purchase"],
    contract_id: int,
    db: Session = Depends(get_db),
):
    """Totals and aggregate payment state of one contract."""
    summary = PaymentService(db).ledger_summary(ContractKind(kind.upper()), contract_id)
    return LedgerSummaryResponse.model_validate(summary)
