"""Deposit contract API routes."""

import logging
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from realty_contracts.api.dependencies import get_actor_id
from realty_contracts.api.schemas.common import PageResponse
from realty_contracts.api.schemas.contracts import (
    DepositContractCreate,
    DepositContractDetail,
    DepositContractSummary,
    DepositContractUpdate,
    VoidRequest,
)
from realty_contracts.models import DepositContractStatus, MainContractType
from realty_contracts.services import get_db
from realty_contracts.services.deposit_contract_service import DepositContractService
from realty_contracts.services.query_service import ContractQueryService, DepositContractFilters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/deposit-contracts", tags=["deposit-contracts"])


@router.get("", response_model=PageResponse[DepositContractSummary])
def list_deposit_contracts(
    search: str | None = Query(None),
    statuses: list[DepositContractStatus] | None = Query(None),
    main_contract_types: list[MainContractType] | None = Query(None, alias="mainContractTypes"),
    customer_id: int | None = Query(None, alias="customerId"),
    agent_id: int | None = Query(None, alias="agentId"),
    property_id: int | None = Query(None, alias="propertyId"),
    owner_id: int | None = Query(None, alias="ownerId"),
    start_date_from: date | None = Query(None, alias="startDateFrom"),
    start_date_to: date | None = Query(None, alias="startDateTo"),
    end_date_from: date | None = Query(None, alias="endDateFrom"),
    end_date_to: date | None = Query(None, alias="endDateTo"),
    linked: bool | None = Query(None),
    page: int = Query(1, ge=1),
    size: int | None = Query(None, ge=1),
    sort_by: Literal[
        "createdAt", "startDate", "endDate", "contractNumber", "depositAmount", "agreedPrice", "status"
    ] = Query("createdAt", alias="sortBy"),
    sort_direction: Literal["ASC", "DESC"] = Query("DESC", alias="sortDirection"),
    db: Session = Depends(get_db),
):
    """Filterable, paginated deposit contract list (pages are 1-based)."""
    filters = DepositContractFilters(
        search=search,
        statuses=statuses or [],
        main_contract_types=main_contract_types or [],
        customer_id=customer_id,
        agent_id=agent_id,
        property_id=property_id,
        owner_id=owner_id,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
        end_date_from=end_date_from,
        end_date_to=end_date_to,
        linked=linked,
        page=page,
        size=size,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    result = ContractQueryService(db).list_deposit_contracts(filters)
    return PageResponse.from_page(result, DepositContractSummary)


@router.post("", response_model=DepositContractSummary, status_code=status.HTTP_201_CREATED)
def create_deposit_contract(
    payload: DepositContractCreate,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Create a deposit contract in DRAFT.

    Returns:
        201: Created contract (cancellationPenalty defaulted to depositAmount)
        404: Property, customer or agent not found
        422: Validation errors, all reported together
    """
    contract = DepositContractService(db).create(payload.to_draft(), actor_id)
    return DepositContractSummary.model_validate(contract)


@router.get("/{contract_id}", response_model=DepositContractDetail)
def get_deposit_contract(contract_id: int, db: Session = Depends(get_db)):
    contract = DepositContractService(db).get(contract_id)
    return DepositContractDetail.model_validate(contract)


@router.put("/{contract_id}", response_model=DepositContractDetail)
def update_deposit_contract(
    contract_id: int,
    payload: DepositContractUpdate,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Partial update; only DRAFT contracts can be edited."""
    contract = DepositContractService(db).update(contract_id, payload.to_changes(), actor_id)
    return DepositContractDetail.model_validate(contract)


@router.post("/{contract_id}/approve", response_model=DepositContractSummary)
def approve_deposit_contract(
    contract_id: int,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    contract = DepositContractService(db).approve(contract_id, actor_id)
    return DepositContractSummary.model_validate(contract)


@router.post("/{contract_id}/payment", response_model=DepositContractDetail)
def request_deposit_payment(
    contract_id: int,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Request the deposit from the customer and schedule the DEPOSIT payment."""
    contract = DepositContractService(db).request_payment(contract_id, actor_id)
    return DepositContractDetail.model_validate(contract)


@router.post("/{contract_id}/complete-paperwork", response_model=DepositContractSummary)
def complete_deposit_paperwork(
    contract_id: int,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    contract = DepositContractService(db).complete_paperwork(contract_id, actor_id)
    return DepositContractSummary.model_validate(contract)


@router.post("/{contract_id}/void", response_model=DepositContractSummary)
def void_deposit_contract(
    contract_id: int,
    payload: VoidRequest | None = None,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Administrative void. Requires an ADMIN actor."""
    reason = payload.reason if payload else None
    contract = DepositContractService(db).void(contract_id, actor_id, reason)
    return DepositContractSummary.model_validate(contract)
