"""Purchase contract API routes."""

import logging
from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from realty_contracts.api.dependencies import get_actor_id
from realty_contracts.api.schemas.common import PageResponse
from realty_contracts.api.schemas.contracts import (
    PurchaseContractCreate,
    PurchaseContractDetail,
    PurchaseContractSummary,
    PurchaseContractUpdate,
    VoidRequest,
)
from realty_contracts.models import PurchaseContractStatus
from realty_contracts.services import get_db
from realty_contracts.services.purchase_contract_service import PurchaseContractService
from realty_contracts.services.query_service import ContractQueryService, PurchaseContractFilters

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/purchase-contracts", tags=["purchase-contracts"])


@router.get("", response_model=PageResponse[PurchaseContractSummary])
def list_purchase_contracts(
    search: str | None = Query(None),
    statuses: list[PurchaseContractStatus] | None = Query(None),
    customer_id: int | None = Query(None, alias="customerId"),
    agent_id: int | None = Query(None, alias="agentId"),
    property_id: int | None = Query(None, alias="propertyId"),
    owner_id: int | None = Query(None, alias="ownerId"),
    start_date_from: date | None = Query(None, alias="startDateFrom"),
    start_date_to: date | None = Query(None, alias="startDateTo"),
    has_deposit_contract: bool | None = Query(None, alias="hasDepositContract"),
    page: int = Query(1, ge=1),
    size: int | None = Query(None, ge=1),
    sort_by: Literal["createdAt", "startDate", "contractNumber", "propertyValue", "status"] = Query(
        "createdAt", alias="sortBy"
    ),
    sort_direction: Literal["ASC", "DESC"] = Query("DESC", alias="sortDirection"),
    db: Session = Depends(get_db),
):
    """Filterable, paginated purchase contract list (pages are 1-based)."""
    filters = PurchaseContractFilters(
        search=search,
        statuses=statuses or [],
        customer_id=customer_id,
        agent_id=agent_id,
        property_id=property_id,
        owner_id=owner_id,
        start_date_from=start_date_from,
        start_date_to=start_date_to,
        has_deposit_contract=has_deposit_contract,
        page=page,
        size=size,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    result = ContractQueryService(db).list_purchase_contracts(filters)
    return PageResponse.from_page(result, PurchaseContractSummary)


@router.post("", response_model=PurchaseContractSummary, status_code=status.HTTP_201_CREATED)
def create_purchase_contract(
    payload: PurchaseContractCreate,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Create a purchase contract in DRAFT, optionally linked to a deposit contract.

    Returns:
        201: Created contract
        404: Property, customer, agent or deposit contract not found
        409: Deposit contract not eligible, already linked or price mismatch
        422: Validation errors, all reported together
    """
    contract = PurchaseContractService(db).create(payload.to_draft(), actor_id)
    logger.info(f"Purchase contract {contract.contract_number} created via API")
    return PurchaseContractSummary.model_validate(contract)


@router.get("/{contract_id}", response_model=PurchaseContractDetail)
def get_purchase_contract(contract_id: int, db: Session = Depends(get_db)):
    contract = PurchaseContractService(db).get(contract_id)
    return PurchaseContractDetail.model_validate(contract)


@router.put("/{contract_id}", response_model=PurchaseContractDetail)
def update_purchase_contract(
    contract_id: int,
    payload: PurchaseContractUpdate,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Partial update; only DRAFT contracts can be edited."""
    contract = PurchaseContractService(db).update(contract_id, payload.to_changes(), actor_id)
    return PurchaseContractDetail.model_validate(contract)


@router.post("/{contract_id}/approve", response_model=PurchaseContractDetail)
def approve_purchase_contract(
    contract_id: int,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Approve a DRAFT contract and schedule its payments."""
    contract = PurchaseContractService(db).approve(contract_id, actor_id)
    return PurchaseContractDetail.model_validate(contract)


@router.post("/{contract_id}/complete-paperwork", response_model=PurchaseContractSummary)
def complete_purchase_paperwork(
    contract_id: int,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    contract = PurchaseContractService(db).complete_paperwork(contract_id, actor_id)
    return PurchaseContractSummary.model_validate(contract)


@router.post("/{contract_id}/void", response_model=PurchaseContractSummary)
def void_purchase_contract(
    contract_id: int,
    payload: VoidRequest | None = None,
    actor_id: int | None = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Administrative void. Requires an ADMIN actor."""
    reason = payload.reason if payload else None
    contract = PurchaseContractService(db).void(contract_id, actor_id, reason)
    return PurchaseContractSummary.model_validate(contract)
