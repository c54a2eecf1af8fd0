"""Picker endpoints for the contract forms: `(keyword) -> [{value, label, subLabel}]`."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from realty_contracts.api.schemas.common import OptionResponse
from realty_contracts.services import get_db
from realty_contracts.services.directory_service import DirectoryService

router = APIRouter(prefix="/api/options", tags=["options"])


@router.get("/customers", response_model=list[OptionResponse])
def customer_options(
    keyword: str | None = Query(None),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    return [OptionResponse.model_validate(o) for o in DirectoryService(db).customers(keyword, limit)]


@router.get("/agents", response_model=list[OptionResponse])
def agent_options(
    keyword: str | None = Query(None),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    return [OptionResponse.model_validate(o) for o in DirectoryService(db).agents(keyword, limit)]


@router.get("/properties", response_model=list[OptionResponse])
def property_options(
    keyword: str | None = Query(None),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    return [
        OptionResponse.model_validate(o) for o in DirectoryService(db).properties(keyword, limit)
    ]


@router.get("/deposit-contracts", response_model=list[OptionResponse])
def deposit_contract_options(
    keyword: str | None = Query(None),
    property_id: int | None = Query(None, alias="propertyId"),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
):
    """ACTIVE, unlinked deposit contracts securing a purchase."""
    options = DirectoryService(db).deposit_contracts(keyword, property_id, limit)
    return [OptionResponse.model_validate(o) for o in options]
