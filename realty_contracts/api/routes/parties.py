"""Cancellation routes for the contract parties (customer or owner).

Administrators void contracts instead; these routes require the acting
party's id and check it against the contract.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from realty_contracts.api.dependencies import require_actor_id
from realty_contracts.api.schemas.contracts import (
    CancelRequest,
    DepositContractSummary,
    PurchaseContractSummary,
)
from realty_contracts.services import get_db
from realty_contracts.services.deposit_contract_service import DepositContractService
from realty_contracts.services.purchase_contract_service import PurchaseContractService

router = APIRouter(prefix="/api/parties", tags=["parties"])


@router.post("/deposit-contracts/{contract_id}/cancel", response_model=DepositContractSummary)
def cancel_deposit_contract(
    contract_id: int,
    payload: CancelRequest,
    actor_id: int = Depends(require_actor_id),
    db: Session = Depends(get_db),
):
    contract = DepositContractService(db).cancel(
        contract_id, payload.cancelled_by, payload.reason, actor_id
    )
    return DepositContractSummary.model_validate(contract)


@router.post("/purchase-contracts/{contract_id}/cancel", response_model=PurchaseContractSummary)
def cancel_purchase_contract(
    contract_id: int,
    payload: CancelRequest,
    actor_id: int = Depends(require_actor_id),
    db: Session = Depends(get_db),
):
    contract = PurchaseContractService(db).cancel(
        contract_id, payload.cancelled_by, payload.reason, actor_id
    )
    return PurchaseContractSummary.model_validate(contract)
