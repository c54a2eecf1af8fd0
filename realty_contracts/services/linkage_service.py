"""Linkage between a purchase contract and the deposit contract it converts."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from realty_contracts.models import (
    DepositContract,
    DepositContractStatus,
    MainContractType,
    PurchaseContract,
)
from realty_contracts.services.errors import (
    DepositAlreadyLinkedError,
    DepositNotEligibleError,
    DepositNotFoundError,
    PriceMismatchError,
)
from realty_contracts.services.validation_service import PurchaseContractDraft

logger = logging.getLogger(__name__)


class LinkageResolver:
    """Validates the optional deposit reference of a purchase contract draft.

    The checks run at submission time against the current database state, since
    the deposit picker the draft came from may be stale. The one-to-one rule is
    also enforced by the unique constraint on `purchase_contracts.deposit_contract_id`;
    the lookup here only gives the common case a precise error before the insert.
    """

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def resolve(self, draft: PurchaseContractDraft) -> DepositContract | None:
        """Return the deposit contract to link, or None when the draft has no link.

        Args:
            draft: Purchase contract terms (already financially valid)

        Returns:
            The eligible DepositContract, or None

        Raises:
            DepositNotFoundError: Deposit contract does not exist
            DepositNotEligibleError: Deposit is not ACTIVE, does not secure a purchase,
                or is for another property
            DepositAlreadyLinkedError: Another purchase contract already references it
            PriceMismatchError: propertyValue differs from the deposit's agreedPrice
        """
        deposit_id = draft.deposit_contract_id
        if deposit_id is None:
            return None

        deposit = self.db.get(DepositContract, deposit_id)
        if deposit is None:
            logger.warning("Link rejected: deposit contract %s not found", deposit_id)
            raise DepositNotFoundError(f"Deposit contract {deposit_id} not found", deposit_id)

        if deposit.status != DepositContractStatus.ACTIVE:
            logger.warning(
                "Link rejected: deposit contract %d is %s", deposit_id, deposit.status.value
            )
            raise DepositNotEligibleError(
                f"Deposit contract {deposit.contract_number} is {deposit.status.value}, "
                "only ACTIVE deposit contracts can be linked",
                deposit_id,
            )

        if deposit.main_contract_type != MainContractType.PURCHASE:
            raise DepositNotEligibleError(
                f"Deposit contract {deposit.contract_number} secures a "
                f"{deposit.main_contract_type.value} contract, not a purchase",
                deposit_id,
            )

        if draft.property_id is not None and deposit.property_id != draft.property_id:
            raise DepositNotEligibleError(
                f"Deposit contract {deposit.contract_number} is for another property",
                deposit_id,
            )

        linked_id = self.find_linked_purchase_id(deposit_id)
        if linked_id is not None:
            logger.warning(
                "Link rejected: deposit contract %d already linked to purchase contract %d",
                deposit_id,
                linked_id,
            )
            raise DepositAlreadyLinkedError(
                f"Deposit contract {deposit.contract_number} is already linked "
                f"to purchase contract {linked_id}",
                deposit_id,
            )

        if draft.property_value != deposit.agreed_price:
            logger.warning(
                "Link rejected: property value %s != agreed price %s (deposit %d)",
                draft.property_value,
                deposit.agreed_price,
                deposit_id,
            )
            raise PriceMismatchError(
                f"Property value {draft.property_value} must equal the deposit's "
                f"agreed price {deposit.agreed_price}",
                deposit_id,
            )

        return deposit

    def find_linked_purchase_id(self, deposit_contract_id: int) -> int | None:
        """Id of the purchase contract referencing this deposit, if any."""
        return self.db.execute(
            select(PurchaseContract.id).where(
                PurchaseContract.deposit_contract_id == deposit_contract_id
            )
        ).scalar_one_or_none()


__all__ = ["LinkageResolver"]
