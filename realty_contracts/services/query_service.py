"""Filterable, paginated read access to deposit and purchase contracts."""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, exists, func, or_, select
from sqlalchemy.orm import Session, selectinload

from realty_contracts.config import settings
from realty_contracts.models import (
    DepositContract,
    DepositContractStatus,
    MainContractType,
    Property,
    PurchaseContract,
    PurchaseContractStatus,
    User,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of results; `page` is 1-based."""

    items: list[T]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0


def clamp_paging(page: int | None, size: int | None) -> tuple[int, int]:
    """Normalize paging input: page >= 1, 1 <= size <= max_page_size."""
    page = page if page and page > 0 else 1
    size = size if size and size > 0 else settings.default_page_size
    return page, min(size, settings.max_page_size)


def paginate(db: Session, stmt: Select, page: int | None, size: int | None) -> Page:
    """Run `stmt` for one page and count the full result."""
    page, size = clamp_paging(page, size)
    total = db.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()
    items = db.execute(stmt.offset((page - 1) * size).limit(size)).scalars().all()
    return Page(items=list(items), page=page, size=size, total=total)


@dataclass
class DepositContractFilters:
    """Filters for listing deposit contracts."""

    search: str | None = None
    statuses: list[DepositContractStatus] = field(default_factory=list)
    main_contract_types: list[MainContractType] = field(default_factory=list)
    customer_id: int | None = None
    agent_id: int | None = None
    property_id: int | None = None
    owner_id: int | None = None
    start_date_from: date | None = None
    start_date_to: date | None = None
    end_date_from: date | None = None
    end_date_to: date | None = None
    linked: bool | None = None
    page: int | None = None
    size: int | None = None
    sort_by: str = "createdAt"
    sort_direction: str = "DESC"


@dataclass
class PurchaseContractFilters:
    """Filters for listing purchase contracts."""

    search: str | None = None
    statuses: list[PurchaseContractStatus] = field(default_factory=list)
    customer_id: int | None = None
    agent_id: int | None = None
    property_id: int | None = None
    owner_id: int | None = None
    start_date_from: date | None = None
    start_date_to: date | None = None
    has_deposit_contract: bool | None = None
    page: int | None = None
    size: int | None = None
    sort_by: str = "createdAt"
    sort_direction: str = "DESC"


_DEPOSIT_SORT = {
    "createdAt": DepositContract.created_at,
    "startDate": DepositContract.start_date,
    "endDate": DepositContract.end_date,
    "contractNumber": DepositContract.contract_number,
    "depositAmount": DepositContract.deposit_amount,
    "agreedPrice": DepositContract.agreed_price,
    "status": DepositContract.status,
}

_PURCHASE_SORT = {
    "createdAt": PurchaseContract.created_at,
    "startDate": PurchaseContract.start_date,
    "contractNumber": PurchaseContract.contract_number,
    "propertyValue": PurchaseContract.property_value,
    "status": PurchaseContract.status,
}


def _order(columns: dict[str, Any], sort_by: str, direction: str, model) -> list:
    column = columns.get(sort_by)
    if column is None:
        raise ValueError(f"Cannot sort by {sort_by!r}; choose one of {sorted(columns)}")
    ordered = column.asc() if direction.upper() == "ASC" else column.desc()
    # Tie-break on id so paging is stable
    return [ordered, model.id.desc()]


def _search_clause(model, keyword: str):
    pattern = f"%{keyword.strip()}%"
    return or_(
        model.contract_number.ilike(pattern),
        Property.title.ilike(pattern),
        User.first_name.ilike(pattern),
        User.last_name.ilike(pattern),
    )


class ContractQueryService:
    """Read-side queries over both contract types.

    Used by the list endpoints and by the deposit picker that feeds purchase
    contract linking.
    """

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def _base(self, model) -> Select:
        return (
            select(model)
            .join(model.listing)
            .join(model.customer)
            .options(
                selectinload(model.listing),
                selectinload(model.customer),
                selectinload(model.agent),
            )
        )

    def list_deposit_contracts(self, filters: DepositContractFilters) -> Page[DepositContract]:
        """Page of deposit contracts matching all given filters."""
        stmt = self._base(DepositContract).options(selectinload(DepositContract.purchase_contract))

        if filters.search and filters.search.strip():
            stmt = stmt.where(_search_clause(DepositContract, filters.search))
        if filters.statuses:
            stmt = stmt.where(DepositContract.status.in_(filters.statuses))
        if filters.main_contract_types:
            stmt = stmt.where(DepositContract.main_contract_type.in_(filters.main_contract_types))
        if filters.customer_id is not None:
            stmt = stmt.where(DepositContract.customer_id == filters.customer_id)
        if filters.agent_id is not None:
            stmt = stmt.where(DepositContract.agent_id == filters.agent_id)
        if filters.property_id is not None:
            stmt = stmt.where(DepositContract.property_id == filters.property_id)
        if filters.owner_id is not None:
            stmt = stmt.where(Property.owner_id == filters.owner_id)
        if filters.start_date_from:
            stmt = stmt.where(DepositContract.start_date >= filters.start_date_from)
        if filters.start_date_to:
            stmt = stmt.where(DepositContract.start_date <= filters.start_date_to)
        if filters.end_date_from:
            stmt = stmt.where(DepositContract.end_date >= filters.end_date_from)
        if filters.end_date_to:
            stmt = stmt.where(DepositContract.end_date <= filters.end_date_to)
        if filters.linked is not None:
            linked = exists().where(PurchaseContract.deposit_contract_id == DepositContract.id)
            stmt = stmt.where(linked if filters.linked else ~linked)

        stmt = stmt.order_by(
            *_order(_DEPOSIT_SORT, filters.sort_by, filters.sort_direction, DepositContract)
        )
        result = paginate(self.db, stmt, filters.page, filters.size)
        logger.debug(
            f"Listed deposit contracts: page={result.page} size={result.size} "
            f"total={result.total}"
        )
        return result

    def list_purchase_contracts(self, filters: PurchaseContractFilters) -> Page[PurchaseContract]:
        """Page of purchase contracts matching all given filters."""
        stmt = self._base(PurchaseContract).options(
            selectinload(PurchaseContract.deposit_contract)
        )

        if filters.search and filters.search.strip():
            stmt = stmt.where(_search_clause(PurchaseContract, filters.search))
        if filters.statuses:
            stmt = stmt.where(PurchaseContract.status.in_(filters.statuses))
        if filters.customer_id is not None:
            stmt = stmt.where(PurchaseContract.customer_id == filters.customer_id)
        if filters.agent_id is not None:
            stmt = stmt.where(PurchaseContract.agent_id == filters.agent_id)
        if filters.property_id is not None:
            stmt = stmt.where(PurchaseContract.property_id == filters.property_id)
        if filters.owner_id is not None:
            stmt = stmt.where(Property.owner_id == filters.owner_id)
        if filters.start_date_from:
            stmt = stmt.where(PurchaseContract.start_date >= filters.start_date_from)
        if filters.start_date_to:
            stmt = stmt.where(PurchaseContract.start_date <= filters.start_date_to)
        if filters.has_deposit_contract is not None:
            if filters.has_deposit_contract:
                stmt = stmt.where(PurchaseContract.deposit_contract_id.is_not(None))
            else:
                stmt = stmt.where(PurchaseContract.deposit_contract_id.is_(None))

        stmt = stmt.order_by(
            *_order(_PURCHASE_SORT, filters.sort_by, filters.sort_direction, PurchaseContract)
        )
        return paginate(self.db, stmt, filters.page, filters.size)

    def linkable_deposit_contracts(
        self,
        keyword: str | None = None,
        property_id: int | None = None,
        limit: int = 10,
    ) -> list[DepositContract]:
        """ACTIVE, unlinked deposit contracts securing a purchase.

        This is what the purchase form offers for linking. The result can be
        stale by submission time, so LinkageResolver re-checks everything.
        """
        stmt = (
            self._base(DepositContract)
            .where(
                DepositContract.status == DepositContractStatus.ACTIVE,
                DepositContract.main_contract_type == MainContractType.PURCHASE,
                ~exists().where(PurchaseContract.deposit_contract_id == DepositContract.id),
            )
            .order_by(DepositContract.created_at.desc(), DepositContract.id.desc())
            .limit(limit)
        )
        if keyword and keyword.strip():
            stmt = stmt.where(_search_clause(DepositContract, keyword))
        if property_id is not None:
            stmt = stmt.where(DepositContract.property_id == property_id)
        return list(self.db.execute(stmt).scalars().all())


__all__ = [
    "Page",
    "paginate",
    "clamp_paging",
    "DepositContractFilters",
    "PurchaseContractFilters",
    "ContractQueryService",
]
