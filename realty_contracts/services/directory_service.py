"""Keyword lookups behind the customer, agent, property and deposit pickers."""

from dataclasses import dataclass

from sqlalchemy import or_
from sqlalchemy.orm import Session

from realty_contracts.models import Property, User, UserRole
from realty_contracts.services.query_service import ContractQueryService


@dataclass(frozen=True)
class Option:
    """One picker entry."""

    value: int
    label: str
    sub_label: str | None = None


class DirectoryService:
    """Resolves `(keyword) -> Option[]` for the contract forms."""

    def __init__(self, db: Session):
        """Initialize with database session."""
        self.db = db

    def _users(self, role: UserRole, keyword: str | None, limit: int) -> list[User]:
        query = self.db.query(User).filter(User.role == role)
        if keyword and keyword.strip():
            pattern = f"%{keyword.strip()}%"
            query = query.filter(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern),
                    User.phone.ilike(pattern),
                    User.employee_code.ilike(pattern),
                )
            )
        return query.order_by(User.first_name, User.last_name, User.id).limit(limit).all()

    def customers(self, keyword: str | None = None, limit: int = 10) -> list[Option]:
        return [
            Option(user.id, user.full_name, user.phone or user.email)
            for user in self._users(UserRole.CUSTOMER, keyword, limit)
        ]

    def agents(self, keyword: str | None = None, limit: int = 10) -> list[Option]:
        return [
            Option(user.id, user.full_name, user.employee_code or user.email)
            for user in self._users(UserRole.AGENT, keyword, limit)
        ]

    def properties(self, keyword: str | None = None, limit: int = 10) -> list[Option]:
        query = self.db.query(Property)
        if keyword and keyword.strip():
            pattern = f"%{keyword.strip()}%"
            query = query.filter(or_(Property.title.ilike(pattern), Property.address.ilike(pattern)))
        listings = query.order_by(Property.title, Property.id).limit(limit).all()
        return [Option(p.id, p.title, p.address) for p in listings]

    def deposit_contracts(
        self, keyword: str | None = None, property_id: int | None = None, limit: int = 10
    ) -> list[Option]:
        """Deposit contracts a new purchase contract may link to."""
        deposits = ContractQueryService(self.db).linkable_deposit_contracts(
            keyword, property_id, limit
        )
        return [
            Option(d.id, d.contract_number, f"{d.property_title} - {d.customer_name}")
            for d in deposits
        ]


__all__ = ["Option", "DirectoryService"]
