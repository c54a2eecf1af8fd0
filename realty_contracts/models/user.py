"""User ORM model for the people a contract refers to (staff, customers, owners)."""

from enum import Enum

from sqlalchemy import Enum as SQLEnum
from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from realty_contracts.models import Base, BaseModel


class UserRole(str, Enum):
    """Role of a user within the marketplace."""

    ADMIN = "ADMIN"
    AGENT = "AGENT"
    CUSTOMER = "CUSTOMER"
    OWNER = "OWNER"


class User(Base, BaseModel):
    """
    Minimal projection of the user directory.

    The directory itself (profiles, tiers, KPIs) lives in another service; only the
    fields contracts and payments display or filter on are kept here.
    """

    __tablename__ = "users"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    role: Mapped[UserRole] = mapped_column(
        SQLEnum(UserRole, native_enum=False),
        nullable=False,
        index=True,
        comment="ADMIN/AGENT/CUSTOMER/OWNER",
    )
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    employee_code: Mapped[str | None] = mapped_column(
        String(30), nullable=True, comment="Agents only"
    )

    __table_args__ = (Index("idx_user_role_name", "role", "last_name", "first_name"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.full_name!r}, role={self.role.value})>"


__all__ = ["User", "UserRole"]
