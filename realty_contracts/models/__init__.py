"""Declarative base, shared columns and the model registry."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

# Check constraints are named on each model; the rest follow this scheme
NAMING_CONVENTION = {
    "ix": "ix_%(table_name)s_%(column_0_N_name)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel:
    """Surrogate key plus creation/modification stamps shared by every table."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# Model modules import Base from here, so they are registered last
from realty_contracts.models.user import User, UserRole  # noqa: E402
from realty_contracts.models.property import Property  # noqa: E402
from realty_contracts.models.deposit_contract import (  # noqa: E402
    CancelledBy,
    DepositContract,
    DepositContractStatus,
    MainContractType,
)
from realty_contracts.models.purchase_contract import (  # noqa: E402
    PurchaseContract,
    PurchaseContractStatus,
)
from realty_contracts.models.payment import (  # noqa: E402
    ContractKind,
    Payment,
    PaymentStatus,
    PaymentType,
)
from realty_contracts.models.audit_log import AuditLog  # noqa: E402

__all__ = [
    "Base",
    "BaseModel",
    "NAMING_CONVENTION",
    "utcnow",
    "User",
    "UserRole",
    "Property",
    "DepositContract",
    "DepositContractStatus",
    "MainContractType",
    "CancelledBy",
    "PurchaseContract",
    "PurchaseContractStatus",
    "ContractKind",
    "Payment",
    "PaymentStatus",
    "PaymentType",
    "AuditLog",
]
