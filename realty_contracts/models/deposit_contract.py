"""Deposit contract ORM model: earnest money securing a future purchase or rental."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from realty_contracts.models import Base, BaseModel


class MainContractType(str, Enum):
    """Which main contract a deposit is securing."""

    PURCHASE = "PURCHASE"
    RENTAL = "RENTAL"


class DepositContractStatus(str, Enum):
    """Lifecycle status of a deposit contract."""

    DRAFT = "DRAFT"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    WAITING_OFFICIAL = "WAITING_OFFICIAL"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    VOIDED = "VOIDED"


class CancelledBy(str, Enum):
    """Party that cancelled a contract. Administrators void instead."""

    CUSTOMER = "CUSTOMER"
    OWNER = "OWNER"


class DepositContract(Base, BaseModel):
    """Model representing a deposit contract.

    `agreed_price` is the total price when the deposit secures a PURCHASE and the
    monthly rent when it secures a RENTAL. `cancellation_penalty` is what the
    owner forfeits on an owner-initiated cancellation; a customer always forfeits
    the whole deposit.

    The one-to-one link to a purchase contract is stored on the purchase side
    (`purchase_contracts.deposit_contract_id`, unique).
    """

    __tablename__ = "deposit_contracts"

    contract_number: Mapped[str] = mapped_column(
        String(40), nullable=False, unique=True, index=True
    )

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"), nullable=False, index=True
    )
    customer_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    agent_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)

    main_contract_type: Mapped[MainContractType] = mapped_column(
        SQLEnum(MainContractType, native_enum=False),
        nullable=False,
    )
    deposit_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    agreed_price: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
        comment="Total price (PURCHASE) or monthly rent (RENTAL)",
    )
    cancellation_penalty: Mapped[Decimal] = mapped_column(
        Numeric(18, 2),
        nullable=False,
        comment="Forfeited by the owner on owner-initiated cancellation",
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    special_terms: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[DepositContractStatus] = mapped_column(
        SQLEnum(DepositContractStatus, native_enum=False),
        nullable=False,
        default=DepositContractStatus.DRAFT,
        index=True,
    )
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_by: Mapped[CancelledBy | None] = mapped_column(
        SQLEnum(CancelledBy, native_enum=False), nullable=True
    )

    # Relationships
    listing: Mapped["Property"] = relationship("Property")  # noqa: F821
    customer: Mapped["User"] = relationship("User", foreign_keys=[customer_id])  # noqa: F821
    agent: Mapped["User | None"] = relationship("User", foreign_keys=[agent_id])  # noqa: F821
    purchase_contract: Mapped["PurchaseContract | None"] = relationship(  # noqa: F821
        "PurchaseContract",
        back_populates="deposit_contract",
        uselist=False,
    )
    payments: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="deposit_contract",
        order_by="Payment.id",
    )

    __table_args__ = (
        CheckConstraint("deposit_amount > 0", name="ck_deposit_amount_positive"),
        CheckConstraint("agreed_price > 0", name="ck_deposit_agreed_price_positive"),
        CheckConstraint("cancellation_penalty > 0", name="ck_deposit_penalty_positive"),
        Index("idx_deposit_status_start", "status", "start_date"),
    )

    @property
    def owner(self):
        return self.listing.owner if self.listing else None

    @property
    def owner_id(self) -> int | None:
        return self.listing.owner_id if self.listing else None

    @property
    def property_title(self) -> str | None:
        return self.listing.title if self.listing else None

    @property
    def customer_name(self) -> str | None:
        return self.customer.full_name if self.customer else None

    @property
    def linked_to_main_contract(self) -> bool:
        return self.purchase_contract is not None

    @property
    def linked_purchase_contract_id(self) -> int | None:
        return self.purchase_contract.id if self.purchase_contract else None

    def __repr__(self) -> str:
        return (
            f"<DepositContract(id={self.id}, number={self.contract_number}, "
            f"status={self.status.value}, deposit_amount={self.deposit_amount})>"
        )


__all__ = ["DepositContract", "DepositContractStatus", "MainContractType", "CancelledBy"]
