"""Purchase contract ORM model: the final sale, optionally originating from a deposit."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from realty_contracts.models import Base, BaseModel
from realty_contracts.models.deposit_contract import CancelledBy


class PurchaseContractStatus(str, Enum):
    """Lifecycle status of a purchase contract."""

    DRAFT = "DRAFT"
    WAITING_OFFICIAL = "WAITING_OFFICIAL"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    VOIDED = "VOIDED"


class PurchaseContract(Base, BaseModel):
    """Model representing a purchase contract.

    The owner is not stored: it is always the current owner of the property.
    `deposit_contract_id` is fixed at creation and unique across purchase
    contracts, so a deposit contract is converted at most once.
    """

    __tablename__ = "purchase_contracts"

    contract_number: Mapped[str] = mapped_column(
        String(40), nullable=False, unique=True, index=True
    )

    property_id: Mapped[int] = mapped_column(
        ForeignKey("properties.id"), nullable=False, index=True
    )
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True, comment="Buyer"
    )
    agent_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)

    deposit_contract_id: Mapped[int | None] = mapped_column(
        ForeignKey("deposit_contracts.id"),
        nullable=True,
        unique=True,
        comment="Deposit converted into this contract; immutable after creation",
    )

    property_value: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    advance_payment_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0")
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0")
    )

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    special_terms: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[PurchaseContractStatus] = mapped_column(
        SQLEnum(PurchaseContractStatus, native_enum=False),
        nullable=False,
        default=PurchaseContractStatus.DRAFT,
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
    deposit_contract: Mapped["DepositContract | None"] = relationship(  # noqa: F821
        "DepositContract",
        back_populates="purchase_contract",
    )
    payments: Mapped[list["Payment"]] = relationship(  # noqa: F821
        "Payment",
        back_populates="purchase_contract",
        order_by="Payment.id",
    )

    __table_args__ = (
        CheckConstraint("property_value > 0", name="ck_purchase_value_positive"),
        CheckConstraint("advance_payment_amount >= 0", name="ck_purchase_advance_non_negative"),
        CheckConstraint("commission_amount >= 0", name="ck_purchase_commission_non_negative"),
        CheckConstraint(
            "commission_amount < property_value", name="ck_purchase_commission_below_value"
        ),
        Index("idx_purchase_status_start", "status", "start_date"),
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
    def has_deposit_contract(self) -> bool:
        return self.deposit_contract_id is not None

    @property
    def deposit_contract_status(self):
        return self.deposit_contract.status if self.deposit_contract else None

    def __repr__(self) -> str:
        return (
            f"<PurchaseContract(id={self.id}, number={self.contract_number}, "
            f"status={self.status.value}, property_value={self.property_value}, "
            f"deposit_contract_id={self.deposit_contract_id})>"
        )


__all__ = ["PurchaseContract", "PurchaseContractStatus"]
