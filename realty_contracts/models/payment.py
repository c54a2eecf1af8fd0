"""Payment ORM model: one obligation or settlement in a contract's ledger."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric
from sqlalchemy import Enum as SQLEnum
from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from realty_contracts.models import Base, BaseModel


class ContractKind(str, Enum):
    """Which contract table a payment belongs to."""

    DEPOSIT = "DEPOSIT"
    PURCHASE = "PURCHASE"


class PaymentType(str, Enum):
    """Purpose of a payment."""

    DEPOSIT = "DEPOSIT"
    ADVANCE = "ADVANCE"
    INSTALLMENT = "INSTALLMENT"
    FULL_PAY = "FULL_PAY"
    MONTHLY = "MONTHLY"
    PENALTY = "PENALTY"
    MONEY_SALE = "MONEY_SALE"
    MONEY_RENTAL = "MONEY_RENTAL"
    SALARY = "SALARY"
    BONUS = "BONUS"
    SERVICE_FEE = "SERVICE_FEE"


class PaymentStatus(str, Enum):
    """Payment status.

    SYSTEM_* values record that the system (not a staff member) settled or
    created the row. Business rules only look at `semantic`.
    """

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    SYSTEM_PENDING = "SYSTEM_PENDING"
    SYSTEM_SUCCESS = "SYSTEM_SUCCESS"
    SYSTEM_FAILED = "SYSTEM_FAILED"

    @property
    def semantic(self) -> "PaymentStatus":
        """Collapse SYSTEM_* into PENDING/SUCCESS/FAILED."""
        return PaymentStatus(self.value.removeprefix("SYSTEM_"))

    @property
    def is_system(self) -> bool:
        return self.value.startswith("SYSTEM_")

    @property
    def is_open(self) -> bool:
        return self.semantic is PaymentStatus.PENDING

    def with_provenance(self, system: bool) -> "PaymentStatus":
        """Return the manual or SYSTEM_ variant of this status."""
        base = self.semantic.value
        return PaymentStatus(f"SYSTEM_{base}" if system else base)


class Payment(Base, BaseModel):
    """Model representing a payment obligation and its settlement.

    A payment belongs to at most one contract (deposit or purchase); agent
    payouts (SALARY, BONUS) belong to none. Rows are never deleted: a payment
    that will not happen is closed as FAILED/SYSTEM_FAILED.
    """

    __tablename__ = "payments"

    deposit_contract_id: Mapped[int | None] = mapped_column(
        ForeignKey("deposit_contracts.id"), nullable=True, index=True
    )
    purchase_contract_id: Mapped[int | None] = mapped_column(
        ForeignKey("purchase_contracts.id"), nullable=True, index=True
    )

    payment_type: Mapped[PaymentType] = mapped_column(
        SQLEnum(PaymentType, native_enum=False), nullable=False, index=True
    )
    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, native_enum=False),
        nullable=False,
        default=PaymentStatus.PENDING,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True, index=True)
    paid_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set only when the payment succeeds",
    )

    payer_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)
    payee_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)

    installment_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scheduled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Derived from contract terms by the ledger schedule",
    )
    transaction_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    offset_payment_id: Mapped[int | None] = mapped_column(
        ForeignKey("payments.id"),
        nullable=True,
        comment="Earlier payment whose money settles this row; no new transfer",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    deposit_contract: Mapped["DepositContract | None"] = relationship(  # noqa: F821
        "DepositContract", back_populates="payments"
    )
    purchase_contract: Mapped["PurchaseContract | None"] = relationship(  # noqa: F821
        "PurchaseContract", back_populates="payments"
    )
    payer: Mapped["User | None"] = relationship("User", foreign_keys=[payer_id])  # noqa: F821
    payee: Mapped["User | None"] = relationship("User", foreign_keys=[payee_id])  # noqa: F821

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        CheckConstraint(
            "deposit_contract_id IS NULL OR purchase_contract_id IS NULL",
            name="ck_payment_single_contract",
        ),
        Index("idx_payment_deposit_type", "deposit_contract_id", "payment_type"),
        Index("idx_payment_purchase_type", "purchase_contract_id", "payment_type"),
    )

    @property
    def contract(self):
        return self.deposit_contract or self.purchase_contract

    @property
    def contract_kind(self) -> ContractKind | None:
        if self.deposit_contract_id is not None:
            return ContractKind.DEPOSIT
        if self.purchase_contract_id is not None:
            return ContractKind.PURCHASE
        return None

    @property
    def contract_id(self) -> int | None:
        return self.deposit_contract_id or self.purchase_contract_id

    @property
    def contract_number(self) -> str | None:
        contract = self.contract
        return contract.contract_number if contract else None

    @property
    def property_title(self) -> str | None:
        contract = self.contract
        return contract.property_title if contract else None

    @property
    def payer_name(self) -> str | None:
        return self.payer.full_name if self.payer else None

    @property
    def payee_name(self) -> str | None:
        return self.payee.full_name if self.payee else None

    def __repr__(self) -> str:
        return (
            f"<Payment(id={self.id}, type={self.payment_type.value}, "
            f"status={self.status.value}, amount={self.amount}, "
            f"contract={self.contract_kind}:{self.contract_id})>"
        )


__all__ = ["Payment", "PaymentStatus", "PaymentType", "ContractKind"]
