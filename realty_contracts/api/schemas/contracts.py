"""Pydantic schemas for deposit and purchase contracts."""

from datetime import date, datetime

from pydantic import AliasChoices, ConfigDict, Field
from pydantic.alias_generators import to_camel

from realty_contracts.api.schemas.common import (
    CamelModel,
    Money,
    MoneyInput,
    PartyRef,
    PropertyRef,
)
from realty_contracts.api.schemas.payments import PaymentResponse
from realty_contracts.models import (
    CancelledBy,
    DepositContractStatus,
    MainContractType,
    PurchaseContractStatus,
)
from realty_contracts.services.validation_service import (
    DepositContractDraft,
    PurchaseContractDraft,
    make_deposit_draft,
    make_purchase_draft,
)

# Deposit contracts


class DepositContractSummary(CamelModel):
    """Row of the deposit contract list."""

    id: int
    contract_number: str
    property_id: int
    property_title: str | None = None
    customer_id: int
    customer_name: str | None = None
    agent_id: int | None = None
    main_contract_type: MainContractType
    status: DepositContractStatus
    start_date: date
    end_date: date | None = None
    deposit_amount: Money
    agreed_price: Money
    cancellation_penalty: Money
    linked_to_main_contract: bool = False
    created_at: datetime


class DepositContractDetail(DepositContractSummary):
    """Deposit contract with parties, property and payments."""

    special_terms: str | None = None
    cancellation_reason: str | None = None
    cancelled_by: CancelledBy | None = None
    customer: PartyRef
    agent: PartyRef | None = None
    owner: PartyRef | None = None
    property: PropertyRef = Field(validation_alias=AliasChoices("listing", "property"))
    payments: list[PaymentResponse] = []
    linked_purchase_contract_id: int | None = None
    updated_at: datetime


class DepositContractCreate(CamelModel):
    """Payload for POST /api/deposit-contracts.

    Required fields are checked by the validation engine so that every missing
    one is reported together.
    """

    property_id: int | None = None
    customer_id: int | None = None
    agent_id: int | None = None
    main_contract_type: MainContractType | None = None
    deposit_amount: MoneyInput | None = None
    agreed_price: MoneyInput | None = None
    cancellation_penalty: MoneyInput | None = None
    start_date: date | None = None
    end_date: date | None = None
    special_terms: str | None = None

    def to_draft(self) -> DepositContractDraft:
        return make_deposit_draft(**self.model_dump())


class DepositContractUpdate(DepositContractCreate):
    """Payload for PUT /api/deposit-contracts/{id}. Omitted or empty fields are kept."""

    def to_changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# Purchase contracts


class PurchaseContractSummary(CamelModel):
    """Row of the purchase contract list."""

    id: int
    contract_number: str
    property_id: int
    property_title: str | None = None
    customer_id: int
    customer_name: str | None = None
    agent_id: int | None = None
    status: PurchaseContractStatus
    start_date: date
    property_value: Money
    advance_payment_amount: Money
    commission_amount: Money
    has_deposit_contract: bool = False
    deposit_contract_id: int | None = None
    created_at: datetime


class PurchaseContractDetail(PurchaseContractSummary):
    """Purchase contract with parties, property, payments and the linked deposit."""

    special_terms: str | None = None
    cancellation_reason: str | None = None
    cancelled_by: CancelledBy | None = None
    customer: PartyRef
    agent: PartyRef | None = None
    owner: PartyRef | None = None
    property: PropertyRef = Field(validation_alias=AliasChoices("listing", "property"))
    payments: list[PaymentResponse] = []
    deposit_contract_status: DepositContractStatus | None = None
    updated_at: datetime


class PurchaseContractCreate(CamelModel):
    """Payload for POST /api/purchase-contracts."""

    property_id: int | None = None
    customer_id: int | None = None
    agent_id: int | None = None
    deposit_contract_id: int | None = None
    property_value: MoneyInput | None = None
    advance_payment_amount: MoneyInput | None = None
    commission_amount: MoneyInput | None = None
    start_date: date | None = None
    special_terms: str | None = None

    def to_draft(self) -> PurchaseContractDraft:
        return make_purchase_draft(**self.model_dump())


class PurchaseContractUpdate(CamelModel):
    """Payload for PUT /api/purchase-contracts/{id}.

    The deposit link is fixed at creation, so `depositContractId` is rejected.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True, extra="forbid"
    )

    property_id: int | None = None
    customer_id: int | None = None
    agent_id: int | None = None
    property_value: MoneyInput | None = None
    advance_payment_amount: MoneyInput | None = None
    commission_amount: MoneyInput | None = None
    start_date: date | None = None
    special_terms: str | None = None

    def to_changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# Transitions


class VoidRequest(CamelModel):
    reason: str | None = None


class CancelRequest(CamelModel):
    """Payload for a party's cancellation."""

    cancelled_by: CancelledBy
    reason: str | None = None
