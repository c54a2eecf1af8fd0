"""Shared pydantic building blocks: camelCase models, money and the list envelope."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from realty_contracts.models import UserRole
from realty_contracts.services.validation_service import MAX_AMOUNT

# Currency travels as a plain JSON number
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

# Request amounts must fit Numeric(18, 2); sign rules are checked by the services
MoneyInput = Annotated[Money, Field(gt=-MAX_AMOUNT, lt=MAX_AMOUNT)]

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Paging(CamelModel):
    page: int
    size: int
    total: int
    total_pages: int


class PageResponse(CamelModel, Generic[T]):
    """List envelope: `{"data": [...], "paging": {...}}`."""

    data: list[T]
    paging: Paging

    @classmethod
    def from_page(cls, page, item_schema: type[BaseModel]) -> "PageResponse":
        return cls(
            data=[item_schema.model_validate(item) for item in page.items],
            paging=Paging(
                page=page.page,
                size=page.size,
                total=page.total,
                total_pages=page.total_pages,
            ),
        )


class PartyRef(CamelModel):
    """A user as shown on a contract or payment."""

    id: int
    full_name: str
    role: UserRole
    email: str | None = None
    phone: str | None = None


class PropertyRef(CamelModel):
    id: int
    title: str
    address: str | None = None
    price: Money | None = None
    owner_id: int


class OptionResponse(CamelModel):
    """Picker entry."""

    value: int
    label: str
    sub_label: str | None = None


class AuditEntryResponse(CamelModel):
    id: int
    action: str
    actor_id: int | None = None
    changes: dict | None = None
    created_at: datetime
