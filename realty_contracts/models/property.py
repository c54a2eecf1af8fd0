"""Property ORM model: the listing a contract is signed for."""

from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from realty_contracts.models import Base, BaseModel


class Property(Base, BaseModel):
    """Model representing a listed property with its owner.

    Listing management happens elsewhere; contracts only need the title for
    display and the owner, which purchase contracts derive read-only.
    """

    __tablename__ = "properties"

    owner_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    price: Mapped[Decimal | None] = mapped_column(
        Numeric(18, 2),
        nullable=True,
        comment="Listed price",
    )

    owner: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[owner_id],
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, owner_id={self.owner_id}, title={self.title!r})>"


__all__ = ["Property"]
