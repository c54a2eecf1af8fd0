"""Audit log model for tracking contract and payment lifecycle events."""

from typing import Any

from sqlalchemy import JSON, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from realty_contracts.models import Base, BaseModel


class AuditLog(Base, BaseModel):
    """Audit log entry for tracking changes to contracts and payments.

    Records who (actor_id) did what (action) to which entity (entity_type, entity_id)
    and optional field snapshots (changes). Contracts are never deleted, so this
    table plus the terminal status is the full history of a contract.
    """

    __tablename__ = "audit_logs"

    entity_type: Mapped[str] = mapped_column(String(40), index=True)
    """Entity type being audited: "deposit_contract", "purchase_contract", "payment"."""

    entity_id: Mapped[int] = mapped_column(index=True)
    """Primary key of the entity being audited."""

    action: Mapped[str] = mapped_column(String(40))
    """Action performed: "create", "approve", "void", "settle", etc."""

    actor_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True)
    """User who performed the action. None for system actions."""

    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    """Optional JSON snapshot of changed fields: {"status": ["DRAFT", "WAITING_OFFICIAL"]}."""

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, entity_type={self.entity_type}, entity_id={self.entity_id}, "
            f"action={self.action}, actor_id={self.actor_id}, created_at={self.created_at})>"
        )


__all__ = ["AuditLog"]
