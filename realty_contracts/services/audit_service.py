"""Audit service for logging contract and payment lifecycle events."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from realty_contracts.models.audit_log import AuditLog


def _jsonable(value: Any) -> Any:
    """Make Decimal/date/Enum values storable in a JSON column."""
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class AuditService:
    """Append-only trail of contract and payment changes.

    Entries ride on the caller's transaction, so a rolled-back transition
    leaves no audit row behind.
    """

    @staticmethod
    def log(
        db: Session,
        entity_type: str,
        entity_id: int,
        action: str,
        actor_id: int | None = None,
        changes: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Stage an audit entry in the session without committing.

        Args:
            db: Database session
            entity_type: "deposit_contract", "purchase_contract" or "payment"
            entity_id: Primary key of the entity
            action: Action performed ("create", "approve", "settle", etc.)
            actor_id: User who performed the action (None for system actions)
            changes: Optional JSON snapshot of changed fields

        Returns:
            Created AuditLog object
        """
        audit = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            changes=_jsonable(changes) if changes else None,
        )
        db.add(audit)
        return audit

    @staticmethod
    def history(db: Session, entity_type: str, entity_id: int) -> list[AuditLog]:
        """Audit entries for one entity, oldest first."""
        return (
            db.query(AuditLog)
            .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.id)
            .all()
        )


__all__ = ["AuditService"]
