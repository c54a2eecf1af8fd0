"""Request-scoped dependencies shared by the routers."""

from fastapi import Header

from realty_contracts.services.errors import PermissionDeniedError


def get_actor_id(x_actor_id: int | None = Header(None, alias="X-Actor-Id")) -> int | None:
    """Acting user from the `X-Actor-Id` header, if sent.

    Authentication happens upstream; the id is only recorded and role-checked.
    """
    return x_actor_id


def require_actor_id(x_actor_id: int | None = Header(None, alias="X-Actor-Id")) -> int:
    if x_actor_id is None:
        raise PermissionDeniedError("X-Actor-Id header is required", field="X-Actor-Id")
    return x_actor_id
