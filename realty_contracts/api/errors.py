"""API error handling and response helpers."""

import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from realty_contracts.services.errors import ContractError

logger = logging.getLogger(__name__)


def error_response(error: ContractError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {"error": error.to_dict()}


async def contract_error_handler(request: Request, exc: ContractError) -> JSONResponse:
    """Answer a domain error with its own status code and a structured body."""
    logger.info(f"{request.method} {request.url.path} -> {exc.http_status} {exc.code}")
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ContractError, contract_error_handler)


__all__ = ["error_response", "contract_error_handler", "register_error_handlers"]
