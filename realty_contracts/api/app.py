"""Realty contracts FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from realty_contracts.api.errors import register_error_handlers
from realty_contracts.api.routes import (
    deposit_contracts,
    options,
    parties,
    payments,
    purchase_contracts,
)
from realty_contracts.config import settings
from realty_contracts.models import Base
from realty_contracts.services import engine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    # Startup: Initialize database tables
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized")
    yield
    logger.info("Application shutting down")


app = FastAPI(
    title=settings.api_title,
    description="Deposit and purchase contract lifecycle with its payment ledger",
    version=settings.api_version,
    lifespan=lifespan,
)

register_error_handlers(app)

# Include routers
app.include_router(deposit_contracts.router)
app.include_router(purchase_contracts.router)
app.include_router(parties.router)
app.include_router(payments.router)
app.include_router(payments.ledger_router)
app.include_router(options.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok"}
