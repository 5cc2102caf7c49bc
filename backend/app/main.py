"""
FastAPI Application Entry Point.

This is the main application file for the Accounting Ledger Backend.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from backend.app.core.config import settings
from backend.app.core.observability import ObservabilityMiddleware, configure_logging
from backend.app.api.v1.router import router as api_v1_router
from backend.app.db.session import engine, Base, AsyncSessionLocal
from backend.app.db.document_store import DocumentStore
from backend.app.models.ledger_enums import AccountKind
from backend.app.services.account_service import AccountService
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from backend.app.models.customer import Customer
from backend.app.models.supplier import Supplier
from backend.app.models.sales_invoice import SalesInvoice
from backend.app.models.purchase_invoice import PurchaseInvoice
from backend.app.models.receipt import Receipt
from backend.app.models.payment import Payment
from backend.app.models.return_record import ReturnRecord
from backend.app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables.
    3. Ensures the cash customer exists.
    4. Disposes the engine on shutdown.
    """
    configure_logging()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        await AccountService(DocumentStore(session), AccountKind.CUSTOMER).ensure_cash_customer()

    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await engine.dispose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Running-balance ledger for customers and suppliers",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to the Accounting Ledger Backend API",
        "docs": "/docs",
        "health": "/health",
    }
