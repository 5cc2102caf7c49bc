"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import accounts, documents, action_logs, admin_ledger

router = APIRouter()

# Accounts
router.include_router(accounts.customers_router)
router.include_router(accounts.suppliers_router)

# Financial documents
router.include_router(documents.sales_invoices_router)
router.include_router(documents.purchase_invoices_router)
router.include_router(documents.receipts_router)
router.include_router(documents.payments_router)
router.include_router(documents.returns_router)

# Audit trail
router.include_router(action_logs.router)

# Administrative balance repair
router.include_router(admin_ledger.router)
