"""
Ledger enumerations.

Account kinds, document kinds and return directions shared by models,
schemas and the ledger engine.
"""

import enum


class AccountKind(str, enum.Enum):
    """Which account table a ledger belongs to."""
    CUSTOMER = "customer"
    SUPPLIER = "supplier"


class AccountStatus(str, enum.Enum):
    """Account activity status."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class DocumentKind(str, enum.Enum):
    """Financial document collections."""
    SALES_INVOICE = "sales_invoices"
    PURCHASE_INVOICE = "purchase_invoices"
    RECEIPT = "receipts"
    PAYMENT = "payments"
    RETURN = "returns"


class ReturnType(str, enum.Enum):
    """Direction of a goods return."""
    FROM_CUSTOMER = "from_customer"  # Customer gives goods back, their debt shrinks
    TO_SUPPLIER = "to_supplier"  # We give goods back, our debt shrinks
