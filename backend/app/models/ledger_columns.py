"""
Shared column sets for accounts and financial documents.

Customers and suppliers have the same shape; every financial document
carries the same balance snapshot and audit columns.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, Text, Enum
from backend.app.models.ledger_enums import AccountStatus

# Egyptian pounds with piastre precision
Money = Numeric(14, 2)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccountMixin:
    """
    Columns common to customers and suppliers.

    `balance` is maintained incrementally by the ledger engine and is
    never written by account edits.
    """

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)

    # Financials
    opening_balance = Column(Money, nullable=False, default=0)
    balance = Column(Money, nullable=False, default=0)
    # Sum of floor clamps applied on delete; part of the balance but of no document
    balance_adjustment = Column(Money, nullable=False, default=0)

    status = Column(Enum(AccountStatus), default=AccountStatus.ACTIVE, nullable=False, index=True)
    first_transaction_date = Column(Date, nullable=True)
    last_transaction_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class DocumentMixin:
    """
    Columns common to every balance-affecting document.

    old_balance / new_balance are snapshots taken when the document was
    (re)applied; they stay as written when other documents change.
    """

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    date = Column(Date, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    # Balance snapshots (NULL when the document touches no ledger)
    old_balance = Column(Money, nullable=True)
    new_balance = Column(Money, nullable=True)

    created_by = Column(String(100), nullable=True)

    # created_at is the authoritative ordering key; `date` is user-editable
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
