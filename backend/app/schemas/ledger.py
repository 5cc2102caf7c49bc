"""
Ledger Pydantic schemas: account statements and balance repair results.
"""

from pydantic import BaseModel
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List

from backend.app.models.ledger_enums import AccountKind, DocumentKind


class StatementEntry(BaseModel):
    """One document on an account statement."""
    kind: DocumentKind
    id: int
    number: str
    date: date
    created_at: datetime
    effect: Decimal
    old_balance: Optional[Decimal]
    new_balance: Optional[Decimal]


class StatementResponse(BaseModel):
    """Account statement in the order the ledger applied the documents."""
    account_kind: AccountKind
    account_id: int
    code: str
    name: str
    opening_balance: Decimal
    adjustments: Decimal = Decimal("0")
    closing_balance: Decimal
    entries: List[StatementEntry]


class RecomputeResponse(BaseModel):
    """History re-sum for one account."""
    account_kind: AccountKind
    account_id: int
    stored_balance: Decimal
    recomputed_balance: Decimal
    drift: Decimal
    document_count: int
    applied: bool


class RecomputeAllResponse(BaseModel):
    dry_run: bool
    accounts_checked: int
    drifted: int
    results: List[RecomputeResponse]
