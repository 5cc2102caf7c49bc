"""
Account statement assembly.

Merges an account's documents of every kind into one chronological list
carrying the balance snapshots stored on each document.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from backend.app.db.document_store import DocumentStore
from backend.app.models.ledger_enums import AccountKind
from backend.app.domain.ledger.money import to_money
from backend.app.domain.ledger.rules import ACCOUNT_COLLECTIONS, ACCOUNT_LABELS
from backend.app.domain.ledger.history import collect_account_documents, LedgerDocument
from backend.app.core.exceptions import ResourceNotFoundError


@dataclass
class Statement:
    account: object
    account_kind: AccountKind
    entries: List[LedgerDocument] = field(default_factory=list)

    @property
    def opening_balance(self) -> Decimal:
        return to_money(self.account.opening_balance)

    @property
    def adjustments(self) -> Decimal:
        """Amount added by floor clamps on delete, outside any document."""
        return to_money(self.account.balance_adjustment or 0)

    @property
    def closing_balance(self) -> Decimal:
        return to_money(self.account.balance)


async def build_statement(store: DocumentStore, kind: AccountKind, account_id: int) -> Statement:
    account = await store.get(ACCOUNT_COLLECTIONS[kind], account_id)
    if account is None:
        raise ResourceNotFoundError(ACCOUNT_LABELS[kind], account_id)
    entries = await collect_account_documents(store, kind, account_id)
    return Statement(account=account, account_kind=kind, entries=entries)
