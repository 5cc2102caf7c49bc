"""
Account document history.

Collects every document posted to one account and orders it the way the
ledger applied it: by creation time, not by the user-editable date.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List

from backend.app.db.document_store import DocumentStore
from backend.app.models.ledger_enums import AccountKind, DocumentKind
from backend.app.domain.ledger.rules import LEDGER_RULES, document_kinds_for, signed_effect

KIND_ORDER = {kind: index for index, kind in enumerate(DocumentKind)}


def naive_utc(value: datetime) -> datetime:
    # SQLite hands back naive UTC, PostgreSQL aware values
    if value is None:
        return datetime.min
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@dataclass
class LedgerDocument:
    kind: DocumentKind
    record: Any
    effect: Decimal

    @property
    def number(self) -> str:
        return getattr(self.record, LEDGER_RULES[self.kind].number_field)

    @property
    def creation_key(self):
        return (naive_utc(self.record.created_at), KIND_ORDER[self.kind], self.record.id)

    @property
    def date_key(self):
        return (self.record.date, naive_utc(self.record.created_at), KIND_ORDER[self.kind], self.record.id)


async def collect_account_documents(
    store: DocumentStore,
    account_kind: AccountKind,
    account_id: int
) -> List[LedgerDocument]:
    """
    All documents posted to an account, in creation order.

    Returns with restore_balance off are included with a zero effect.
    """
    entries = []
    for kind, extra_filters in document_kinds_for(account_kind):
        where = {LEDGER_RULES[kind].account_field: account_id, **extra_filters}
        for record in await store.get_all(kind.value, where):
            entries.append(LedgerDocument(kind=kind, record=record, effect=signed_effect(kind, record)))
    entries.sort(key=lambda entry: entry.creation_key)
    return entries
