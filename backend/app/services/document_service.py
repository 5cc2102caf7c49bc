"""
Financial document service.

Creates, edits and deletes invoices, receipts, payments and returns, and
posts each change to the owning account through the ledger engine.

Unit of work for every mutation:
    1. take the account lock(s)
    2. write the document (flush)
    3. move the balance through the LedgerEngine (flush)
    4. store the balance snapshot on the document and refresh the
       account's transaction dates (flush)
    5. commit; any failure rolls back all of the above
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select

from backend.app.core.exceptions import LedgerValidationError, ResourceNotFoundError, StoreWriteError
from backend.app.db.document_store import DocumentStore
from backend.app.models.ledger_enums import DocumentKind
from backend.app.models.ledger_columns import utcnow
from backend.app.domain.ledger.documents import prepare_document
from backend.app.domain.ledger.ledger_engine import LedgerEngine, BalanceSnapshot
from backend.app.domain.ledger.rules import (
    ACCOUNT_COLLECTIONS,
    ACCOUNT_LABELS,
    LEDGER_RULES,
    account_ref,
    signed_effect,
)
from backend.app.services.account_locking import account_locks, AccountLockRegistry, AccountKey
from backend.app.services.account_service import refresh_transaction_dates

logger = logging.getLogger(__name__)

# Columns the caller never sets directly
SYSTEM_FIELDS = {"id", "old_balance", "new_balance", "created_by", "created_at", "updated_at"}


@dataclass
class LedgerPosting:
    """What a document mutation did to the ledger, for responses and the action log."""
    document: Any
    account: Optional[AccountKey] = None
    old_balance: Optional[Decimal] = None
    new_balance: Optional[Decimal] = None
    previous_account: Optional[AccountKey] = None
    previous_account_balance: Optional[Decimal] = None
    adjustment: Optional[Decimal] = None

    def audit_metadata(self, number_field: str) -> Dict[str, Any]:
        metadata = {
            "number": getattr(self.document, number_field, None),
            "account_kind": self.account[0].value if self.account else None,
            "account_id": self.account[1] if self.account else None,
            "balance_before": self.old_balance,
            "balance_after": self.new_balance,
        }
        if self.adjustment:
            metadata["balance_adjustment"] = self.adjustment
        if self.previous_account:
            metadata["previous_account_kind"] = self.previous_account[0].value
            metadata["previous_account_id"] = self.previous_account[1]
            metadata["previous_account_balance"] = self.previous_account_balance
        return metadata


class DocumentService:

    def __init__(self, store: DocumentStore, kind: DocumentKind, locks: AccountLockRegistry = account_locks):
        self.store = store
        self.kind = kind
        self.rule = LEDGER_RULES[kind]
        self.collection = kind.value
        self.model = store.model_for(self.collection)
        self.engine = LedgerEngine(store)
        self.locks = locks

    # ---- Queries ----------------------------------------------------------

    async def get(self, document_id: int, for_update: bool = False):
        document = await self.store.get(self.collection, document_id, for_update=for_update)
        if document is None:
            raise ResourceNotFoundError(self.rule.label, document_id)
        return document

    async def list_documents(
        self,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        page_size: int = 50
    ) -> Tuple[List[Any], int]:
        """Paginated documents, newest first. Filters are column equality matches."""
        where = {key: value for key, value in (filters or {}).items() if value is not None}
        total = await self.store.count(self.collection, where)
        items = await self.store.get_all(
            self.collection,
            where,
            order_by=["-created_at", "-id"],
            limit=page_size,
            offset=(page - 1) * page_size
        )
        return items, total

    async def next_number(self, year: Optional[int] = None) -> str:
        """Next PREFIX-YYYY-NNN number for the given (default current) year."""
        year = year or datetime.now(timezone.utc).year
        prefix = f"{self.rule.number_prefix}-{year}-"
        column = getattr(self.model, self.rule.number_field)
        numbers = await self.store.scalars(select(column).where(column.like(f"{prefix}%")))
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        suffixes = [int(match.group(1)) for match in (pattern.match(number) for number in numbers) if match]
        return f"{prefix}{max(suffixes, default=0) + 1:03d}"

    # ---- Internal helpers -------------------------------------------------

    async def _ensure_account(self, ref: Optional[AccountKey]) -> None:
        if ref is None:
            return
        kind, account_id = ref
        if await self.store.get(ACCOUNT_COLLECTIONS[kind], account_id) is None:
            raise ResourceNotFoundError(ACCOUNT_LABELS[kind], account_id)

    def _editable_values(self, document) -> Dict[str, Any]:
        return {
            column.key: getattr(document, column.key)
            for column in self.model.__table__.columns
            if column.key not in SYSTEM_FIELDS and column.key != self.rule.number_field
        }

    async def _write_snapshot(self, document_id: int, snapshot: Optional[BalanceSnapshot]) -> None:
        values = {
            "old_balance": snapshot.old_balance if snapshot else None,
            "new_balance": snapshot.new_balance if snapshot else None,
        }
        await self._checked(self.store.update(self.collection, document_id, values), "update")

    async def _checked(self, write, operation: str):
        result = await write
        if not result.success:
            raise StoreWriteError(operation, self.collection, result.error)
        return result

    async def _refresh_dates(self, *refs: Optional[AccountKey]) -> None:
        for ref in {ref for ref in refs if ref is not None}:
            await refresh_transaction_dates(self.store, ref[0], ref[1])

    # ---- Mutations --------------------------------------------------------

    async def create(self, values: Dict[str, Any], actor: Optional[str] = None) -> LedgerPosting:
        """
        Create a document and post it to its account.

        The document number sequence is locked together with the account so
        two concurrent creates never draw the same number.
        """
        prepared = prepare_document(self.kind, values)
        ref = account_ref(self.kind, prepared)
        effect = signed_effect(self.kind, prepared)

        async with self.locks.hold(ref, (self.kind, 0)):
            try:
                await self._ensure_account(ref)
                prepared.pop(self.rule.number_field, None)
                record = {
                    **prepared,
                    self.rule.number_field: await self.next_number(),
                    "old_balance": None,
                    "new_balance": None,
                    "created_by": actor,
                }
                result = await self._checked(self.store.insert(self.collection, record), "insert")

                snapshot = None
                if ref is not None:
                    snapshot = await self.engine.apply_new_document(ref[0], ref[1], effect)
                await self._write_snapshot(result.id, snapshot)
                await self._refresh_dates(ref)
                await self.store.commit()
            except BaseException:
                await self.store.rollback()
                raise

        document = result.record
        logger.info(
            "%s %s created (account=%s, effect=%s)",
            self.rule.label, getattr(document, self.rule.number_field), ref, effect
        )
        return LedgerPosting(
            document=document,
            account=ref,
            old_balance=snapshot.old_balance if snapshot else None,
            new_balance=snapshot.new_balance if snapshot else None,
        )

    async def update(self, document_id: int, values: Dict[str, Any]) -> LedgerPosting:
        """
        Edit a document and re-post it.

        Same account: this document's old effect is undone and the new one
        applied. Account changed: reversed on the old account, applied fresh
        on the new one. Other documents' snapshots are never touched.
        """
        while True:
            current = await self.get(document_id)
            old_ref = account_ref(self.kind, current)
            merged = {**self._editable_values(current), **values}
            prepared = prepare_document(self.kind, merged)
            new_ref = account_ref(self.kind, prepared)

            async with self.locks.hold(old_ref, new_ref):
                try:
                    existing = await self.get(document_id, for_update=True)
                    if account_ref(self.kind, existing) != old_ref:
                        # Moved to another account while we waited for the lock
                        continue

                    old_effect = signed_effect(self.kind, existing)
                    new_effect = signed_effect(self.kind, prepared)
                    await self._ensure_account(new_ref)

                    prepared.pop(self.rule.number_field, None)
                    prepared["updated_at"] = utcnow()
                    result = await self._checked(
                        self.store.update(self.collection, document_id, prepared), "update"
                    )

                    posting = await self._repost(old_ref, new_ref, old_effect, new_effect)
                    posting.document = result.record
                    await self._write_snapshot(
                        document_id,
                        BalanceSnapshot(posting.old_balance, posting.new_balance) if new_ref else None
                    )
                    await self._refresh_dates(old_ref, new_ref)
                    await self.store.commit()
                except BaseException:
                    await self.store.rollback()
                    raise

            logger.info(
                "%s %s updated (account=%s, effect %s -> %s)",
                self.rule.label, getattr(posting.document, self.rule.number_field),
                new_ref, old_effect, new_effect
            )
            return posting

    async def _repost(
        self,
        old_ref: Optional[AccountKey],
        new_ref: Optional[AccountKey],
        old_effect: Decimal,
        new_effect: Decimal
    ) -> LedgerPosting:
        posting = LedgerPosting(document=None, account=new_ref)

        if old_ref is not None and new_ref is not None:
            account_changed = old_ref != new_ref
            snapshot = await self.engine.reapply_edited_document(
                new_ref[0], new_ref[1], old_effect, new_effect,
                account_changed=account_changed,
                old_account_id=old_ref[1],
                old_kind=old_ref[0]
            )
            if account_changed:
                posting.previous_account = old_ref
                posting.previous_account_balance = snapshot.previous_account_balance
        elif new_ref is not None:
            # Previously paid to a free-text payee
            snapshot = await self.engine.apply_new_document(new_ref[0], new_ref[1], new_effect)
        elif old_ref is not None:
            posting.previous_account = old_ref
            reversal = await self.engine.reverse_document(old_ref[0], old_ref[1], old_effect)
            posting.previous_account_balance = reversal.new_balance
            return posting
        else:
            return posting

        posting.old_balance = snapshot.old_balance
        posting.new_balance = snapshot.new_balance
        return posting

    async def delete(self, document_id: int, clamp: bool = False) -> LedgerPosting:
        """
        Delete a document and take its effect back off the account.

        With clamp, the balance stops at the document kind's reversal floor
        and the difference is recorded as a balance adjustment. Kinds without
        a floor reject clamping.

        Returns a posting whose balances are the account balance before and
        after the reversal.
        """
        if clamp and self.rule.reversal_floor is None:
            raise LedgerValidationError(
                f"{self.rule.label} deletions cannot clamp the balance",
                {"field": "clamp"}
            )
        floor = self.rule.reversal_floor if clamp else None

        while True:
            current = await self.get(document_id)
            ref = account_ref(self.kind, current)

            async with self.locks.hold(ref):
                try:
                    existing = await self.get(document_id, for_update=True)
                    if account_ref(self.kind, existing) != ref:
                        continue
                    effect = signed_effect(self.kind, existing)
                    await self._checked(self.store.delete(self.collection, document_id), "delete")

                    posting = LedgerPosting(document=existing, account=ref)
                    if ref is not None:
                        reversal = await self.engine.reverse_document(ref[0], ref[1], effect, floor=floor)
                        posting.old_balance = reversal.old_balance
                        posting.new_balance = reversal.new_balance
                        posting.adjustment = reversal.adjustment
                    await self._refresh_dates(ref)
                    await self.store.commit()
                except BaseException:
                    await self.store.rollback()
                    raise

            logger.info(
                "%s %s deleted (account=%s, reversed %s)",
                self.rule.label, getattr(existing, self.rule.number_field), ref, effect
            )
            return posting
