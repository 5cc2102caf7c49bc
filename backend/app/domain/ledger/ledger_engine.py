"""
Ledger Engine (Domain Logic).

Maintains each account's running balance as documents are created, edited
and deleted, and hands back the balance snapshot the document stores.

The incrementally maintained `balance` column is the source of truth.
`recompute_from_history` re-sums an account's documents and exists for
administrative repair only; nothing on the create/edit/delete path calls it.

Callers must hold the account lock (see services.account_locking) and own
the transaction: the engine writes through the store (flush only) so the
balance change commits or rolls back together with the document.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from backend.app.core.exceptions import LedgerValidationError, ResourceNotFoundError, StoreWriteError
from backend.app.db.document_store import DocumentStore
from backend.app.models.ledger_enums import AccountKind
from backend.app.domain.ledger.money import to_money, ZERO
from backend.app.domain.ledger.rules import ACCOUNT_COLLECTIONS, ACCOUNT_LABELS
from backend.app.domain.ledger.history import collect_account_documents, LedgerDocument

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceSnapshot:
    """
    Account balance immediately before and after a document.

    adjustment is what a floor clamp added on reversal. previous_account_balance
    is set when an edit moved the document off another account.
    """
    old_balance: Decimal
    new_balance: Decimal
    adjustment: Decimal = ZERO
    previous_account_balance: Optional[Decimal] = None


@dataclass
class RecomputeResult:
    """Outcome of a history re-sum for one account."""
    account_kind: AccountKind
    account_id: int
    stored_balance: Decimal
    recomputed_balance: Decimal
    documents: List[LedgerDocument] = field(default_factory=list)
    applied: bool = False

    @property
    def drift(self) -> Decimal:
        return self.stored_balance - self.recomputed_balance


class LedgerEngine:

    def __init__(self, store: DocumentStore):
        self.store = store

    async def _load_account(self, kind: AccountKind, account_id: int):
        account = await self.store.get(ACCOUNT_COLLECTIONS[kind], account_id, for_update=True)
        if account is None:
            raise ResourceNotFoundError(ACCOUNT_LABELS[kind], account_id)
        return account

    async def _write_balance(self, kind: AccountKind, account_id: int, balance: Decimal, **extra) -> None:
        collection = ACCOUNT_COLLECTIONS[kind]
        result = await self.store.update(collection, account_id, {"balance": balance, **extra})
        if not result.success:
            raise StoreWriteError("update", collection, result.error)

    async def apply_new_document(
        self,
        kind: AccountKind,
        account_id: int,
        signed_effect: Decimal
    ) -> BalanceSnapshot:
        """
        Post a new document to an account.

        old_balance is the account's current balance, new_balance is
        old_balance + signed_effect, and new_balance becomes the account's
        balance.
        """
        account = await self._load_account(kind, account_id)
        old_balance = to_money(account.balance)
        new_balance = old_balance + to_money(signed_effect)

        await self._write_balance(kind, account_id, new_balance)

        logger.info(
            "Ledger %s:%s applied %s (%s -> %s)",
            kind.value, account_id, signed_effect, old_balance, new_balance
        )
        return BalanceSnapshot(old_balance=old_balance, new_balance=new_balance)

    async def reapply_edited_document(
        self,
        kind: AccountKind,
        account_id: int,
        old_signed_effect: Decimal,
        new_signed_effect: Decimal,
        account_changed: bool = False,
        old_account_id: Optional[int] = None,
        old_kind: Optional[AccountKind] = None
    ) -> BalanceSnapshot:
        """
        Re-post an edited document ("undo then redo").

        Same account:
            old_balance = balance - old_effect   (this document's effect undone)
            new_balance = old_balance + new_effect
            balance     = new_balance

        Account changed:
            the old effect is reversed on the old account and the new effect
            applied to the new account as a fresh document. The returned
            snapshot carries the old account's resulting balance.
        """
        if account_changed:
            if old_account_id is None:
                raise LedgerValidationError(
                    "The previous account is required when a document changes account",
                    {"field": "old_account_id"}
                )
            reversal = await self.reverse_document(old_kind or kind, old_account_id, old_signed_effect)
            snapshot = await self.apply_new_document(kind, account_id, new_signed_effect)
            return BalanceSnapshot(
                old_balance=snapshot.old_balance,
                new_balance=snapshot.new_balance,
                previous_account_balance=reversal.new_balance
            )

        account = await self._load_account(kind, account_id)
        current = to_money(account.balance)
        old_balance = current - to_money(old_signed_effect)
        new_balance = old_balance + to_money(new_signed_effect)

        await self._write_balance(kind, account_id, new_balance)

        logger.info(
            "Ledger %s:%s re-applied %s -> %s (%s -> %s)",
            kind.value, account_id, old_signed_effect, new_signed_effect, current, new_balance
        )
        return BalanceSnapshot(old_balance=old_balance, new_balance=new_balance)

    async def reverse_document(
        self,
        kind: AccountKind,
        account_id: int,
        signed_effect: Decimal,
        floor: Optional[Decimal] = None
    ) -> BalanceSnapshot:
        """
        Take a document's effect back off an account (used on delete).

        Negative balances are valid ("they owe us" / "we owe them"); the
        result is clamped only when a floor is given. A clamp is added to the
        account's balance_adjustment so opening balance + adjustments + the
        remaining documents still equal the balance.
        """
        account = await self._load_account(kind, account_id)
        current = to_money(account.balance)
        new_balance = current - to_money(signed_effect)
        adjustment = ZERO
        if floor is not None and new_balance < floor:
            adjustment = to_money(floor) - new_balance
            new_balance = to_money(floor)

        if adjustment:
            total_adjustment = to_money(account.balance_adjustment or 0) + adjustment
            await self._write_balance(kind, account_id, new_balance, balance_adjustment=total_adjustment)
            logger.warning(
                "Ledger %s:%s clamped at %s, adjustment %s",
                kind.value, account_id, floor, adjustment
            )
        else:
            await self._write_balance(kind, account_id, new_balance)

        logger.info(
            "Ledger %s:%s reversed %s (%s -> %s)",
            kind.value, account_id, signed_effect, current, new_balance
        )
        return BalanceSnapshot(old_balance=current, new_balance=new_balance, adjustment=adjustment)

    async def recompute_from_history(
        self,
        kind: AccountKind,
        account_id: int,
        dry_run: bool = False
    ) -> RecomputeResult:
        """
        Administrative repair: rebuild the balance from the account's documents.

        Walks opening balance + recorded floor adjustments + every document's
        signed effect in creation order. With dry_run the drift is reported
        and nothing is written.
        """
        account = await self._load_account(kind, account_id)
        documents = await collect_account_documents(self.store, kind, account_id)

        total = to_money(account.opening_balance) + to_money(account.balance_adjustment or 0)
        for document in documents:
            total += document.effect

        result = RecomputeResult(
            account_kind=kind,
            account_id=account_id,
            stored_balance=to_money(account.balance),
            recomputed_balance=total,
            documents=documents
        )

        if result.drift and not dry_run:
            await self._write_balance(kind, account_id, total)
            result.applied = True
            logger.warning(
                "Ledger %s:%s repaired: stored %s, recomputed %s",
                kind.value, account_id, result.stored_balance, total
            )
        return result
