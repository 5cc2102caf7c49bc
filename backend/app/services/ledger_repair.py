"""
Ledger repair service.

Administrative re-sum of account balances from document history. Used by
the admin endpoints and scripts/recompute_balances.py; never by the regular
create/edit/delete path.
"""

import logging
from typing import Iterable, List

from backend.app.db.document_store import DocumentStore
from backend.app.models.ledger_enums import AccountKind
from backend.app.domain.ledger.ledger_engine import LedgerEngine, RecomputeResult
from backend.app.domain.ledger.rules import ACCOUNT_COLLECTIONS
from backend.app.services.account_locking import account_locks, AccountLockRegistry

logger = logging.getLogger(__name__)


async def recompute_account(
    store: DocumentStore,
    kind: AccountKind,
    account_id: int,
    dry_run: bool = False,
    locks: AccountLockRegistry = account_locks
) -> RecomputeResult:
    """Re-sum one account under its lock; a dry run writes nothing."""
    async with locks.hold((kind, account_id)):
        try:
            result = await LedgerEngine(store).recompute_from_history(kind, account_id, dry_run=dry_run)
            await store.commit()
        except BaseException:
            await store.rollback()
            raise
    return result


async def recompute_all(
    store: DocumentStore,
    dry_run: bool = True,
    kinds: Iterable[AccountKind] = tuple(AccountKind),
    locks: AccountLockRegistry = account_locks
) -> List[RecomputeResult]:
    """Re-sum every account of the given kinds. Defaults to a dry run."""
    results = []
    for kind in kinds:
        account_ids = [account.id for account in await store.get_all(ACCOUNT_COLLECTIONS[kind])]
        for account_id in account_ids:
            results.append(await recompute_account(store, kind, account_id, dry_run=dry_run, locks=locks))

    drifted = [result for result in results if result.drift]
    logger.info(
        "Ledger recompute checked %d accounts, %d drifted (dry_run=%s)",
        len(results), len(drifted), dry_run
    )
    return results
