"""
Account locking service.

Serializes balance read-modify-write cycles per account. Every ledger
mutation holds the lock of each account it touches from the first balance
read until its transaction commits.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional, Tuple, Union

from backend.app.models.ledger_enums import AccountKind, DocumentKind

logger = logging.getLogger(__name__)

# (AccountKind, account id) for balances, (DocumentKind, 0) for number sequences
AccountKey = Tuple[Union[AccountKind, DocumentKind], int]


class AccountLockRegistry:
    """
    In-process registry of one asyncio.Lock per account.

    Locks are created on demand and dropped once nobody holds or waits
    for them, so the registry only ever contains accounts in use.
    """

    def __init__(self):
        self._locks: Dict[AccountKey, asyncio.Lock] = {}
        self._refcounts: Dict[AccountKey, int] = {}

    def _checkout(self, key: AccountKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._refcounts[key] = self._refcounts.get(key, 0) + 1
        return lock

    def _checkin(self, key: AccountKey) -> None:
        remaining = self._refcounts[key] - 1
        if remaining:
            self._refcounts[key] = remaining
        else:
            del self._refcounts[key]
            del self._locks[key]

    @asynccontextmanager
    async def hold(self, *keys: Optional[AccountKey]) -> AsyncIterator[None]:
        """
        Acquire the locks of all given accounts.

        Keys are de-duplicated and taken in a fixed order so two edits that
        move documents between the same pair of accounts cannot deadlock.
        None entries (documents without an account) are ignored.

        Usage:
            async with account_locks.hold((AccountKind.SUPPLIER, supplier_id)):
                ...
        """
        ordered = sorted(
            {key for key in keys if key is not None and key[1] is not None},
            key=lambda key: (key[0].value, key[1])
        )
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    await lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append(key)
                logger.debug("Acquired ledger lock %s:%s", key[0].value, key[1])
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
                self._checkin(key)

    def is_locked(self, kind: AccountKind, account_id: int) -> bool:
        lock = self._locks.get((kind, account_id))
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)


# Global instance shared by all request sessions
account_locks = AccountLockRegistry()
