"""
Account service for customers and suppliers.

Owns account codes, name uniqueness, the cash customer, delete protection,
transaction dates and activity status. Balances are only ever moved by the
ledger engine; nothing here writes `balance` after creation.
"""

import logging
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, func, or_

from backend.app.core.config import settings
from backend.app.core.exceptions import (
    AccountInUseError,
    DuplicateNameError,
    LedgerValidationError,
    ProtectedAccountError,
    ResourceNotFoundError,
    StoreWriteError,
)
from backend.app.db.document_store import DocumentStore
from backend.app.models.ledger_enums import AccountKind, AccountStatus
from backend.app.domain.ledger.money import to_money
from backend.app.domain.ledger.rules import ACCOUNT_COLLECTIONS, ACCOUNT_LABELS, LEDGER_RULES, document_kinds_for
from backend.app.domain.ledger.history import collect_account_documents
from backend.app.services.account_locking import account_locks, AccountLockRegistry

logger = logging.getLogger(__name__)

CODE_PREFIXES = {
    AccountKind.CUSTOMER: "CUST",
    AccountKind.SUPPLIER: "SUPP",
}


def _normalize_text(s: Optional[str]) -> Optional[str]:
    if s is None:
        return None
    return s.strip()


class AccountService:

    def __init__(self, store: DocumentStore, kind: AccountKind, locks: AccountLockRegistry = account_locks):
        self.store = store
        self.kind = kind
        self.locks = locks
        self.collection = ACCOUNT_COLLECTIONS[kind]
        self.model = store.model_for(self.collection)
        self.label = ACCOUNT_LABELS[kind]

    # ---- Internal helpers -------------------------------------------------

    def is_cash_customer(self, account) -> bool:
        return (
            self.kind == AccountKind.CUSTOMER
            and (account.code or "").strip().upper() == settings.cash_customer_code.upper()
        )

    async def next_code(self) -> str:
        """Next CUST-00001 / SUPP-00001 style code after the highest one in use."""
        prefix = CODE_PREFIXES[self.kind]
        pattern = re.compile(rf"^{prefix}-(\d+)$")
        codes = await self.store.scalars(select(self.model.code).where(self.model.code.like(f"{prefix}-%")))
        numbers = [int(match.group(1)) for match in (pattern.match(code) for code in codes) if match]
        counter = max(numbers, default=0) + 1
        return f"{prefix}-{counter:05d}"

    async def _ensure_unique_name(self, name: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(self.model).where(func.lower(func.trim(self.model.name)) == name.strip().lower())
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        if await self.store.scalars(stmt.limit(1)):
            raise DuplicateNameError(self.label, name)

    async def _ensure_unique_code(self, code: str, exclude_id: Optional[int] = None) -> None:
        stmt = select(self.model).where(self.model.code == code)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        if await self.store.scalars(stmt.limit(1)):
            raise LedgerValidationError(f"{self.label} code '{code}' is already in use", {"code": code})

    # ---- Queries ----------------------------------------------------------

    async def get(self, account_id: int):
        account = await self.store.get(self.collection, account_id)
        if account is None:
            raise ResourceNotFoundError(self.label, account_id)
        return account

    async def list_accounts(
        self,
        search: Optional[str] = None,
        status: Optional[AccountStatus] = None,
        page: int = 1,
        page_size: int = 50
    ) -> Tuple[List[Any], int]:
        """
        Paginated accounts, newest first.

        search matches code, name and phone (case-insensitive substring).
        """
        stmt = select(self.model)
        if status:
            stmt = stmt.where(self.model.status == status)
        if search and search.strip():
            pattern = f"%{search.strip().lower()}%"
            stmt = stmt.where(or_(
                func.lower(self.model.code).like(pattern),
                func.lower(self.model.name).like(pattern),
                func.lower(func.coalesce(self.model.phone, "")).like(pattern),
            ))

        count_result = await self.store.db.execute(select(func.count()).select_from(stmt.subquery()))
        total = count_result.scalar()

        offset = (page - 1) * page_size
        items = await self.store.scalars(
            stmt.order_by(self.model.created_at.desc(), self.model.id.desc()).offset(offset).limit(page_size)
        )
        return items, total

    async def reference_counts(self, account_id: int) -> Dict[str, int]:
        counts = {}
        for kind, extra_filters in document_kinds_for(self.kind):
            where = {LEDGER_RULES[kind].account_field: account_id, **extra_filters}
            count = await self.store.count(kind.value, where)
            if count:
                counts[kind.value] = count
        return counts

    # ---- Mutations --------------------------------------------------------

    async def create(self, data: Dict[str, Any], actor: Optional[str] = None):
        """
        Insert a new account.

        The opening balance becomes the starting balance; afterwards only
        the ledger engine moves it.
        """
        name = _normalize_text(data.get("name"))
        if not name:
            raise LedgerValidationError(f"{self.label} name cannot be empty", {"field": "name"})
        await self._ensure_unique_name(name)

        code = _normalize_text(data.get("code")) or await self.next_code()
        await self._ensure_unique_code(code)

        opening_balance = to_money(data.get("opening_balance"))
        record = {
            "code": code,
            "name": name,
            "phone": _normalize_text(data.get("phone")),
            "address": _normalize_text(data.get("address")),
            "notes": _normalize_text(data.get("notes")) or None,
            "status": data.get("status") or AccountStatus.ACTIVE,
            "opening_balance": opening_balance,
            "balance": opening_balance,
            "created_by": actor,
        }

        result = await self.store.insert(self.collection, record)
        if not result.success:
            await self.store.rollback()
            raise StoreWriteError("insert", self.collection, result.error)
        await self.store.commit()

        logger.info("%s %s created with opening balance %s", self.label, code, opening_balance)
        return result.record

    async def update(self, account_id: int, changes: Dict[str, Any]):
        """
        Update descriptive fields. Balance and opening balance are not editable.

        Returns the account and the list of changed field names.
        """
        account = await self.get(account_id)
        changes = {
            key: _normalize_text(value) if isinstance(value, str) else value
            for key, value in changes.items()
            if key not in ("balance", "opening_balance", "balance_adjustment")
        }

        if self.is_cash_customer(account):
            if ("name" in changes and changes["name"] != account.name) or \
                    ("code" in changes and changes["code"] != account.code):
                raise ProtectedAccountError("The cash customer's name and code cannot be changed")

        if "name" in changes:
            if not changes["name"]:
                raise LedgerValidationError(f"{self.label} name cannot be empty", {"field": "name"})
            await self._ensure_unique_name(changes["name"], exclude_id=account_id)
        if "code" in changes:
            if not changes["code"]:
                raise LedgerValidationError(f"{self.label} code cannot be empty", {"field": "code"})
            await self._ensure_unique_code(changes["code"], exclude_id=account_id)
        if "status" in changes and changes["status"] is None:
            raise LedgerValidationError(f"{self.label} status cannot be empty", {"field": "status"})

        result = await self.store.update(self.collection, account_id, changes)
        if not result.success:
            await self.store.rollback()
            raise StoreWriteError("update", self.collection, result.error)
        await self.store.commit()
        return result.record, list(changes.keys())

    async def delete(self, account_id: int):
        """
        Delete an account that no document references.

        Held under the account lock so no document can post to the account
        between the reference check and the delete.
        """
        async with self.locks.hold((self.kind, account_id)):
            account = await self.get(account_id)
            if self.is_cash_customer(account):
                raise ProtectedAccountError("The cash customer cannot be deleted")

            references = await self.reference_counts(account_id)
            if references:
                raise AccountInUseError(self.label, account_id, references)

            result = await self.store.delete(self.collection, account_id)
            if not result.success:
                await self.store.rollback()
                raise StoreWriteError("delete", self.collection, result.error)
            await self.store.commit()
        return account

    async def ensure_cash_customer(self):
        """Create the walk-in cash customer if it does not exist yet."""
        if self.kind != AccountKind.CUSTOMER:
            raise ValueError("Only customers have a cash account")
        existing = await self.store.get_all(self.collection, {"code": settings.cash_customer_code})
        if existing:
            return existing[0]
        result = await self.store.insert(self.collection, {
            "code": settings.cash_customer_code,
            "name": settings.cash_customer_name,
            "status": AccountStatus.ACTIVE,
            "opening_balance": to_money(0),
            "balance": to_money(0),
        })
        if not result.success:
            await self.store.rollback()
            raise StoreWriteError("insert", self.collection, result.error)
        await self.store.commit()
        logger.info("Cash customer created (id=%s)", result.id)
        return result.record

    async def refresh_statuses(self, today: Optional[date] = None) -> List[Any]:
        """
        Mark accounts inactive when their last transaction, or their creation
        when they have none, is older than the configured window.

        Returns the accounts whose status changed.
        """
        today = today or datetime.now(timezone.utc).date()
        cutoff = today - timedelta(days=settings.inactive_after_days)
        changed = []
        for account in await self.store.get_all(self.collection):
            last_activity = account.last_transaction_date or account.created_at.date()
            status = AccountStatus.INACTIVE if last_activity < cutoff else AccountStatus.ACTIVE
            if account.status != status:
                account.status = status
                changed.append(account)
        await self.store.db.flush()
        await self.store.commit()
        return changed


async def refresh_transaction_dates(store: DocumentStore, kind: AccountKind, account_id: int) -> None:
    """
    Recompute first/last transaction dates from the account's documents.

    Orders by document date with creation time as tie-breaker. Runs inside
    the caller's unit of work; does not commit.
    """
    documents = await collect_account_documents(store, kind, account_id)
    if documents:
        ordered = sorted(documents, key=lambda document: document.date_key)
        values = {
            "first_transaction_date": ordered[0].record.date,
            "last_transaction_date": ordered[-1].record.date,
        }
    else:
        values = {"first_transaction_date": None, "last_transaction_date": None}

    collection = ACCOUNT_COLLECTIONS[kind]
    result = await store.update(collection, account_id, values)
    if not result.success:
        raise StoreWriteError("update", collection, result.error)
