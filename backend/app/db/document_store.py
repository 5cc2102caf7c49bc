"""
Document store.

Collection-oriented repository over an AsyncSession. One store is built per
request session and handed to the services that need it.

Writes flush but never commit: the calling service owns the transaction and
commits the document and the balance change together.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.models.customer import Customer
from backend.app.models.supplier import Supplier
from backend.app.models.sales_invoice import SalesInvoice
from backend.app.models.purchase_invoice import PurchaseInvoice
from backend.app.models.receipt import Receipt
from backend.app.models.payment import Payment
from backend.app.models.return_record import ReturnRecord

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "customers": Customer,
    "suppliers": Supplier,
    "sales_invoices": SalesInvoice,
    "purchase_invoices": PurchaseInvoice,
    "receipts": Receipt,
    "payments": Payment,
    "returns": ReturnRecord,
}


@dataclass
class StoreResult:
    """Outcome of a store write."""
    success: bool
    error: Optional[str] = None
    id: Optional[int] = None
    record: Any = None


class DocumentStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def model_for(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection '{collection}'")

    # ---- Reads ------------------------------------------------------------

    async def get(self, collection: str, record_id: int, for_update: bool = False):
        """
        Fetch one record by primary key.

        With for_update the row is re-read from the database (and locked
        where the backend supports row locks) instead of served from the
        session identity map.
        """
        model = self.model_for(collection)
        if for_update:
            return await self.db.get(model, record_id, with_for_update=True, populate_existing=True)
        return await self.db.get(model, record_id)

    def _select(self, collection: str, where: Optional[Dict[str, Any]]):
        model = self.model_for(collection)
        stmt = select(model)
        for field, value in (where or {}).items():
            column = getattr(model, field)
            if isinstance(value, (list, tuple, set)):
                stmt = stmt.where(column.in_(list(value)))
            elif value is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == value)
        return model, stmt

    async def get_all(
        self,
        collection: str,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> List[Any]:
        """
        Fetch records matching equality filters.

        order_by takes column names; a leading '-' sorts descending.
        Results default to primary key order.
        """
        model, stmt = self._select(collection, where)
        for field in (order_by or ["id"]):
            if field.startswith("-"):
                stmt = stmt.order_by(getattr(model, field[1:]).desc())
            else:
                stmt = stmt.order_by(getattr(model, field))
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def count(self, collection: str, where: Optional[Dict[str, Any]] = None) -> int:
        model, stmt = self._select(collection, where)
        result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
        return result.scalar()

    async def scalars(self, statement) -> List[Any]:
        """Run an arbitrary select and return its scalar results."""
        result = await self.db.execute(statement)
        return list(result.scalars().all())

    # ---- Writes -----------------------------------------------------------

    async def insert(self, collection: str, record: Dict[str, Any]) -> StoreResult:
        model = self.model_for(collection)
        try:
            instance = model(**record)
            self.db.add(instance)
            await self.db.flush()
        except (SQLAlchemyError, TypeError) as e:
            logger.error("Insert into %s failed: %s", collection, e)
            return StoreResult(success=False, error=str(e))
        return StoreResult(success=True, id=instance.id, record=instance)

    async def update(self, collection: str, record_id: int, values: Dict[str, Any]) -> StoreResult:
        try:
            instance = await self.get(collection, record_id)
            if instance is None:
                return StoreResult(success=False, error=f"{collection} record {record_id} not found")
            for field, value in values.items():
                setattr(instance, field, value)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Update of %s %s failed: %s", collection, record_id, e)
            return StoreResult(success=False, error=str(e))
        return StoreResult(success=True, id=record_id, record=instance)

    async def delete(self, collection: str, record_id: int) -> StoreResult:
        try:
            instance = await self.get(collection, record_id)
            if instance is None:
                return StoreResult(success=False, error=f"{collection} record {record_id} not found")
            await self.db.delete(instance)
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Delete of %s %s failed: %s", collection, record_id, e)
            return StoreResult(success=False, error=str(e))
        return StoreResult(success=True, id=record_id)

    # ---- Transaction ------------------------------------------------------

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()
