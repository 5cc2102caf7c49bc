"""
Audit logging service for the action log.

Records who changed which account or document, with the balance movement.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc, func
from backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    CUSTOMER_CREATED = "CUSTOMER_CREATED"
    CUSTOMER_UPDATED = "CUSTOMER_UPDATED"
    CUSTOMER_DELETED = "CUSTOMER_DELETED"

    SUPPLIER_CREATED = "SUPPLIER_CREATED"
    SUPPLIER_UPDATED = "SUPPLIER_UPDATED"
    SUPPLIER_DELETED = "SUPPLIER_DELETED"

    ACCOUNT_STATUS_REFRESHED = "ACCOUNT_STATUS_REFRESHED"

    SALES_INVOICE_CREATED = "SALES_INVOICE_CREATED"
    SALES_INVOICE_UPDATED = "SALES_INVOICE_UPDATED"
    SALES_INVOICE_DELETED = "SALES_INVOICE_DELETED"

    PURCHASE_INVOICE_CREATED = "PURCHASE_INVOICE_CREATED"
    PURCHASE_INVOICE_UPDATED = "PURCHASE_INVOICE_UPDATED"
    PURCHASE_INVOICE_DELETED = "PURCHASE_INVOICE_DELETED"

    RECEIPT_CREATED = "RECEIPT_CREATED"
    RECEIPT_UPDATED = "RECEIPT_UPDATED"
    RECEIPT_DELETED = "RECEIPT_DELETED"

    PAYMENT_CREATED = "PAYMENT_CREATED"
    PAYMENT_UPDATED = "PAYMENT_UPDATED"
    PAYMENT_DELETED = "PAYMENT_DELETED"

    RETURN_CREATED = "RETURN_CREATED"
    RETURN_UPDATED = "RETURN_UPDATED"
    RETURN_DELETED = "RETURN_DELETED"

    # Administrative repair
    BALANCE_RECOMPUTED = "BALANCE_RECOMPUTED"


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if hasattr(value, "value"):
        return value.value
    return value


async def log_event(
    db: AsyncSession,
    action: str,
    actor_username: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Log an action to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_username: Name of the user performing the action
        entity_type: Collection the action touched (customers, payments, ...)
        entity_id: ID of the touched record
        metadata: Additional context as JSON (balances, numbers, changed fields)
        ip_address: IP address of the request

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_username=actor_username,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=_jsonable(metadata) if metadata is not None else None,
        ip_address=ip_address
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


def _filtered(query, action, entity_type, entity_id, actor_username):
    if action:
        query = query.where(AuditLog.action == action)
    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)
    if actor_username:
        query = query.where(AuditLog.actor_username == actor_username)
    return query


async def get_audit_trail(
    db: AsyncSession,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    limit: int = 100,
    offset: int = 0
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Returns:
        List of AuditLog instances, most recent first
    """
    query = _filtered(
        select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id)),
        action, entity_type, entity_id, actor_username
    )
    query = query.offset(offset).limit(limit)

    result = await db.execute(query)
    return result.scalars().all()


async def count_audit_trail(
    db: AsyncSession,
    action: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    actor_username: Optional[str] = None
) -> int:
    query = _filtered(select(func.count(AuditLog.id)), action, entity_type, entity_id, actor_username)
    result = await db.execute(query)
    return result.scalar()
