"""
Audit Log Database Model.

Action log of every change to accounts and financial documents.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from backend.app.db.session import Base
from backend.app.models.ledger_columns import utcnow


class AuditLog(Base):
    """
    Audit log model for tracking user actions.

    Events logged:
    - CUSTOMER_* / SUPPLIER_* (created, updated, deleted)
    - <DOCUMENT>_CREATED / _UPDATED / _DELETED for every financial document
    - BALANCE_RECOMPUTED (administrative repair)
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_username = Column(String(100), nullable=True, index=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # What it was performed on
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(Integer, nullable=True, index=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    ip_address = Column(String(50), nullable=True)

    # Timestamp
    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_username}, entity={self.entity_type}:{self.entity_id})>"
