"""
Return database model.

Goods returned by a customer or to a supplier. When `restore_balance` is set
the return value comes off the account's balance.
"""

from sqlalchemy import Column, Integer, String, Boolean, Enum, Numeric
from backend.app.db.session import Base
from backend.app.models.ledger_columns import DocumentMixin, Money
from backend.app.models.ledger_enums import ReturnType


class ReturnRecord(DocumentMixin, Base):
    """
    Return voucher.

    entity_id points at customers.id or suppliers.id depending on return_type,
    so it carries no foreign key.
    """
    __tablename__ = "returns"

    return_number = Column(String(30), unique=True, nullable=False, index=True)
    return_type = Column(Enum(ReturnType), nullable=False, index=True)
    entity_id = Column(Integer, nullable=False, index=True)

    product_name = Column(String(200), nullable=True)
    invoice_number = Column(String(30), nullable=True)
    quantity = Column(Numeric(14, 3), nullable=False)
    unit_price = Column(Money, nullable=False)
    total_amount = Column(Money, nullable=False)
    return_reason = Column(String(500), nullable=False)
    restore_balance = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<ReturnRecord(id={self.id}, number='{self.return_number}', type='{self.return_type.value}')>"
