"""
Receipt database model.

Money received from a customer; reduces the customer's balance.
"""

from sqlalchemy import Column, Integer, String, ForeignKey
from backend.app.db.session import Base
from backend.app.models.ledger_columns import DocumentMixin, Money


class Receipt(DocumentMixin, Base):
    """Customer receipt voucher."""
    __tablename__ = "receipts"

    receipt_number = Column(String(30), unique=True, nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey('customers.id'), nullable=False, index=True)
    amount = Column(Money, nullable=False)
    payment_method = Column(String(30), nullable=False, default="cash")

    def __repr__(self):
        return f"<Receipt(id={self.id}, number='{self.receipt_number}', amount={self.amount})>"
