"""
Payment database model.

Money paid out, either to a supplier (reduces the supplier's balance) or
to a free-text payee that has no ledger.
"""

from sqlalchemy import Column, Integer, String, ForeignKey
from backend.app.db.session import Base
from backend.app.models.ledger_columns import DocumentMixin, Money


class Payment(DocumentMixin, Base):
    """Payment voucher."""
    __tablename__ = "payments"

    payment_number = Column(String(30), unique=True, nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=True, index=True)
    to_name = Column(String(200), nullable=True)
    amount = Column(Money, nullable=False)
    payment_method = Column(String(30), nullable=False, default="cash")

    def __repr__(self):
        return f"<Payment(id={self.id}, number='{self.payment_number}', amount={self.amount})>"
