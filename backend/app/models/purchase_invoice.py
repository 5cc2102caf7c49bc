"""
Purchase Invoice database model.

The unpaid remainder of a purchase invoice is added to the supplier's balance.
"""

from sqlalchemy import Column, Integer, String, Date, ForeignKey, Numeric
from backend.app.db.session import Base
from backend.app.models.ledger_columns import DocumentMixin, Money


class PurchaseInvoice(DocumentMixin, Base):
    """Invoice received from a supplier."""
    __tablename__ = "purchase_invoices"

    invoice_number = Column(String(30), unique=True, nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=False, index=True)

    due_date = Column(Date, nullable=True)
    invoice_type = Column(String(20), nullable=False, default="normal")
    payment_method = Column(String(30), nullable=True)

    # Totals
    subtotal = Column(Money, nullable=False, default=0)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=0)
    tax_amount = Column(Money, nullable=False, default=0)
    shipping = Column(Money, nullable=False, default=0)
    discount = Column(Money, nullable=False, default=0)
    total = Column(Money, nullable=False, default=0)
    paid = Column(Money, nullable=False, default=0)
    remaining = Column(Money, nullable=False, default=0)

    def __repr__(self):
        return f"<PurchaseInvoice(id={self.id}, number='{self.invoice_number}', remaining={self.remaining})>"
