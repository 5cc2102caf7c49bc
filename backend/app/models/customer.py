"""
Customer database model.

Customers owe the business for sales invoices; receipts and customer
returns reduce what they owe.
"""

from backend.app.db.session import Base
from backend.app.models.ledger_columns import AccountMixin


class Customer(AccountMixin, Base):
    """
    Customer account.

    A positive balance means the customer owes us.
    """
    __tablename__ = "customers"

    def __repr__(self):
        return f"<Customer(id={self.id}, code='{self.code}', name='{self.name}', balance={self.balance})>"
