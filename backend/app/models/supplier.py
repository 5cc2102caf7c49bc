"""
Supplier database model.

Suppliers are owed by the business for purchase invoices; payments and
returns to the supplier reduce that debt.
"""

from backend.app.db.session import Base
from backend.app.models.ledger_columns import AccountMixin


class Supplier(AccountMixin, Base):
    """
    Supplier account.

    A positive balance means we owe the supplier, a negative one that they owe us.
    """
    __tablename__ = "suppliers"

    def __repr__(self):
        return f"<Supplier(id={self.id}, code='{self.code}', name='{self.name}', balance={self.balance})>"
