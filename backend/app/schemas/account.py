"""
Customer and supplier Pydantic schemas.

Customers and suppliers share one shape; the endpoints pick the table.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List

from backend.app.models.ledger_enums import AccountStatus


class AccountCreate(BaseModel):
    """Schema for creating a customer or supplier."""
    name: str = Field(..., min_length=1, max_length=200, description="Display name, unique case-insensitively")
    code: Optional[str] = Field(None, min_length=1, max_length=20, description="Generated when omitted")
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None
    opening_balance: Decimal = Field(Decimal("0"), description="Initial balance; may be negative")


class AccountUpdate(BaseModel):
    """Schema for updating an account. Balances are not editable."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None
    status: Optional[AccountStatus] = None


class AccountResponse(BaseModel):
    """Schema for account response."""
    id: int
    code: str
    name: str
    phone: Optional[str]
    address: Optional[str]
    notes: Optional[str]
    opening_balance: Decimal
    balance: Decimal
    balance_adjustment: Decimal = Decimal("0")
    status: AccountStatus
    first_transaction_date: Optional[date]
    last_transaction_date: Optional[date]
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AccountListResponse(BaseModel):
    """Schema for paginated account list."""
    accounts: List[AccountResponse]
    total: int
    page: int
    page_size: int


class StatusRefreshResponse(BaseModel):
    """Accounts whose activity status changed."""
    changed: int
    accounts: List[AccountResponse]
