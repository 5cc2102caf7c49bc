"""
Financial document Pydantic schemas.

Create schemas double as full-edit (PUT) bodies. Amount rules (positive
amounts, paid <= total) are enforced by the ledger layer so they surface
as ERR_VALIDATION_001 business errors.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List

from backend.app.models.ledger_enums import ReturnType


class DocumentResponseBase(BaseModel):
    id: int
    date: date
    notes: Optional[str]
    old_balance: Optional[Decimal] = Field(None, description="Account balance before this document")
    new_balance: Optional[Decimal] = Field(None, description="Account balance after this document")
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---- Invoices ---------------------------------------------------------------

class InvoiceBase(BaseModel):
    date: date
    due_date: Optional[date] = None
    invoice_type: str = Field("normal", max_length=20)
    payment_method: Optional[str] = Field(None, max_length=30)
    subtotal: Decimal = Field(..., description="Sum of line totals before tax")
    tax_rate: Decimal = Field(Decimal("0"), le=100, description="Percent")
    shipping: Decimal = Decimal("0")
    discount: Decimal = Decimal("0")
    paid: Decimal = Field(Decimal("0"), description="Paid at invoicing; the rest goes on the account")
    notes: Optional[str] = None


class SalesInvoiceCreate(InvoiceBase):
    """Schema for creating or fully editing a sales invoice."""
    customer_id: int = Field(..., gt=0)


class PurchaseInvoiceCreate(InvoiceBase):
    """Schema for creating or fully editing a purchase invoice."""
    supplier_id: int = Field(..., gt=0)


class InvoiceResponseBase(DocumentResponseBase):
    invoice_number: str
    due_date: Optional[date]
    invoice_type: str
    payment_method: Optional[str]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    shipping: Decimal
    discount: Decimal
    total: Decimal
    paid: Decimal
    remaining: Decimal


class SalesInvoiceResponse(InvoiceResponseBase):
    customer_id: int


class PurchaseInvoiceResponse(InvoiceResponseBase):
    supplier_id: int


class SalesInvoiceListResponse(BaseModel):
    invoices: List[SalesInvoiceResponse]
    total: int
    page: int
    page_size: int


class PurchaseInvoiceListResponse(BaseModel):
    invoices: List[PurchaseInvoiceResponse]
    total: int
    page: int
    page_size: int


# ---- Receipts & payments ------------------------------------------------------

class ReceiptCreate(BaseModel):
    """Money received from a customer."""
    customer_id: int = Field(..., gt=0)
    date: date
    amount: Decimal
    payment_method: str = Field("cash", max_length=30)
    notes: Optional[str] = None


class ReceiptResponse(DocumentResponseBase):
    receipt_number: str
    customer_id: int
    amount: Decimal
    payment_method: str


class ReceiptListResponse(BaseModel):
    receipts: List[ReceiptResponse]
    total: int
    page: int
    page_size: int


class PaymentCreate(BaseModel):
    """Money paid to a supplier, or to a free-text payee when supplier_id is omitted."""
    supplier_id: Optional[int] = Field(None, gt=0)
    to_name: Optional[str] = Field(None, max_length=200)
    date: date
    amount: Decimal
    payment_method: str = Field("cash", max_length=30)
    notes: Optional[str] = None


class PaymentResponse(DocumentResponseBase):
    payment_number: str
    supplier_id: Optional[int]
    to_name: Optional[str]
    amount: Decimal
    payment_method: str


class PaymentListResponse(BaseModel):
    payments: List[PaymentResponse]
    total: int
    page: int
    page_size: int


# ---- Returns ----------------------------------------------------------------

class ReturnCreate(BaseModel):
    """Goods returned by a customer or to a supplier."""
    return_type: ReturnType
    entity_id: int = Field(..., gt=0, description="Customer or supplier ID, per return_type")
    date: date
    product_name: Optional[str] = Field(None, max_length=200)
    invoice_number: Optional[str] = Field(None, max_length=30)
    quantity: Decimal
    unit_price: Decimal
    return_reason: str = Field(..., max_length=500)
    restore_balance: bool = True
    notes: Optional[str] = None


class ReturnResponse(DocumentResponseBase):
    return_number: str
    return_type: ReturnType
    entity_id: int
    product_name: Optional[str]
    invoice_number: Optional[str]
    quantity: Decimal
    unit_price: Decimal
    total_amount: Decimal
    return_reason: str
    restore_balance: bool


class ReturnListResponse(BaseModel):
    returns: List[ReturnResponse]
    total: int
    page: int
    page_size: int


# ---- Deletion ---------------------------------------------------------------

class DocumentDeleteResponse(BaseModel):
    """Result of deleting a document and reversing its effect."""
    id: int
    number: str
    account_kind: Optional[str]
    account_id: Optional[int]
    balance_before: Optional[Decimal]
    balance_after: Optional[Decimal]
    balance_adjustment: Optional[Decimal] = None
