"""
Financial document preparation.

Validates incoming document values and derives the computed fields
(invoice totals, return value) before the ledger sees them.
"""

from decimal import Decimal
from typing import Any, Dict

from backend.app.core.exceptions import LedgerValidationError
from backend.app.models.ledger_enums import DocumentKind, ReturnType
from backend.app.domain.ledger.money import to_money, ZERO


def compute_invoice_totals(
    subtotal,
    tax_rate=0,
    shipping=0,
    discount=0,
    paid=0
) -> Dict[str, Decimal]:
    """
    total     = subtotal + tax + shipping - discount
    remaining = total - paid
    """
    subtotal = to_money(subtotal)
    tax_rate = Decimal(str(tax_rate or 0))
    shipping = to_money(shipping)
    discount = to_money(discount)
    paid = to_money(paid)

    for label, value in (("Subtotal", subtotal), ("Tax rate", tax_rate), ("Shipping", shipping),
                         ("Discount", discount), ("Paid", paid)):
        if value < 0:
            raise LedgerValidationError(f"{label} cannot be negative", {"field": label.lower()})

    tax_amount = to_money(subtotal * tax_rate / 100)
    total = subtotal + tax_amount + shipping - discount
    if total < 0:
        raise LedgerValidationError("Discount exceeds invoice value", {"total": str(total)})
    if paid > total:
        raise LedgerValidationError(
            "Paid amount exceeds invoice total",
            {"total": str(total), "paid": str(paid)}
        )

    return {
        "subtotal": subtotal,
        "tax_rate": tax_rate,
        "tax_amount": tax_amount,
        "shipping": shipping,
        "discount": discount,
        "total": total,
        "paid": paid,
        "remaining": total - paid,
    }


def _require_positive(values: Dict[str, Any], field: str, label: str) -> Decimal:
    amount = to_money(values.get(field))
    if amount <= ZERO:
        raise LedgerValidationError(f"{label} must be greater than zero", {"field": field})
    return amount


def prepare_document(kind: DocumentKind, values: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of values with derived fields filled in; raise on invalid input."""
    prepared = dict(values)

    if kind in (DocumentKind.SALES_INVOICE, DocumentKind.PURCHASE_INVOICE):
        prepared.update(compute_invoice_totals(
            prepared.get("subtotal"),
            tax_rate=prepared.get("tax_rate"),
            shipping=prepared.get("shipping"),
            discount=prepared.get("discount"),
            paid=prepared.get("paid"),
        ))

    elif kind == DocumentKind.RECEIPT:
        prepared["amount"] = _require_positive(prepared, "amount", "Receipt amount")

    elif kind == DocumentKind.PAYMENT:
        prepared["amount"] = _require_positive(prepared, "amount", "Payment amount")
        if prepared.get("supplier_id") is None and not (prepared.get("to_name") or "").strip():
            raise LedgerValidationError("A payment needs a supplier or a payee name")

    elif kind == DocumentKind.RETURN:
        quantity = Decimal(str(prepared.get("quantity") or 0))
        if quantity <= 0:
            raise LedgerValidationError("Return quantity must be greater than zero", {"field": "quantity"})
        unit_price = to_money(prepared.get("unit_price"))
        if unit_price < 0:
            raise LedgerValidationError("Unit price cannot be negative", {"field": "unit_price"})
        prepared["return_type"] = ReturnType(prepared["return_type"])
        prepared["quantity"] = quantity
        prepared["unit_price"] = unit_price
        prepared["total_amount"] = to_money(quantity * unit_price)
        if not (prepared.get("return_reason") or "").strip():
            raise LedgerValidationError("A return reason is required", {"field": "return_reason"})

    return prepared
