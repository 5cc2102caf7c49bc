"""
Ledger rules per document kind.

Maps every financial document to the account it belongs to and to the
signed effect it has on that account's balance:

    invoice  -> +remaining
    receipt  -> -amount
    payment  -> -amount        (0 and no account when paid to a free-text payee)
    return   -> -total_amount  (0 when restore_balance is off)
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional, Tuple

from backend.app.models.ledger_enums import AccountKind, DocumentKind, ReturnType
from backend.app.domain.ledger.money import to_money, ZERO

ACCOUNT_COLLECTIONS = {
    AccountKind.CUSTOMER: "customers",
    AccountKind.SUPPLIER: "suppliers",
}

ACCOUNT_LABELS = {
    AccountKind.CUSTOMER: "Customer",
    AccountKind.SUPPLIER: "Supplier",
}


@dataclass(frozen=True)
class LedgerRule:
    document: DocumentKind
    account_field: str
    amount_field: str
    sign: int
    number_field: str
    number_prefix: str
    label: str
    # Lowest balance a delete may leave behind; None means no clamp is allowed
    reversal_floor: Optional[Decimal] = None


LEDGER_RULES = {
    DocumentKind.SALES_INVOICE: LedgerRule(
        DocumentKind.SALES_INVOICE, "customer_id", "remaining", 1, "invoice_number", "INV", "Sales invoice"
    ),
    DocumentKind.PURCHASE_INVOICE: LedgerRule(
        DocumentKind.PURCHASE_INVOICE, "supplier_id", "remaining", 1, "invoice_number", "PUR", "Purchase invoice",
        reversal_floor=ZERO
    ),
    DocumentKind.RECEIPT: LedgerRule(
        DocumentKind.RECEIPT, "customer_id", "amount", -1, "receipt_number", "REC", "Receipt"
    ),
    DocumentKind.PAYMENT: LedgerRule(
        DocumentKind.PAYMENT, "supplier_id", "amount", -1, "payment_number", "PAY", "Payment"
    ),
    DocumentKind.RETURN: LedgerRule(
        DocumentKind.RETURN, "entity_id", "total_amount", -1, "return_number", "RET", "Return"
    ),
}


def field_value(document: Any, field: str, default=None):
    """Read a field from a model instance or a plain dict."""
    if isinstance(document, dict):
        return document.get(field, default)
    return getattr(document, field, default)


def account_kind_for(kind: DocumentKind, document: Any = None) -> AccountKind:
    if kind in (DocumentKind.SALES_INVOICE, DocumentKind.RECEIPT):
        return AccountKind.CUSTOMER
    if kind in (DocumentKind.PURCHASE_INVOICE, DocumentKind.PAYMENT):
        return AccountKind.SUPPLIER
    return_type = ReturnType(field_value(document, "return_type"))
    return AccountKind.CUSTOMER if return_type == ReturnType.FROM_CUSTOMER else AccountKind.SUPPLIER


def account_ref(kind: DocumentKind, document: Any) -> Optional[Tuple[AccountKind, int]]:
    """(account kind, account id) a document posts to, or None."""
    account_id = field_value(document, LEDGER_RULES[kind].account_field)
    if account_id is None:
        return None
    return account_kind_for(kind, document), account_id


def signed_effect(kind: DocumentKind, document: Any) -> Decimal:
    """Signed change a document makes to its account's balance."""
    rule = LEDGER_RULES[kind]
    if account_ref(kind, document) is None:
        return ZERO
    if kind == DocumentKind.RETURN and not field_value(document, "restore_balance", True):
        return ZERO
    return to_money(field_value(document, rule.amount_field)) * rule.sign


def document_kinds_for(account_kind: AccountKind):
    """Document kinds that can post to an account of the given kind, with their filters."""
    if account_kind == AccountKind.CUSTOMER:
        return [
            (DocumentKind.SALES_INVOICE, {}),
            (DocumentKind.RECEIPT, {}),
            (DocumentKind.RETURN, {"return_type": ReturnType.FROM_CUSTOMER}),
        ]
    return [
        (DocumentKind.PURCHASE_INVOICE, {}),
        (DocumentKind.PAYMENT, {}),
        (DocumentKind.RETURN, {"return_type": ReturnType.TO_SUPPLIER}),
    ]
