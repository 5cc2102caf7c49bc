"""
Financial Document API Endpoints.

Sales invoices, purchase invoices, receipts, payments and returns share the
same lifecycle; one router is built per document kind. Every mutation posts
to the owning account's ledger and records the balance movement in the
action log.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from backend.app.core.dependencies import Actor, get_actor, get_store
from backend.app.db.document_store import DocumentStore
from backend.app.domain.ledger.rules import LEDGER_RULES
from backend.app.models.ledger_enums import DocumentKind, ReturnType
from backend.app.schemas import documents as schemas
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.document_service import DocumentService


def build_document_router(
    kind: DocumentKind,
    prefix: str,
    tag: str,
    create_schema,
    response_schema,
    list_schema,
    list_key: str,
    action_prefix: str
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])
    rule = LEDGER_RULES[kind]

    async def audit(store: DocumentStore, actor: Actor, verb: str, document_id: int, metadata: dict):
        await log_event(
            db=store.db,
            action=getattr(AuditAction, f"{action_prefix}_{verb}"),
            actor_username=actor.username,
            entity_type=kind.value,
            entity_id=document_id,
            metadata=metadata,
            ip_address=actor.ip_address
        )

    @router.post("", response_model=response_schema, status_code=status.HTTP_201_CREATED)
    async def create_document(
        document_data: create_schema,
        actor: Actor = Depends(get_actor),
        store: DocumentStore = Depends(get_store)
    ):
        """
        Create a document and post it to its account.

        The response carries the account balance before and after it.
        """
        posting = await DocumentService(store, kind).create(document_data.model_dump(), actor=actor.username)
        await audit(store, actor, "CREATED", posting.document.id, posting.audit_metadata(rule.number_field))
        return response_schema.model_validate(posting.document)

    @router.get("", response_model=list_schema)
    async def list_documents(
        account_id: Optional[int] = Query(None, description="Filter by customer/supplier ID"),
        return_type: Optional[ReturnType] = Query(None, description="Returns only"),
        page: int = Query(1, ge=1, description="Page number"),
        page_size: int = Query(50, ge=1, le=200, description="Items per page"),
        store: DocumentStore = Depends(get_store)
    ):
        """List documents, newest first."""
        filters = {rule.account_field: account_id}
        if kind == DocumentKind.RETURN:
            filters["return_type"] = return_type
        documents, total = await DocumentService(store, kind).list_documents(
            filters, page=page, page_size=page_size
        )
        return list_schema(**{
            list_key: [response_schema.model_validate(document) for document in documents],
            "total": total,
            "page": page,
            "page_size": page_size,
        })

    @router.get("/{document_id}", response_model=response_schema)
    async def get_document(document_id: int, store: DocumentStore = Depends(get_store)):
        document = await DocumentService(store, kind).get(document_id)
        return response_schema.model_validate(document)

    @router.put("/{document_id}", response_model=response_schema)
    async def update_document(
        document_id: int,
        document_data: create_schema,
        actor: Actor = Depends(get_actor),
        store: DocumentStore = Depends(get_store)
    ):
        """
        Fully edit a document and re-post it.

        The stored snapshot is recomputed for this document only; snapshots
        on other documents stay as they were.
        """
        posting = await DocumentService(store, kind).update(document_id, document_data.model_dump())
        await audit(store, actor, "UPDATED", document_id, posting.audit_metadata(rule.number_field))
        return response_schema.model_validate(posting.document)

    @router.delete("/{document_id}", response_model=schemas.DocumentDeleteResponse)
    async def delete_document(
        document_id: int,
        clamp: bool = Query(False, description="Stop the balance at the document kind's floor (purchase invoices only)"),
        actor: Actor = Depends(get_actor),
        store: DocumentStore = Depends(get_store)
    ):
        """Delete a document and take its effect back off the account."""
        posting = await DocumentService(store, kind).delete(document_id, clamp=clamp)
        metadata = posting.audit_metadata(rule.number_field)
        await audit(store, actor, "DELETED", document_id, metadata)
        return schemas.DocumentDeleteResponse(
            id=document_id,
            number=metadata["number"],
            account_kind=metadata["account_kind"],
            account_id=metadata["account_id"],
            balance_before=posting.old_balance,
            balance_after=posting.new_balance,
            balance_adjustment=posting.adjustment
        )

    return router


sales_invoices_router = build_document_router(
    DocumentKind.SALES_INVOICE, "/sales-invoices", "Sales Invoices",
    schemas.SalesInvoiceCreate, schemas.SalesInvoiceResponse, schemas.SalesInvoiceListResponse,
    "invoices", "SALES_INVOICE"
)
purchase_invoices_router = build_document_router(
    DocumentKind.PURCHASE_INVOICE, "/purchase-invoices", "Purchase Invoices",
    schemas.PurchaseInvoiceCreate, schemas.PurchaseInvoiceResponse, schemas.PurchaseInvoiceListResponse,
    "invoices", "PURCHASE_INVOICE"
)
receipts_router = build_document_router(
    DocumentKind.RECEIPT, "/receipts", "Receipts",
    schemas.ReceiptCreate, schemas.ReceiptResponse, schemas.ReceiptListResponse,
    "receipts", "RECEIPT"
)
payments_router = build_document_router(
    DocumentKind.PAYMENT, "/payments", "Payments",
    schemas.PaymentCreate, schemas.PaymentResponse, schemas.PaymentListResponse,
    "payments", "PAYMENT"
)
returns_router = build_document_router(
    DocumentKind.RETURN, "/returns", "Returns",
    schemas.ReturnCreate, schemas.ReturnResponse, schemas.ReturnListResponse,
    "returns", "RETURN"
)
