"""
Customer and Supplier API Endpoints.

Both account types expose the same operations; one router is built per
account kind. Balances are read-only here: they move only when documents
are created, edited or deleted.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status

from backend.app.core.dependencies import Actor, get_actor, get_store
from backend.app.db.document_store import DocumentStore
from backend.app.domain.ledger.rules import ACCOUNT_COLLECTIONS
from backend.app.domain.ledger.statement import build_statement
from backend.app.models.ledger_enums import AccountKind, AccountStatus
from backend.app.schemas.account import (
    AccountCreate,
    AccountUpdate,
    AccountResponse,
    AccountListResponse,
    StatusRefreshResponse,
)
from backend.app.schemas.ledger import StatementEntry, StatementResponse
from backend.app.services.account_service import AccountService
from backend.app.services.audit import log_event, AuditAction


def build_account_router(kind: AccountKind, prefix: str, tag: str) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])
    collection = ACCOUNT_COLLECTIONS[kind]
    action_prefix = kind.name  # CUSTOMER / SUPPLIER

    @router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
    async def create_account(
        account_data: AccountCreate,
        actor: Actor = Depends(get_actor),
        store: DocumentStore = Depends(get_store)
    ):
        """
        Create an account.

        The code is generated when omitted; the opening balance becomes the
        starting balance.
        """
        service = AccountService(store, kind)
        account = await service.create(account_data.model_dump(), actor=actor.username)

        await log_event(
            db=store.db,
            action=getattr(AuditAction, f"{action_prefix}_CREATED"),
            actor_username=actor.username,
            entity_type=collection,
            entity_id=account.id,
            metadata={
                "code": account.code,
                "name": account.name,
                "opening_balance": account.opening_balance,
            },
            ip_address=actor.ip_address
        )
        return AccountResponse.model_validate(account)

    @router.get("", response_model=AccountListResponse)
    async def list_accounts(
        search: Optional[str] = Query(None, description="Match code, name or phone"),
        account_status: Optional[AccountStatus] = Query(None, alias="status"),
        page: int = Query(1, ge=1, description="Page number"),
        page_size: int = Query(50, ge=1, le=200, description="Items per page"),
        store: DocumentStore = Depends(get_store)
    ):
        """List accounts with search and status filter."""
        accounts, total = await AccountService(store, kind).list_accounts(
            search=search, status=account_status, page=page, page_size=page_size
        )
        return AccountListResponse(
            accounts=[AccountResponse.model_validate(account) for account in accounts],
            total=total,
            page=page,
            page_size=page_size
        )

    @router.post("/refresh-status", response_model=StatusRefreshResponse)
    async def refresh_status(
        actor: Actor = Depends(get_actor),
        store: DocumentStore = Depends(get_store)
    ):
        """Mark accounts without recent transactions inactive (and active ones active again)."""
        changed = await AccountService(store, kind).refresh_statuses()

        if changed:
            await log_event(
                db=store.db,
                action=AuditAction.ACCOUNT_STATUS_REFRESHED,
                actor_username=actor.username,
                entity_type=collection,
                metadata={
                    "changed": [
                        {"id": account.id, "status": account.status} for account in changed
                    ]
                },
                ip_address=actor.ip_address
            )
        return StatusRefreshResponse(
            changed=len(changed),
            accounts=[AccountResponse.model_validate(account) for account in changed]
        )

    @router.get("/{account_id}", response_model=AccountResponse)
    async def get_account(account_id: int, store: DocumentStore = Depends(get_store)):
        account = await AccountService(store, kind).get(account_id)
        return AccountResponse.model_validate(account)

    @router.patch("/{account_id}", response_model=AccountResponse)
    async def update_account(
        account_id: int,
        account_data: AccountUpdate,
        actor: Actor = Depends(get_actor),
        store: DocumentStore = Depends(get_store)
    ):
        """
        Update account details.

        Only provided fields are changed. The balance is never touched.
        """
        changes = account_data.model_dump(exclude_unset=True)
        account, changed_fields = await AccountService(store, kind).update(account_id, changes)

        await log_event(
            db=store.db,
            action=getattr(AuditAction, f"{action_prefix}_UPDATED"),
            actor_username=actor.username,
            entity_type=collection,
            entity_id=account_id,
            metadata={"updated_fields": changed_fields},
            ip_address=actor.ip_address
        )
        return AccountResponse.model_validate(account)

    @router.delete("/{account_id}", response_model=AccountResponse)
    async def delete_account(
        account_id: int,
        actor: Actor = Depends(get_actor),
        store: DocumentStore = Depends(get_store)
    ):
        """
        Delete an account.

        Rejected with 409 while any document references it, and with 403 for
        the cash customer.
        """
        account = await AccountService(store, kind).delete(account_id)

        await log_event(
            db=store.db,
            action=getattr(AuditAction, f"{action_prefix}_DELETED"),
            actor_username=actor.username,
            entity_type=collection,
            entity_id=account_id,
            metadata={"code": account.code, "name": account.name, "balance": account.balance},
            ip_address=actor.ip_address
        )
        return AccountResponse.model_validate(account)

    @router.get("/{account_id}/statement", response_model=StatementResponse)
    async def get_statement(account_id: int, store: DocumentStore = Depends(get_store)):
        """
        Account statement.

        Documents in the order they were applied, each with the balance
        before and after it.
        """
        statement = await build_statement(store, kind, account_id)
        return StatementResponse(
            account_kind=kind,
            account_id=account_id,
            code=statement.account.code,
            name=statement.account.name,
            opening_balance=statement.opening_balance,
            adjustments=statement.adjustments,
            closing_balance=statement.closing_balance,
            entries=[
                StatementEntry(
                    kind=entry.kind,
                    id=entry.record.id,
                    number=entry.number,
                    date=entry.record.date,
                    created_at=entry.record.created_at,
                    effect=entry.effect,
                    old_balance=entry.record.old_balance,
                    new_balance=entry.record.new_balance,
                )
                for entry in statement.entries
            ]
        )

    return router


customers_router = build_account_router(AccountKind.CUSTOMER, "/customers", "Customers")
suppliers_router = build_account_router(AccountKind.SUPPLIER, "/suppliers", "Suppliers")
