"""
Admin Ledger API Endpoints.

Administrative balance repair: re-sum account balances from their document
history. The running balance stays authoritative; these endpoints only
report drift or overwrite a drifted balance on request.
"""

from fastapi import APIRouter, Depends, Query

from backend.app.core.dependencies import Actor, get_actor, get_store
from backend.app.db.document_store import DocumentStore
from backend.app.domain.ledger.ledger_engine import RecomputeResult
from backend.app.domain.ledger.rules import ACCOUNT_COLLECTIONS
from backend.app.models.ledger_enums import AccountKind
from backend.app.schemas.ledger import RecomputeResponse, RecomputeAllResponse
from backend.app.services.audit import log_event, AuditAction
from backend.app.services.ledger_repair import recompute_account, recompute_all

router = APIRouter(prefix="/admin/ledger", tags=["Admin - Ledger"])


def _to_response(result: RecomputeResult) -> RecomputeResponse:
    return RecomputeResponse(
        account_kind=result.account_kind,
        account_id=result.account_id,
        stored_balance=result.stored_balance,
        recomputed_balance=result.recomputed_balance,
        drift=result.drift,
        document_count=len(result.documents),
        applied=result.applied
    )


async def _log_repair(store: DocumentStore, actor: Actor, result: RecomputeResult):
    await log_event(
        db=store.db,
        action=AuditAction.BALANCE_RECOMPUTED,
        actor_username=actor.username,
        entity_type=ACCOUNT_COLLECTIONS[result.account_kind],
        entity_id=result.account_id,
        metadata={
            "balance_before": result.stored_balance,
            "balance_after": result.recomputed_balance,
            "documents": len(result.documents),
        },
        ip_address=actor.ip_address
    )


@router.post("/{account_kind}/{account_id}/recompute", response_model=RecomputeResponse)
async def recompute_account_balance(
    account_kind: AccountKind,
    account_id: int,
    dry_run: bool = Query(False, description="Report drift without writing"),
    actor: Actor = Depends(get_actor),
    store: DocumentStore = Depends(get_store)
):
    """
    Re-sum one account's balance from opening balance plus document effects.

    Returns 404 if the account does not exist.
    """
    result = await recompute_account(store, account_kind, account_id, dry_run=dry_run)
    if result.applied:
        await _log_repair(store, actor, result)
    return _to_response(result)


@router.post("/recompute-all", response_model=RecomputeAllResponse)
async def recompute_all_balances(
    dry_run: bool = Query(True, description="Report drift without writing"),
    actor: Actor = Depends(get_actor),
    store: DocumentStore = Depends(get_store)
):
    """Re-sum every customer and supplier balance. Dry run unless asked otherwise."""
    results = await recompute_all(store, dry_run=dry_run)
    for result in results:
        if result.applied:
            await _log_repair(store, actor, result)

    return RecomputeAllResponse(
        dry_run=dry_run,
        accounts_checked=len(results),
        drifted=sum(1 for result in results if result.drift),
        results=[_to_response(result) for result in results]
    )
