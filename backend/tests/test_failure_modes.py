"""
Failure Injection Tests.

A store write that fails part-way through a unit of work must leave neither
the document nor the balance change behind.
"""

import pytest
from decimal import Decimal

from backend.app.db.document_store import DocumentStore, StoreResult


def fail_writes_to(mocker, method_name, failing_collection):
    """Patch one DocumentStore write method to fail for a single collection."""
    original = getattr(DocumentStore, method_name)

    async def flaky(self, collection, *args, **kwargs):
        if collection == failing_collection:
            return StoreResult(success=False, error="simulated store failure")
        return await original(self, collection, *args, **kwargs)

    mocker.patch.object(DocumentStore, method_name, flaky)


async def supplier_balance(client, supplier_id) -> Decimal:
    return Decimal((await client.get(f"/v1/suppliers/{supplier_id}")).json()["balance"])


@pytest.mark.asyncio
async def test_failed_insert_leaves_balance_untouched(client, supplier, mocker):
    fail_writes_to(mocker, "insert", "payments")

    response = await client.post("/v1/payments", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "amount": "40"
    })

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_STORE_001"
    assert await supplier_balance(client, supplier["id"]) == Decimal("0")


@pytest.mark.asyncio
async def test_failed_snapshot_write_rolls_back_balance_and_document(client, supplier, mocker):
    rollback = mocker.spy(DocumentStore, "rollback")
    fail_writes_to(mocker, "update", "payments")

    response = await client.post("/v1/payments", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "amount": "40"
    })

    assert response.status_code == 500
    assert rollback.call_count == 1
    mocker.stopall()

    assert await supplier_balance(client, supplier["id"]) == Decimal("0")
    assert (await client.get("/v1/payments")).json()["total"] == 0


@pytest.mark.asyncio
async def test_failed_balance_write_on_edit_keeps_original_document(client, supplier, mocker):
    invoice = (await client.post("/v1/purchase-invoices", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "subtotal": "500"
    })).json()

    fail_writes_to(mocker, "update", "suppliers")
    response = await client.put(f"/v1/purchase-invoices/{invoice['id']}", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "subtotal": "800"
    })
    assert response.status_code == 500
    mocker.stopall()

    stored = (await client.get(f"/v1/purchase-invoices/{invoice['id']}")).json()
    assert Decimal(stored["subtotal"]) == Decimal("500")
    assert Decimal(stored["new_balance"]) == Decimal("500")
    assert await supplier_balance(client, supplier["id"]) == Decimal("500")


@pytest.mark.asyncio
async def test_failed_delete_keeps_document_and_balance(client, supplier, mocker):
    payment = (await client.post("/v1/payments", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "amount": "25"
    })).json()

    fail_writes_to(mocker, "delete", "payments")
    response = await client.delete(f"/v1/payments/{payment['id']}")
    assert response.status_code == 500
    mocker.stopall()

    assert (await client.get(f"/v1/payments/{payment['id']}")).status_code == 200
    assert await supplier_balance(client, supplier["id"]) == Decimal("-25")


@pytest.mark.asyncio
async def test_failure_is_not_logged_as_action(client, supplier, mocker):
    fail_writes_to(mocker, "insert", "payments")

    await client.post("/v1/payments", json={"supplier_id": supplier["id"], "date": "2026-03-01", "amount": "1"})

    response = await client.get("/v1/action-logs", params={"entity_type": "payments"})
    assert response.json()["total"] == 0
