"""
Integration tests for customer and supplier management.

Covers codes, duplicate names, opening balances, the cash customer,
delete protection, statements and activity status.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from backend.app.models.ledger_enums import AccountKind, AccountStatus
from backend.app.services.account_service import AccountService


# TEST 1: Account creation
@pytest.mark.asyncio
async def test_create_customer_generates_code(client):
    response = await client.post("/v1/customers", json={"name": "Nile Traders", "opening_balance": "150.5"})

    assert response.status_code == 201
    data = response.json()
    assert data["code"] == "CUST-00001"
    assert data["status"] == "active"
    assert Decimal(data["opening_balance"]) == Decimal("150.50")
    assert Decimal(data["balance"]) == Decimal("150.50")
    assert data["first_transaction_date"] is None


@pytest.mark.asyncio
async def test_codes_follow_highest_suffix(client):
    await client.post("/v1/suppliers", json={"name": "Manual", "code": "SUPP-00041"})
    response = await client.post("/v1/suppliers", json={"name": "Generated"})

    assert response.json()["code"] == "SUPP-00042"


@pytest.mark.asyncio
async def test_duplicate_name_is_case_insensitive(client, customer):
    response = await client.post("/v1/customers", json={"name": "  nile TRADERS "})

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_DUPLICATE_001"


@pytest.mark.asyncio
async def test_same_name_allowed_across_account_types(client, customer):
    response = await client.post("/v1/suppliers", json={"name": customer["name"]})
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_blank_name_rejected(client):
    response = await client.post("/v1/customers", json={"name": "   "})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"


# TEST 2: Updates never move the balance
@pytest.mark.asyncio
async def test_update_ignores_balance_fields(client):
    created = (await client.post("/v1/suppliers", json={"name": "Delta", "opening_balance": 70})).json()

    response = await client.patch(f"/v1/suppliers/{created['id']}", json={
        "phone": "0123",
        "balance": "5000",
        "opening_balance": "5000",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["phone"] == "0123"
    assert Decimal(data["balance"]) == Decimal("70.00")
    assert Decimal(data["opening_balance"]) == Decimal("70.00")


@pytest.mark.asyncio
async def test_null_status_rejected(client, customer):
    response = await client.patch(f"/v1/customers/{customer['id']}", json={"status": None})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"
    assert (await client.get(f"/v1/customers/{customer['id']}")).json()["status"] == "active"


@pytest.mark.asyncio
async def test_rename_to_existing_name_conflicts(client, customer):
    other = (await client.post("/v1/customers", json={"name": "Other"})).json()

    response = await client.patch(f"/v1/customers/{other['id']}", json={"name": "NILE traders"})
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_get_missing_account_returns_404(client):
    response = await client.get("/v1/suppliers/999")

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


# TEST 3: Listing and search
@pytest.mark.asyncio
async def test_list_with_search(client):
    for name in ("Alpha Foods", "Beta Metals", "Alpha Paper"):
        await client.post("/v1/customers", json={"name": name})

    response = await client.get("/v1/customers", params={"search": "alpha"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {account["name"] for account in data["accounts"]} == {"Alpha Foods", "Alpha Paper"}


@pytest.mark.asyncio
async def test_list_pagination(client):
    for index in range(5):
        await client.post("/v1/suppliers", json={"name": f"Supplier {index}"})

    response = await client.get("/v1/suppliers", params={"page": 2, "page_size": 2})

    data = response.json()
    assert data["total"] == 5
    assert data["page"] == 2
    assert len(data["accounts"]) == 2


# TEST 4: Cash customer
@pytest.mark.asyncio
async def test_cash_customer_is_protected(client, store):
    cash = await AccountService(store, AccountKind.CUSTOMER).ensure_cash_customer()

    rename = await client.patch(f"/v1/customers/{cash.id}", json={"name": "Someone"})
    assert rename.status_code == 403
    assert rename.json()["error_code"] == "ERR_FORBIDDEN_001"

    delete = await client.delete(f"/v1/customers/{cash.id}")
    assert delete.status_code == 403

    # Other fields stay editable
    notes = await client.patch(f"/v1/customers/{cash.id}", json={"notes": "Walk-in sales"})
    assert notes.status_code == 200


@pytest.mark.asyncio
async def test_ensure_cash_customer_is_idempotent(store):
    service = AccountService(store, AccountKind.CUSTOMER)

    first = await service.ensure_cash_customer()
    second = await service.ensure_cash_customer()

    assert first.id == second.id
    assert await store.count("customers", {"code": "CASH"}) == 1


# TEST 5: Delete protection
@pytest.mark.asyncio
async def test_delete_unused_account(client, supplier):
    response = await client.delete(f"/v1/suppliers/{supplier['id']}")
    assert response.status_code == 200

    assert (await client.get(f"/v1/suppliers/{supplier['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_account_with_documents_conflicts(client, customer):
    await client.post("/v1/receipts", json={"customer_id": customer["id"], "date": "2026-03-01", "amount": "10"})

    response = await client.delete(f"/v1/customers/{customer['id']}")

    assert response.status_code == 409
    body = response.json()
    assert body["error_code"] == "ERR_CONFLICT_001"
    assert body["details"]["references"] == {"receipts": 1}


@pytest.mark.asyncio
async def test_supplier_return_blocks_supplier_delete_only(client, customer, supplier):
    await client.post("/v1/returns", json={
        "return_type": "to_supplier",
        "entity_id": supplier["id"],
        "date": "2026-03-01",
        "quantity": "1",
        "unit_price": "5",
        "return_reason": "Defective",
    })

    assert (await client.delete(f"/v1/suppliers/{supplier['id']}")).status_code == 409
    assert (await client.delete(f"/v1/customers/{customer['id']}")).status_code == 200


# TEST 6: Transaction dates
@pytest.mark.asyncio
async def test_transaction_dates_follow_document_dates(client, customer):
    for day in ("2026-03-10", "2026-02-01", "2026-03-05"):
        await client.post("/v1/receipts", json={"customer_id": customer["id"], "date": day, "amount": "1"})

    data = (await client.get(f"/v1/customers/{customer['id']}")).json()
    assert data["first_transaction_date"] == "2026-02-01"
    assert data["last_transaction_date"] == "2026-03-10"


@pytest.mark.asyncio
async def test_transaction_dates_cleared_when_last_document_deleted(client, customer):
    receipt = (await client.post("/v1/receipts", json={
        "customer_id": customer["id"], "date": "2026-03-10", "amount": "1"
    })).json()

    await client.delete(f"/v1/receipts/{receipt['id']}")

    data = (await client.get(f"/v1/customers/{customer['id']}")).json()
    assert data["first_transaction_date"] is None
    assert data["last_transaction_date"] is None


# TEST 7: Activity status
@pytest.mark.asyncio
async def test_refresh_statuses_marks_stale_accounts_inactive(store):
    service = AccountService(store, AccountKind.SUPPLIER)
    stale = await service.create({"name": "Stale"})
    recent = await service.create({"name": "Recent"})
    await store.update("suppliers", stale.id, {"last_transaction_date": date(2026, 1, 1)})
    await store.update("suppliers", recent.id, {"last_transaction_date": date(2026, 3, 1)})
    await store.commit()

    changed = await service.refresh_statuses(today=date(2026, 3, 10))

    assert [account.id for account in changed] == [stale.id]
    assert (await service.get(stale.id)).status == AccountStatus.INACTIVE
    assert (await service.get(recent.id)).status == AccountStatus.ACTIVE


@pytest.mark.asyncio
async def test_refresh_statuses_uses_creation_date_without_transactions(store):
    service = AccountService(store, AccountKind.CUSTOMER)
    account = await service.create({"name": "New"})
    created_on = account.created_at.date()

    assert await service.refresh_statuses(today=created_on + timedelta(days=15)) == []

    changed = await service.refresh_statuses(today=created_on + timedelta(days=16))
    assert [item.id for item in changed] == [account.id]


@pytest.mark.asyncio
async def test_refresh_status_endpoint(client, customer):
    response = await client.post("/v1/customers/refresh-status")

    assert response.status_code == 200
    assert response.json()["changed"] == 0


# TEST 8: Statement
@pytest.mark.asyncio
async def test_statement_lists_documents_in_applied_order(client, supplier):
    await client.post("/v1/purchase-invoices", json={
        "supplier_id": supplier["id"], "date": "2026-03-05", "subtotal": "500"
    })
    await client.post("/v1/payments", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "amount": "200"
    })

    response = await client.get(f"/v1/suppliers/{supplier['id']}/statement")

    assert response.status_code == 200
    data = response.json()
    assert [entry["kind"] for entry in data["entries"]] == ["purchase_invoices", "payments"]
    assert Decimal(data["opening_balance"]) == Decimal("0")
    assert Decimal(data["closing_balance"]) == Decimal("300")
    assert Decimal(data["entries"][1]["effect"]) == Decimal("-200")
    assert Decimal(data["entries"][1]["old_balance"]) == Decimal("500")


@pytest.mark.asyncio
async def test_statement_opening_balance_survives_first_document_edit(client, supplier):
    invoice = (await client.post("/v1/purchase-invoices", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "subtotal": "500"
    })).json()
    await client.post("/v1/payments", json={"supplier_id": supplier["id"], "date": "2026-03-02", "amount": "200"})
    await client.put(f"/v1/purchase-invoices/{invoice['id']}", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "subtotal": "800"
    })

    data = (await client.get(f"/v1/suppliers/{supplier['id']}/statement")).json()

    assert Decimal(data["opening_balance"]) == Decimal("0")
    assert Decimal(data["closing_balance"]) == Decimal("600")
    # The edited invoice's own snapshot reflects the undo-then-redo
    assert Decimal(data["entries"][0]["old_balance"]) == Decimal("-200")


@pytest.mark.asyncio
async def test_action_log_records_account_changes(client):
    created = (await client.post(
        "/v1/customers", json={"name": "Logged"}, headers={"X-Actor": "clerk"}
    )).json()
    await client.patch(f"/v1/customers/{created['id']}", json={"phone": "555"}, headers={"X-Actor": "clerk"})

    response = await client.get("/v1/action-logs", params={"entity_type": "customers", "entity_id": created["id"]})

    logs = response.json()["logs"]
    assert [log["action"] for log in logs] == ["CUSTOMER_UPDATED", "CUSTOMER_CREATED"]
    assert all(log["actor_username"] == "clerk" for log in logs)
    assert logs[0]["meta_data"]["updated_fields"] == ["phone"]
    assert created["created_by"] == "clerk"
