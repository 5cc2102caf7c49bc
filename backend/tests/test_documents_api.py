"""
Integration tests for financial documents.

Exercises invoices, receipts, payments and returns through the HTTP API
and checks the balance each one leaves on its account.
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

YEAR = datetime.now(timezone.utc).year


async def balance(client, path, account_id) -> Decimal:
    response = await client.get(f"/v1/{path}/{account_id}")
    return Decimal(response.json()["balance"])


# TEST 1: Purchase invoice / payment scenario over HTTP
@pytest.mark.asyncio
async def test_purchase_invoice_payment_scenario(client, supplier):
    invoice = await client.post("/v1/purchase-invoices", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "subtotal": "500"
    })
    assert invoice.status_code == 201
    invoice = invoice.json()
    assert invoice["invoice_number"] == f"PUR-{YEAR}-001"
    assert Decimal(invoice["old_balance"]) == Decimal("0")
    assert Decimal(invoice["new_balance"]) == Decimal("500")

    payment = (await client.post("/v1/payments", json={
        "supplier_id": supplier["id"], "date": "2026-03-02", "amount": "200"
    })).json()
    assert Decimal(payment["new_balance"]) == Decimal("300")

    edited = await client.put(f"/v1/purchase-invoices/{invoice['id']}", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "subtotal": "800"
    })
    assert edited.status_code == 200
    assert Decimal(edited.json()["old_balance"]) == Decimal("-200")
    assert Decimal(edited.json()["new_balance"]) == Decimal("600")
    assert edited.json()["invoice_number"] == invoice["invoice_number"]
    assert await balance(client, "suppliers", supplier["id"]) == Decimal("600")

    deleted = await client.delete(f"/v1/payments/{payment['id']}")
    assert deleted.status_code == 200
    assert deleted.json()["number"] == payment["payment_number"]
    assert Decimal(deleted.json()["balance_before"]) == Decimal("600")
    assert Decimal(deleted.json()["balance_after"]) == Decimal("800")
    assert await balance(client, "suppliers", supplier["id"]) == Decimal("800")


# TEST 2: Invoice totals
@pytest.mark.asyncio
async def test_sales_invoice_totals(client, customer):
    response = await client.post("/v1/sales-invoices", json={
        "customer_id": customer["id"],
        "date": "2026-03-01",
        "subtotal": "1000",
        "tax_rate": "14",
        "shipping": "50",
        "discount": "25",
        "paid": "300",
    })

    assert response.status_code == 201
    data = response.json()
    assert data["invoice_number"] == f"INV-{YEAR}-001"
    assert Decimal(data["tax_amount"]) == Decimal("140")
    assert Decimal(data["total"]) == Decimal("1165")
    assert Decimal(data["remaining"]) == Decimal("865")
    assert await balance(client, "customers", customer["id"]) == Decimal("865")


@pytest.mark.asyncio
async def test_paid_above_total_rejected(client, customer):
    response = await client.post("/v1/sales-invoices", json={
        "customer_id": customer["id"], "date": "2026-03-01", "subtotal": "100", "paid": "150"
    })

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"
    assert await balance(client, "customers", customer["id"]) == Decimal("0")


@pytest.mark.asyncio
async def test_numbers_are_sequential_per_type(client, customer):
    numbers = []
    for _ in range(3):
        response = await client.post("/v1/receipts", json={
            "customer_id": customer["id"], "date": "2026-03-01", "amount": "5"
        })
        numbers.append(response.json()["receipt_number"])

    assert numbers == [f"REC-{YEAR}-001", f"REC-{YEAR}-002", f"REC-{YEAR}-003"]


# TEST 3: Receipts and payments
@pytest.mark.asyncio
async def test_receipt_reduces_customer_balance(client, customer):
    await client.post("/v1/sales-invoices", json={
        "customer_id": customer["id"], "date": "2026-03-01", "subtotal": "400"
    })
    receipt = await client.post("/v1/receipts", json={
        "customer_id": customer["id"], "date": "2026-03-02", "amount": "150.25", "payment_method": "bank"
    })

    assert receipt.status_code == 201
    assert Decimal(receipt.json()["old_balance"]) == Decimal("400")
    assert Decimal(receipt.json()["new_balance"]) == Decimal("249.75")


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", ["0", "-5"])
async def test_non_positive_amount_rejected(client, customer, amount):
    response = await client.post("/v1/receipts", json={
        "customer_id": customer["id"], "date": "2026-03-01", "amount": amount
    })

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"


@pytest.mark.asyncio
async def test_document_for_missing_account_returns_404(client):
    response = await client.post("/v1/receipts", json={"customer_id": 404, "date": "2026-03-01", "amount": "5"})

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_payment_to_free_text_payee(client, supplier):
    response = await client.post("/v1/payments", json={
        "to_name": "Landlord", "date": "2026-03-01", "amount": "3000"
    })

    assert response.status_code == 201
    data = response.json()
    assert data["supplier_id"] is None
    assert data["old_balance"] is None
    assert data["new_balance"] is None
    assert await balance(client, "suppliers", supplier["id"]) == Decimal("0")


@pytest.mark.asyncio
async def test_payment_requires_supplier_or_payee(client):
    response = await client.post("/v1/payments", json={"date": "2026-03-01", "amount": "10"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_missing_required_field_is_422(client, customer):
    response = await client.post("/v1/receipts", json={"customer_id": customer["id"], "amount": "5"})

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


# TEST 4: Returns
@pytest.mark.asyncio
async def test_customer_return_restores_balance(client, customer):
    await client.post("/v1/sales-invoices", json={
        "customer_id": customer["id"], "date": "2026-03-01", "subtotal": "300"
    })
    response = await client.post("/v1/returns", json={
        "return_type": "from_customer",
        "entity_id": customer["id"],
        "date": "2026-03-03",
        "product_name": "Cotton roll",
        "quantity": "4",
        "unit_price": "12.5",
        "return_reason": "Damaged in transit",
    })

    assert response.status_code == 201
    data = response.json()
    assert data["return_number"] == f"RET-{YEAR}-001"
    assert Decimal(data["total_amount"]) == Decimal("50")
    assert Decimal(data["new_balance"]) == Decimal("250")


@pytest.mark.asyncio
async def test_return_list_filters_by_type(client, customer, supplier):
    common = {"date": "2026-03-03", "quantity": "1", "unit_price": "1", "return_reason": "Wrong item"}
    await client.post("/v1/returns", json={**common, "return_type": "from_customer", "entity_id": customer["id"]})
    await client.post("/v1/returns", json={**common, "return_type": "to_supplier", "entity_id": supplier["id"]})

    response = await client.get("/v1/returns", params={"return_type": "to_supplier"})

    data = response.json()
    assert data["total"] == 1
    assert data["returns"][0]["entity_id"] == supplier["id"]


# TEST 5: Listing and lookup
@pytest.mark.asyncio
async def test_list_filters_by_account(client, customer):
    other = (await client.post("/v1/customers", json={"name": "Other"})).json()
    for account in (customer, other, customer):
        await client.post("/v1/receipts", json={"customer_id": account["id"], "date": "2026-03-01", "amount": "1"})

    response = await client.get("/v1/receipts", params={"account_id": customer["id"]})

    data = response.json()
    assert data["total"] == 2
    assert all(item["customer_id"] == customer["id"] for item in data["receipts"])


@pytest.mark.asyncio
async def test_get_missing_document_returns_404(client):
    response = await client.get("/v1/sales-invoices/12345")
    assert response.status_code == 404


# TEST 6: Action log
@pytest.mark.asyncio
async def test_document_changes_are_logged_with_balances(client, supplier):
    invoice = (await client.post("/v1/purchase-invoices", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "subtotal": "90"
    }, headers={"X-Actor": "accountant"})).json()
    await client.delete(f"/v1/purchase-invoices/{invoice['id']}", headers={"X-Actor": "accountant"})

    response = await client.get("/v1/action-logs", params={"entity_type": "purchase_invoices"})

    logs = response.json()["logs"]
    assert [log["action"] for log in logs] == ["PURCHASE_INVOICE_DELETED", "PURCHASE_INVOICE_CREATED"]
    created = logs[1]["meta_data"]
    assert created["number"] == invoice["invoice_number"]
    assert created["account_kind"] == "supplier"
    assert Decimal(created["balance_before"]) == Decimal("0")
    assert Decimal(created["balance_after"]) == Decimal("90")
    assert Decimal(logs[0]["meta_data"]["balance_after"]) == Decimal("0")
    assert logs[0]["actor_username"] == "accountant"


@pytest.mark.asyncio
async def test_action_log_filter_by_action(client, customer):
    await client.post("/v1/receipts", json={"customer_id": customer["id"], "date": "2026-03-01", "amount": "1"})

    response = await client.get("/v1/action-logs", params={"action": "RECEIPT_CREATED"})

    assert response.json()["total"] == 1


# TEST 7: Admin recompute
@pytest.mark.asyncio
async def test_admin_recompute_dry_run(client, customer):
    await client.post("/v1/sales-invoices", json={
        "customer_id": customer["id"], "date": "2026-03-01", "subtotal": "75"
    })

    response = await client.post(f"/v1/admin/ledger/customer/{customer['id']}/recompute", params={"dry_run": True})

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["drift"]) == Decimal("0")
    assert data["document_count"] == 1
    assert data["applied"] is False


@pytest.mark.asyncio
async def test_admin_recompute_all(client, customer, supplier):
    response = await client.post("/v1/admin/ledger/recompute-all")

    assert response.status_code == 200
    data = response.json()
    assert data["dry_run"] is True
    assert data["accounts_checked"] == 2
    assert data["drifted"] == 0


@pytest.mark.asyncio
async def test_admin_recompute_missing_account(client):
    response = await client.post("/v1/admin/ledger/supplier/77/recompute")
    assert response.status_code == 404


# TEST 8: Clamped deletes
@pytest.mark.asyncio
async def test_clamped_invoice_delete_keeps_ledger_consistent(client, supplier):
    invoice = (await client.post("/v1/purchase-invoices", json={
        "supplier_id": supplier["id"], "date": "2026-03-01", "subtotal": "100"
    })).json()
    await client.post("/v1/payments", json={"supplier_id": supplier["id"], "date": "2026-03-02", "amount": "100"})

    response = await client.delete(f"/v1/purchase-invoices/{invoice['id']}", params={"clamp": True})

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["balance_after"]) == Decimal("0")
    assert Decimal(data["balance_adjustment"]) == Decimal("100")

    account = (await client.get(f"/v1/suppliers/{supplier['id']}")).json()
    assert Decimal(account["balance_adjustment"]) == Decimal("100")

    logs = (await client.get("/v1/action-logs", params={"action": "PURCHASE_INVOICE_DELETED"})).json()["logs"]
    assert Decimal(str(logs[0]["meta_data"]["balance_adjustment"])) == Decimal("100")

    report = (await client.post(
        f"/v1/admin/ledger/supplier/{supplier['id']}/recompute", params={"dry_run": True}
    )).json()
    assert Decimal(report["stored_balance"]) == Decimal("0")
    assert Decimal(report["drift"]) == Decimal("0")


@pytest.mark.asyncio
async def test_clamp_not_allowed_on_receipt_delete(client, customer):
    receipt = (await client.post("/v1/receipts", json={
        "customer_id": customer["id"], "date": "2026-03-01", "amount": "30"
    })).json()

    response = await client.delete(f"/v1/receipts/{receipt['id']}", params={"clamp": True})

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"
    assert (await client.get(f"/v1/receipts/{receipt['id']}")).status_code == 200
