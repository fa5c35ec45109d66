from app.numbering import financial_year


def _supplier(client, name: str = "Havells Distributors", **extra) -> int:
    body = {"name": name, "contactPerson": "Anil Joshi", "phone": "9890011223"}
    body.update(extra)
    resp = client.post("/api/suppliers", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def _invoice(supplier_id: int, amount=1000, **extra) -> dict:
    body = {
        "supplierId": supplier_id,
        "supplierInvoiceNumber": "HD/2025/0931",
        "invoiceDate": "2025-06-03T00:00:00",
        "dueDate": "2025-07-03T00:00:00",
        "amount": amount,
    }
    body.update(extra)
    return body


def test_supplier_crud_flow(client) -> None:
    supplier_id = _supplier(client, gstId="27AAACH1234K1Z2")

    fetched = client.get(f"/api/suppliers/{supplier_id}").json()
    assert fetched["name"] == "Havells Distributors"
    assert fetched["gstId"] == "27AAACH1234K1Z2"

    updated = client.put(
        f"/api/suppliers/{supplier_id}",
        json={"name": "Havells Pune", "email": "orders@havells-dist.in"},
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Havells Pune"
    assert updated.json()["contactPerson"] is None

    assert client.delete(f"/api/suppliers/{supplier_id}").status_code == 200
    assert client.get(f"/api/suppliers/{supplier_id}").status_code == 404


def test_supplier_list_search_and_pagination(client) -> None:
    _supplier(client, "Havells Distributors")
    _supplier(client, "Anchor Electricals", contactPerson="Ravi Shah")
    _supplier(client, "Polycab Wires")

    page = client.get("/api/suppliers", params={"limit": 2, "page": 1}).json()
    assert page["pagination"] == {"total": 3, "pages": 2, "page": 1}
    assert [s["name"] for s in page["suppliers"]] == ["Anchor Electricals", "Havells Distributors"]

    found = client.get("/api/suppliers", params={"search": "ravi"}).json()
    assert [s["name"] for s in found["suppliers"]] == ["Anchor Electricals"]


def test_supplier_requires_name(client) -> None:
    assert client.post("/api/suppliers", json={"name": " "}).status_code == 422


def test_invoice_numbers_come_from_the_invoice_counter(client) -> None:
    supplier_id = _supplier(client)
    year = financial_year()

    first = client.post("/api/invoices", json=_invoice(supplier_id))
    second = client.post("/api/invoices", json=_invoice(supplier_id, supplierInvoiceNumber="HD/2025/0932"))

    assert first.status_code == 201
    assert first.json()["invoiceNumber"] == f"INV/{year}/000001"
    assert second.json()["invoiceNumber"] == f"INV/{year}/000002"
    assert first.json()["supplier"] == {"id": supplier_id, "name": "Havells Distributors"}
    assert first.json()["paymentStatus"] == "Pending"


def test_invoice_numbering_is_independent_of_bills(api, client) -> None:
    shop_id = api.shop()
    client.post(
        "/api/bills",
        json={"shop": shop_id, "items": [{"itemType": "Simple", "name": "Labour", "quantity": 1, "rate": 10}]},
    )
    supplier_id = _supplier(client)

    invoice = client.post("/api/invoices", json=_invoice(supplier_id)).json()

    assert invoice["invoiceNumber"] == f"INV/{financial_year()}/000001"


def test_invoice_for_unknown_supplier_is_rejected(client) -> None:
    resp = client.post("/api/invoices", json=_invoice(42))

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Supplier not found."


def test_invoice_amount_bounds(client) -> None:
    supplier_id = _supplier(client)

    assert client.post("/api/invoices", json=_invoice(supplier_id, amount=-1)).status_code == 422
    assert client.post("/api/invoices", json=_invoice(supplier_id, amount="1e15")).status_code == 422
    assert client.post("/api/invoices", json=_invoice(supplier_id, amount="10.001")).status_code == 422


def test_paid_invoice_records_full_amount(client) -> None:
    supplier_id = _supplier(client)

    invoice = client.post(
        "/api/invoices", json=_invoice(supplier_id, amount=2500, paymentStatus="Paid", paidAmount=100)
    ).json()

    assert invoice["paidAmount"] == 2500.0


def test_update_invoice_is_partial_and_keeps_number(client) -> None:
    supplier_id = _supplier(client)
    other_id = _supplier(client, "Anchor Electricals")
    invoice = client.post("/api/invoices", json=_invoice(supplier_id)).json()

    resp = client.put(
        f"/api/invoices/{invoice['id']}",
        json={"supplierId": other_id, "paidAmount": 400, "paymentStatus": "Partial", "amount": None},
    )

    assert resp.status_code == 200
    updated = resp.json()
    assert updated["invoiceNumber"] == invoice["invoiceNumber"]
    assert updated["supplier"]["name"] == "Anchor Electricals"
    assert updated["amount"] == 1000.0
    assert updated["paidAmount"] == 400.0
    assert updated["supplierInvoiceNumber"] == "HD/2025/0931"

    assert client.put(f"/api/invoices/{invoice['id']}", json={"supplierId": 999}).status_code == 404
    assert client.put("/api/invoices/999", json={"notes": "x"}).status_code == 404


def test_invoice_list_search(client) -> None:
    havells = _supplier(client, "Havells Distributors")
    anchor = _supplier(client, "Anchor Electricals")
    client.post("/api/invoices", json=_invoice(havells))
    client.post("/api/invoices", json=_invoice(anchor, paymentStatus="Paid"))

    everything = client.get("/api/invoices").json()
    assert everything["pagination"] == {"total": 2, "pages": 1, "page": 1}

    by_supplier = client.get("/api/invoices", params={"search": "anchor"}).json()
    assert [i["supplierId"] for i in by_supplier["invoices"]] == [anchor]

    by_status = client.get("/api/invoices", params={"search": "pending"}).json()
    assert [i["supplierId"] for i in by_status["invoices"]] == [havells]


def test_supplier_dues_and_clear_due(client) -> None:
    supplier_id = _supplier(client)
    partial = client.post(
        "/api/invoices", json=_invoice(supplier_id, amount=1500, paymentStatus="Partial", paidAmount=500)
    ).json()
    client.post("/api/invoices", json=_invoice(supplier_id, paymentStatus="Paid"))

    dues = client.get("/api/dues/suppliers").json()
    assert [d["id"] for d in dues] == [partial["id"]]
    assert dues[0]["balance"] == 1000.0
    assert dues[0]["supplier"] == {"id": supplier_id, "name": "Havells Distributors"}

    cleared = client.put(f"/api/invoices/{partial['id']}/clear-due")
    assert cleared.status_code == 200
    assert cleared.json()["paymentStatus"] == "Paid"
    assert cleared.json()["paidAmount"] == 1500.0
    assert client.get("/api/dues/suppliers").json() == []


def test_supplier_with_invoices_cannot_be_deleted(client) -> None:
    supplier_id = _supplier(client)
    invoice = client.post("/api/invoices", json=_invoice(supplier_id)).json()

    blocked = client.delete(f"/api/suppliers/{supplier_id}")
    assert blocked.status_code == 409
    assert blocked.json()["detail"] == 'Supplier "Havells Distributors" still has invoices.'

    assert client.delete(f"/api/invoices/{invoice['id']}").status_code == 200
    assert client.get(f"/api/invoices/{invoice['id']}").status_code == 404
    assert client.delete(f"/api/suppliers/{supplier_id}").status_code == 200
