def test_root_and_health(client) -> None:
    assert client.get("/").json() == {"status": "ok"}
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json() == {"status": "healthy"}


def test_create_shop_product_kit_flow(client, api) -> None:
    shop_id = api.shop()

    shop_resp = client.get(f"/api/shop-profile/{shop_id}")
    assert shop_resp.status_code == 200
    assert shop_resp.json()["shop_name"] == "Sharma Electricals"

    bulb_resp = client.post(
        "/api/products",
        json={
            "name": "  LED Bulb 9W ",
            "category": "Lighting",
            "brand": "Philips",
            "price": 120,
            "costPrice": 85,
            "quantity": 200,
            "unitType": "pcs",
            "taxRate": 18,
            "shop": shop_id,
        },
    )
    assert bulb_resp.status_code == 201
    bulb = bulb_resp.json()
    assert bulb["name"] == "LED Bulb 9W"
    assert bulb["code"] == 1
    assert bulb["sku"] == "LI-PH-00001"
    assert bulb["taxType"] == "GST"

    switch_id = api.product(shop_id, "Switch Board", 50, price=250, category=None, brand="a&b")
    switch = client.get(f"/api/products/{switch_id}").json()
    assert switch["code"] == 2
    assert switch["sku"] == "XX-AX-00002"

    kit_resp = client.post(
        "/api/kits",
        json={
            "name": "Wiring Kit",
            "products": [{"product": bulb["id"], "quantity": 2}, {"product": switch_id, "quantity": 1}],
            "shop": shop_id,
        },
    )
    assert kit_resp.status_code == 201
    kit = kit_resp.json()
    assert kit["sku"] == "KIT-WIR-0001"
    assert kit["price"] == 490.0
    assert [c["product"]["name"] for c in kit["products"]] == ["LED Bulb 9W", "Switch Board"]
    assert [c["quantity"] for c in kit["products"]] == [2, 1]

    kits = client.get("/api/kits", params={"shop": shop_id}).json()
    assert len(kits) == 1
    assert kits[0]["products"][0]["product"]["quantity"] == 200

    products = client.get("/api/products", params={"shop": shop_id}).json()
    assert [p["name"] for p in products] == ["Switch Board", "LED Bulb 9W"]


def test_kit_keeps_explicit_price(api, client) -> None:
    shop_id = api.shop()
    product_id = api.product(shop_id, "Tape", 10, price=40)
    kit_id = api.kit(shop_id, "ab", [(product_id, 3)], price=99)
    kit = client.get(f"/api/kits/{kit_id}").json()
    assert kit["price"] == 99.0
    assert kit["sku"] == "KIT-ABX-0001"


def test_duplicate_gstin_is_conflict(api, client) -> None:
    api.shop(gstin="29AAAAA0000A1Z5")
    resp = client.post(
        "/api/shop-profile",
        json={
            "shop_name": "Another Shop",
            "gstin": "29AAAAA0000A1Z5",
            "address": "Bengaluru",
            "phone_number": "9000000000",
        },
    )
    assert resp.status_code == 409


def test_duplicate_kit_name_is_conflict(api, client) -> None:
    shop_id = api.shop()
    product_id = api.product(shop_id, "Tape", 10)
    api.kit(shop_id, "Repair Kit", [(product_id, 1)])
    resp = client.post(
        "/api/kits",
        json={"name": "Repair Kit", "products": [{"product": product_id, "quantity": 1}], "shop": shop_id},
    )
    assert resp.status_code == 409
    assert len(client.get("/api/kits", params={"shop": shop_id}).json()) == 1


def test_kit_with_unknown_product_is_not_found(api, client) -> None:
    shop_id = api.shop()
    resp = client.post(
        "/api/kits",
        json={"name": "Ghost Kit", "products": [{"product": 404, "quantity": 1}], "shop": shop_id},
    )
    assert resp.status_code == 404
    assert "404" in resp.json()["detail"]
    assert client.get("/api/kits", params={"shop": shop_id}).json() == []


def test_kit_requires_components(api, client) -> None:
    shop_id = api.shop()
    resp = client.post("/api/kits", json={"name": "Empty Kit", "products": [], "shop": shop_id})
    assert resp.status_code == 422


def test_update_kit_replaces_components(api, client) -> None:
    shop_id = api.shop()
    first = api.product(shop_id, "Tape", 10, price=10)
    second = api.product(shop_id, "Wire", 10, price=30)
    kit_id = api.kit(shop_id, "Repair Kit", [(first, 1)])

    resp = client.put(
        f"/api/kits/{kit_id}",
        json={"name": "Repair Kit XL", "products": [{"product": second, "quantity": 2}], "shop": shop_id},
    )
    assert resp.status_code == 200
    kit = resp.json()
    assert kit["name"] == "Repair Kit XL"
    assert kit["sku"] == "KIT-REP-0001"
    assert kit["price"] == 60.0
    assert [c["product"]["id"] for c in kit["products"]] == [second]


def test_product_update_keeps_code_and_sku(api, client) -> None:
    shop_id = api.shop()
    product_id = api.product(shop_id, "LED Bulb", 5)
    resp = client.put(
        f"/api/products/{product_id}",
        json={
            "name": "LED Bulb 12W",
            "category": "Fans",
            "brand": "Havells",
            "price": 150,
            "quantity": 7,
            "unitType": "pcs",
            "shop": shop_id,
        },
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "LED Bulb 12W"
    assert data["quantity"] == 7
    assert data["sku"] == "LI-PH-00001"


def test_product_rejects_negative_quantity(api, client) -> None:
    shop_id = api.shop()
    resp = client.post(
        "/api/products",
        json={"name": "Bulb", "price": 10, "quantity": -1, "unitType": "pcs", "shop": shop_id},
    )
    assert resp.status_code == 422


def test_product_for_unknown_shop_is_not_found(client) -> None:
    resp = client.post(
        "/api/products",
        json={"name": "Bulb", "price": 10, "quantity": 1, "unitType": "pcs", "shop": 77},
    )
    assert resp.status_code == 404


def test_list_products_requires_shop(client) -> None:
    assert client.get("/api/products").status_code == 422


def test_delete_product_used_by_kit_is_conflict(api, client) -> None:
    shop_id = api.shop()
    product_id = api.product(shop_id, "Tape", 10)
    kit_id = api.kit(shop_id, "Repair Kit", [(product_id, 1)])

    resp = client.delete(f"/api/products/{product_id}")
    assert resp.status_code == 409
    assert "Repair Kit" in resp.json()["detail"]

    assert client.delete(f"/api/kits/{kit_id}").status_code == 200
    assert client.get(f"/api/kits/{kit_id}").status_code == 404
    assert client.delete(f"/api/products/{product_id}").status_code == 200
    assert client.get(f"/api/products/{product_id}").status_code == 404


def test_delete_shop_in_use_is_conflict(api, client) -> None:
    shop_id = api.shop()
    product_id = api.product(shop_id, "Tape", 10)
    assert client.delete(f"/api/shop-profile/{shop_id}").status_code == 409
    client.delete(f"/api/products/{product_id}")
    assert client.delete(f"/api/shop-profile/{shop_id}").status_code == 200
    assert client.get("/api/shop-profile").json() == []
