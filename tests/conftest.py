from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base
from app.main import app, get_db


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class ShopApi:
    """Small wrappers around the REST endpoints used to set up test data."""

    def __init__(self, client: TestClient) -> None:
        self.client = client

    def shop(self, gstin: str = "27ABCDE1234F1Z5", name: str = "Sharma Electricals") -> int:
        resp = self.client.post(
            "/api/shop-profile",
            json={
                "shop_name": name,
                "gstin": gstin,
                "address": "14 MG Road, Pune",
                "phone_number": "9822012345",
            },
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["id"]

    def product(
        self,
        shop_id: int,
        name: str,
        quantity: int,
        price: float = 100,
        category: Optional[str] = "Lighting",
        brand: Optional[str] = "Philips",
    ) -> int:
        resp = self.client.post(
            "/api/products",
            json={
                "name": name,
                "category": category,
                "brand": brand,
                "price": price,
                "quantity": quantity,
                "unitType": "pcs",
                "shop": shop_id,
            },
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["id"]

    def kit(self, shop_id: int, name: str, components: list[tuple[int, int]], price: float = 0) -> int:
        resp = self.client.post(
            "/api/kits",
            json={
                "name": name,
                "price": price,
                "products": [{"product": pid, "quantity": qty} for pid, qty in components],
                "shop": shop_id,
            },
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["id"]

    def quantity(self, product_id: int) -> int:
        resp = self.client.get(f"/api/products/{product_id}")
        assert resp.status_code == 200, resp.text
        return resp.json()["quantity"]

    def bill_count(self) -> int:
        return self.client.get("/api/bills").json()["pagination"]["total"]


@pytest.fixture
def api(client) -> ShopApi:
    return ShopApi(client)
