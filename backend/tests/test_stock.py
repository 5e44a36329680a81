"""Tests for the stock list and per-product stock history APIs."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

from app.models import Category, Manufacturer, Product, Stock, Unit

URL = "/api/v1/inventory/stock"
T0 = datetime(2026, 5, 1, 9, 0, 0)


async def _seed(session_maker) -> dict:
    async with session_maker() as session:
        widgets = Category(name="Widgets")
        tools = Category(name="Tools")
        acme = Manufacturer(name="Acme")
        pcs = Unit(name="pcs")
        session.add_all([widgets, tools, acme, pcs])
        await session.flush()
        bolt = Product(name="Bolt", sku="B-001", barcode="8990001", category_id=widgets.id, unit_id=pcs.id)
        hammer = Product(name="hammer", sku="H-001", category_id=tools.id, manufacture_id=acme.id)
        nail = Product(name="Nail", category_id=widgets.id, is_active=False)
        screw = Product(name="Screw")
        session.add_all([bolt, hammer, nail, screw])
        await session.flush()
        session.add_all(
            [
                Stock(product_id=bolt.id, type="purchase", qty=Decimal("10"), unit_id=pcs.id, created_at=T0),
                Stock(
                    product_id=bolt.id,
                    type="sale",
                    qty=Decimal("-3"),
                    unit_id=pcs.id,
                    created_at=T0 + timedelta(hours=1),
                ),
                Stock(product_id=hammer.id, type="adjustment", qty=Decimal("5"), unit_id=pcs.id, created_at=T0),
                Stock(product_id=nail.id, type="purchase", qty=Decimal("50"), unit_id=pcs.id, created_at=T0),
            ]
        )
        await session.commit()
        return {
            "widgets": widgets.id,
            "tools": tools.id,
            "acme": acme.id,
            "bolt": bolt.id,
            "hammer": hammer.id,
            "nail": nail.id,
            "screw": screw.id,
        }


@pytest.mark.asyncio
async def test_stock_list_defaults(client: AsyncClient, auth_headers: dict, session_maker):
    await _seed(session_maker)
    resp = await client.get(URL, headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Stock information retrieved successfully"
    # Inactive products are out of scope; name sort is case-insensitive
    assert [d["product_name"] for d in body["data"]] == ["Bolt", "hammer", "Screw"]
    assert body["pagination"]["total"] == 3
    bolt = body["data"][0]
    assert bolt["stock"] == 7.0
    assert bolt["category_name"] == "Widgets"
    assert bolt["manufacturer_name"] is None
    assert bolt["unit_id"] is not None
    assert bolt["unit_name"] == "pcs"
    assert bolt["last_updated_at"].startswith("2026-05-01T10:00:00")
    screw = body["data"][2]
    assert screw["stock"] == 0.0
    assert screw["category_id"] is None
    assert screw["unit_name"] is None
    assert screw["last_updated_at"] is None


@pytest.mark.asyncio
async def test_search_matches_joined_category_only(client: AsyncClient, auth_headers: dict, session_maker):
    await _seed(session_maker)
    body = (await client.get(f"{URL}?search=widget", headers=auth_headers)).json()
    assert [d["product_name"] for d in body["data"]] == ["Bolt"]
    assert body["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_search_matches_manufacturer_and_barcode(client: AsyncClient, auth_headers: dict, session_maker):
    await _seed(session_maker)
    by_maker = (await client.get(f"{URL}?search=ACME", headers=auth_headers)).json()
    assert [d["product_name"] for d in by_maker["data"]] == ["hammer"]
    by_barcode = (await client.get(f"{URL}?search=8990", headers=auth_headers)).json()
    assert [d["product_name"] for d in by_barcode["data"]] == ["Bolt"]


@pytest.mark.asyncio
async def test_sort_by_stock(client: AsyncClient, auth_headers: dict, session_maker):
    await _seed(session_maker)
    body = (await client.get(f"{URL}?sort_by=stock&sort_order=desc", headers=auth_headers)).json()
    assert [(d["product_name"], d["stock"]) for d in body["data"]] == [
        ("Bolt", 7.0),
        ("hammer", 5.0),
        ("Screw", 0.0),
    ]


@pytest.mark.asyncio
async def test_category_filter_and_count_agree(client: AsyncClient, auth_headers: dict, session_maker):
    ids = await _seed(session_maker)
    body = (await client.get(f"{URL}?category_id={ids['tools']}", headers=auth_headers)).json()
    assert [d["product_name"] for d in body["data"]] == ["hammer"]
    assert body["pagination"]["total"] == 1
    body = (await client.get(f"{URL}?manufacture_id={ids['acme']}&search=bolt", headers=auth_headers)).json()
    assert body["data"] == []
    assert body["pagination"]["total"] == 0


@pytest.mark.asyncio
async def test_stock_pagination_counts_products_not_movements(
    client: AsyncClient, auth_headers: dict, session_maker
):
    await _seed(session_maker)
    body = (await client.get(f"{URL}?limit=2&page=2", headers=auth_headers)).json()
    assert [d["product_name"] for d in body["data"]] == ["Screw"]
    assert body["pagination"]["total"] == 3
    assert body["pagination"]["totalPages"] == 2
    assert body["pagination"]["hasPrev"] is True


@pytest.mark.asyncio
async def test_stock_invalid_params(client: AsyncClient, auth_headers: dict):
    resp = await client.get(f"{URL}?sort_by=bogus&sort_order=up&category_id=abc", headers=auth_headers)
    assert resp.status_code == 400
    errors = {e["field"]: e["message"] for e in resp.json()["errors"]}
    assert set(errors) == {"sort_by", "sort_order", "category_id"}
    assert errors["category_id"] == "invalid integer"


@pytest.mark.asyncio
async def test_stock_history(client: AsyncClient, auth_headers: dict, session_maker):
    ids = await _seed(session_maker)
    resp = await client.get(f"{URL}/{ids['bolt']}", headers=auth_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Stock history retrieved successfully"
    assert [(d["type"], d["type_label"], d["qty"]) for d in body["data"]] == [
        ("sale", "Sale", -3.0),
        ("purchase", "Purchase", 10.0),
    ]
    assert body["data"][0]["unit_name"] == "pcs"
    assert body["pagination"]["limit"] == 20
    assert body["pagination"]["total"] == 2


@pytest.mark.asyncio
async def test_stock_history_page_beyond_range(client: AsyncClient, auth_headers: dict, session_maker):
    ids = await _seed(session_maker)
    body = (await client.get(f"{URL}/{ids['bolt']}?limit=1&page=5", headers=auth_headers)).json()
    assert body["data"] == []
    assert body["pagination"]["total"] == 2
    assert body["pagination"]["hasNext"] is False
    assert body["pagination"]["hasPrev"] is True


@pytest.mark.asyncio
async def test_stock_history_not_found(client: AsyncClient, auth_headers: dict, session_maker):
    ids = await _seed(session_maker)
    missing = await client.get(f"{URL}/9999", headers=auth_headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Product not found"
    inactive = await client.get(f"{URL}/{ids['nail']}", headers=auth_headers)
    assert inactive.status_code == 404


@pytest.mark.asyncio
async def test_stock_history_bad_product_id(client: AsyncClient, auth_headers: dict):
    resp = await client.get(f"{URL}/abc", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "product_id"
