"""Stock list (on-hand quantity per active product) and per-product movement history."""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.lookup import Category, Manufacturer, Unit
from app.models.product import Product
from app.models.stock import Stock
from app.models.user import User
from app.schemas.list_query import ListQuery
from app.schemas.pagination import ListResponse
from app.services.listing import ResourceSpec, execute_read, list_resource

TYPE_LABELS = {"sale": "Sale", "purchase": "Purchase", "adjustment": "Adjustment"}

_on_hand = func.coalesce(func.sum(Stock.qty), 0)


def _as_number(value: Any) -> float:
    return float(value) if value is not None else 0.0


def _stock_from():
    return (
        Product.__table__
        .outerjoin(Category.__table__, Product.category_id == Category.id)
        .outerjoin(Manufacturer.__table__, Product.manufacture_id == Manufacturer.id)
        .outerjoin(Unit.__table__, Product.unit_id == Unit.id)
        .outerjoin(Stock.__table__, Stock.product_id == Product.id)
    )


async def _assemble_stock(session: AsyncSession, rows: Sequence[Row]) -> list[dict[str, Any]]:
    return [
        {
            "product_id": row.product_id,
            "product_name": row.product_name,
            "sku": row.sku,
            "barcode": row.barcode,
            "image_url": row.image_url,
            "category_id": row.category_id,
            "category_name": row.category_name if row.category_id else None,
            "manufacturer_id": row.manufacturer_id,
            "manufacturer_name": row.manufacturer_name if row.manufacturer_id else None,
            "unit_id": row.unit_id,
            "unit_name": row.unit_name if row.unit_id else None,
            "stock": _as_number(row.stock),
            "last_updated_at": row.last_updated_at,
        }
        for row in rows
    ]


STOCK = ResourceSpec(
    name="stock",
    message="Stock information retrieved successfully",
    primary_key=Product.id,
    joined_from=_stock_from,
    columns=(
        Product.id.label("product_id"),
        Product.name.label("product_name"),
        Product.sku,
        Product.barcode,
        Product.image_url,
        Category.id.label("category_id"),
        Category.name.label("category_name"),
        Manufacturer.id.label("manufacturer_id"),
        Manufacturer.name.label("manufacturer_name"),
        Unit.id.label("unit_id"),
        Unit.name.label("unit_name"),
        _on_hand.label("stock"),
        func.max(Stock.created_at).label("last_updated_at"),
    ),
    group_by=(
        Product.id,
        Product.name,
        Product.sku,
        Product.barcode,
        Product.image_url,
        Category.id,
        Category.name,
        Manufacturer.id,
        Manufacturer.name,
        Unit.id,
        Unit.name,
    ),
    assemble=_assemble_stock,
    search_columns=(Product.name, Product.sku, Product.barcode, Category.name, Manufacturer.name),
    filters={"category_id": Product.category_id, "manufacture_id": Product.manufacture_id},
    sort_keys={
        "name": func.lower(Product.name),
        "category": func.lower(Category.name),
        "manufacture": func.lower(Manufacturer.name),
        "stock": _on_hand,
    },
    scope=(("active", Product.is_active.is_(True)),),
)


def _history_from():
    return (
        Stock.__table__
        .outerjoin(Unit.__table__, Stock.unit_id == Unit.id)
        .outerjoin(User.__table__, Stock.created_by == User.id)
    )


async def _assemble_history(session: AsyncSession, rows: Sequence[Row]) -> list[dict[str, Any]]:
    return [
        {
            "id": row.id,
            "product_id": row.product_id,
            "transaction_id": row.transaction_id,
            "type": row.type,
            "type_label": TYPE_LABELS.get(row.type, row.type),
            "qty": _as_number(row.qty),
            "description": row.description,
            "created_at": row.created_at,
            "created_by": row.created_by,
            "created_by_name": row.created_by_name,
            "unit_name": row.unit_name,
        }
        for row in rows
    ]


STOCK_HISTORY = ResourceSpec(
    name="stock_history",
    message="Stock history retrieved successfully",
    primary_key=Stock.id,
    joined_from=_history_from,
    columns=(
        Stock.id,
        Stock.product_id,
        Stock.transaction_id,
        Stock.type,
        Stock.qty,
        Stock.description,
        Stock.created_at,
        Stock.created_by,
        Unit.name.label("unit_name"),
        User.name.label("created_by_name"),
    ),
    assemble=_assemble_history,
    filters={"product_id": Stock.product_id},
    sort_keys={"created_at": Stock.created_at},
)


async def list_stock(session: AsyncSession, query: ListQuery) -> ListResponse:
    return await list_resource(session, STOCK, query)


async def list_stock_history(session: AsyncSession, query: ListQuery) -> ListResponse:
    product_id = query.filters["product_id"]
    stmt = select(Product.id).where(Product.id == product_id, Product.is_active.is_(True))
    found = (await execute_read(session, stmt, resource="stock_history", shape="product lookup")).scalar_one_or_none()
    if found is None:
        raise NotFoundError("Product not found")
    return await list_resource(session, STOCK_HISTORY, query)
