"""Product list with category and manufacturer nested as {id, name} objects."""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import func
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.lookup import Category, Manufacturer
from app.models.product import Product
from app.schemas.list_query import ListQuery
from app.schemas.pagination import ListResponse
from app.services.listing import ResourceSpec, list_resource


def _joined_from():
    return (
        Product.__table__
        .outerjoin(Category.__table__, Product.category_id == Category.id)
        .outerjoin(Manufacturer.__table__, Product.manufacture_id == Manufacturer.id)
    )


def _ref(ref_id: int | None, name: str | None) -> dict[str, Any] | None:
    return {"id": ref_id, "name": name} if ref_id else None


async def _assemble(session: AsyncSession, rows: Sequence[Row]) -> list[dict[str, Any]]:
    return [
        {
            "id": row.id,
            "name": row.name,
            "description": row.description,
            "sku": row.sku,
            "barcode": row.barcode,
            "image_url": row.image_url,
            "category": _ref(row.category_id, row.category_name),
            "manufacturer": _ref(row.manufacturer_id, row.manufacturer_name),
            "is_active": row.is_active,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
            "created_by": row.created_by,
            "updated_by": row.updated_by,
        }
        for row in rows
    ]


PRODUCTS = ResourceSpec(
    name="products",
    message="Products retrieved successfully",
    primary_key=Product.id,
    joined_from=_joined_from,
    columns=(
        Product.id,
        Product.name,
        Product.description,
        Product.sku,
        Product.barcode,
        Product.image_url,
        Product.is_active,
        Product.created_at,
        Product.updated_at,
        Product.created_by,
        Product.updated_by,
        Category.id.label("category_id"),
        Category.name.label("category_name"),
        Manufacturer.id.label("manufacturer_id"),
        Manufacturer.name.label("manufacturer_name"),
    ),
    assemble=_assemble,
    search_columns=(Product.name, Product.sku, Product.barcode, Category.name, Manufacturer.name),
    filters={"category_id": Product.category_id, "manufacturer_id": Product.manufacture_id},
    sort_keys={
        "name": func.lower(Product.name),
        "description": func.lower(Product.description),
        "category": func.lower(Category.name),
        "manufacturer": func.lower(Manufacturer.name),
    },
    scope=(("active", Product.is_active.is_(True)),),
)


async def list_products(session: AsyncSession, query: ListQuery) -> ListResponse:
    return await list_resource(session, PRODUCTS, query)
