"""Inventory stock API: on-hand quantity per product and per-product movement history."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.list_query import StockHistoryParams, StockListParams, parse_list_query
from app.schemas.pagination import ListResponse
from app.services.stock import list_stock, list_stock_history

router = APIRouter(prefix="/inventory/stock", tags=["stock"])


def stock_list_params(request: Request) -> StockListParams:
    return parse_list_query(StockListParams, request.query_params)


def stock_history_params(request: Request) -> StockHistoryParams:
    raw = dict(request.query_params)
    raw["product_id"] = request.path_params.get("product_id")
    return parse_list_query(StockHistoryParams, raw)


@router.get(
    "",
    response_model=ListResponse,
    summary="List stock per product",
    responses={400: {"description": "Invalid query parameters"}, 401: {"description": "Not authenticated"}},
)
async def get_stock(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    params: Annotated[StockListParams, Depends(stock_list_params)],
) -> ListResponse:
    """Search by product name, SKU, barcode, category or manufacturer; filter by category_id/manufacture_id."""
    return await list_stock(session, params.to_list_query())


@router.get(
    "/{product_id}",
    response_model=ListResponse,
    summary="Stock movement history of a product",
    responses={
        400: {"description": "Invalid product id or query parameters"},
        401: {"description": "Not authenticated"},
        404: {"description": "Product not found"},
    },
)
async def get_stock_history(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    params: Annotated[StockHistoryParams, Depends(stock_history_params)],
) -> ListResponse:
    return await list_stock_history(session, params.to_list_query())
