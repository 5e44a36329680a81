"""Setup API: product list."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.list_query import ProductListParams, parse_list_query
from app.schemas.pagination import ListResponse
from app.services.products import list_products

router = APIRouter(prefix="/setup/product", tags=["products"])


def product_list_params(request: Request) -> ProductListParams:
    return parse_list_query(ProductListParams, request.query_params)


@router.get(
    "",
    response_model=ListResponse,
    summary="List active products",
    responses={400: {"description": "Invalid query parameters"}, 401: {"description": "Not authenticated"}},
)
async def get_products(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    params: Annotated[ProductListParams, Depends(product_list_params)],
) -> ListResponse:
    return await list_products(session, params.to_list_query())
