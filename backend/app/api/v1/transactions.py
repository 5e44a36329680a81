"""Transactions API: filtered, sorted, paginated transaction list."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from app.db.session import get_db
from app.models.user import User
from app.schemas.list_query import TransactionListParams, parse_list_query
from app.schemas.pagination import ListResponse
from app.services.transactions import list_transactions

router = APIRouter(prefix="/transaction/list", tags=["transactions"])


def transaction_list_params(request: Request) -> TransactionListParams:
    return parse_list_query(TransactionListParams, request.query_params)


@router.get(
    "",
    response_model=ListResponse,
    summary="List transactions",
    responses={400: {"description": "Invalid query parameters"}, 401: {"description": "Not authenticated"}},
)
async def get_transactions(
    session: Annotated[AsyncSession, Depends(get_db)],
    user: Annotated[User, Depends(get_current_user)],
    params: Annotated[TransactionListParams, Depends(transaction_list_params)],
) -> ListResponse:
    """
    Query: page, limit (max 100), search (transaction number or user name),
    type (all|sale|purchase|adjustment), sortBy (time|transactionNo|type|user), sortOrder (asc|desc).
    """
    return await list_transactions(session, params.to_list_query())
