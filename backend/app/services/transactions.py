"""Transaction list: newest first by default, with each transaction's line items nested."""

from collections import defaultdict
from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.engine import Row
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.lookup import Unit
from app.models.product import Product
from app.models.transaction import Transaction, TransactionItem
from app.models.user import User
from app.schemas.list_query import ListQuery
from app.schemas.pagination import ListResponse
from app.services.listing import ResourceSpec, execute_read, list_resource


def _joined_from():
    return (
        Transaction.__table__
        .outerjoin(User.__table__, Transaction.created_by == User.id)
        .outerjoin(TransactionItem.__table__, TransactionItem.transaction_id == Transaction.id)
    )


async def _line_items(session: AsyncSession, transaction_ids: list[int]) -> dict[int, list[dict[str, Any]]]:
    """All line items of the given transactions in one query, grouped by transaction id."""
    grouped: dict[int, list[dict[str, Any]]] = defaultdict(list)
    if not transaction_ids:
        return grouped
    stmt = (
        select(
            TransactionItem.transaction_id,
            Product.name.label("product_name"),
            TransactionItem.qty,
            Unit.name.label("unit_name"),
        )
        .select_from(
            TransactionItem.__table__
            .outerjoin(Product.__table__, TransactionItem.product_id == Product.id)
            .outerjoin(Unit.__table__, TransactionItem.unit_id == Unit.id)
        )
        .where(TransactionItem.transaction_id.in_(transaction_ids))
        .order_by(TransactionItem.transaction_id, TransactionItem.id)
    )
    result = await execute_read(session, stmt, resource="transactions", shape="line items")
    for line in result.all():
        grouped[line.transaction_id].append(
            {
                "productName": line.product_name,
                "qty": float(line.qty) if line.qty is not None else 0.0,
                "unit": line.unit_name,
            }
        )
    return grouped


async def _assemble(session: AsyncSession, rows: Sequence[Row]) -> list[dict[str, Any]]:
    lines = await _line_items(session, [row.id for row in rows])
    return [
        {
            "id": row.id,
            "transactionNo": row.transaction_no,
            "type": row.type,
            "time": row.time,
            "totalItems": int(row.total_items or 0),
            "user": row.user_name,
            "products": lines.get(row.id, []),
        }
        for row in rows
    ]


TRANSACTIONS = ResourceSpec(
    name="transactions",
    message="Transactions retrieved successfully",
    primary_key=Transaction.id,
    joined_from=_joined_from,
    columns=(
        Transaction.id.label("id"),
        Transaction.no.label("transaction_no"),
        Transaction.type.label("type"),
        Transaction.created_at.label("time"),
        User.name.label("user_name"),
        func.count(TransactionItem.id).label("total_items"),
    ),
    group_by=(Transaction.id, Transaction.no, Transaction.type, Transaction.created_at, User.name),
    assemble=_assemble,
    search_columns=(Transaction.no, User.name),
    filters={"type": Transaction.type},
    sort_keys={
        "time": Transaction.created_at,
        "transactionNo": Transaction.no,
        "type": Transaction.type,
        "user": User.name,
    },
)


async def list_transactions(session: AsyncSession, query: ListQuery) -> ListResponse:
    return await list_resource(session, TRANSACTIONS, query)
