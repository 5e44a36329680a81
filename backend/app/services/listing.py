"""Filtered, sorted, paginated list queries shared by the transaction, stock and product endpoints.

A resource is described by a ``ResourceSpec`` table (joins, searchable columns,
id filters, sort keys). One request flows through:

    build_predicate + resolve_sort -> fetch_page (count + window) -> assemble -> ListResponse

The same ``Predicate`` instance is applied to both the count and the page
statement, and every user value reaches the database as a bound parameter.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Select, distinct, func, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import DBAPIError, TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.selectable import FromClause

from app.core.errors import InvariantViolation, TransientStorageError
from app.schemas.list_query import ListQuery
from app.schemas.pagination import ListResponse, PaginationMeta

logger = logging.getLogger(__name__)

Assembler = Callable[[AsyncSession, Sequence[Row]], Awaitable[list[dict[str, Any]]]]


@dataclass(frozen=True, eq=False)
class ResourceSpec:
    """Static description of one listable resource."""

    name: str
    message: str
    primary_key: ColumnElement
    joined_from: Callable[[], FromClause]
    columns: tuple[ColumnElement, ...]
    assemble: Assembler
    search_columns: tuple[ColumnElement, ...] = ()
    filters: Mapping[str, ColumnElement] = field(default_factory=dict)
    sort_keys: Mapping[str, ColumnElement] = field(default_factory=dict)
    scope: tuple[tuple[str, ColumnElement], ...] = ()
    group_by: tuple[ColumnElement, ...] = ()


@dataclass(frozen=True, eq=False)
class Condition:
    name: str
    clause: ColumnElement
    value: Any = None


@dataclass(frozen=True, eq=False)
class Predicate:
    """Ordered AND of independent conditions. An empty predicate matches every row."""

    conditions: tuple[Condition, ...] = ()

    @property
    def clauses(self) -> list[ColumnElement]:
        return [c.clause for c in self.conditions]

    @property
    def names(self) -> list[str]:
        return [c.name for c in self.conditions]

    @property
    def params(self) -> list[Any]:
        """Bound values in condition order (scope conditions carry none)."""
        return [c.value for c in self.conditions if c.value is not None]

    def apply(self, stmt: Select) -> Select:
        return stmt.where(*self.clauses) if self.conditions else stmt


@dataclass(frozen=True, eq=False)
class SortSpec:
    key: str
    expression: ColumnElement
    descending: bool
    tie_break: ColumnElement

    def order_by(self) -> list[ColumnElement]:
        primary = self.expression.desc() if self.descending else self.expression.asc()
        return [primary, self.tie_break.asc()]


@dataclass(frozen=True, eq=False)
class PageResult:
    rows: Sequence[Row]
    total: int


def build_predicate(resource: ResourceSpec, query: ListQuery) -> Predicate:
    conditions = [Condition(name, clause) for name, clause in resource.scope]
    if query.search and resource.search_columns:
        term = query.search
        match = resource.search_columns[0].icontains(term, autoescape=True)
        for column in resource.search_columns[1:]:
            match = match | column.icontains(term, autoescape=True)
        conditions.append(Condition("search", match.self_group(), term))
    for key, value in query.filters.items():
        if value is None:
            continue
        column = resource.filters.get(key)
        if column is None:
            raise InvariantViolation(f"{resource.name}: no filter column for {key!r}")
        conditions.append(Condition(f"filter:{key}", column == value, value))
    return Predicate(tuple(conditions))


def resolve_sort(resource: ResourceSpec, sort_by: str, sort_order: str) -> SortSpec:
    expression = resource.sort_keys.get(sort_by)
    if expression is None:
        raise InvariantViolation(f"{resource.name}: unmapped sort key {sort_by!r}")
    if sort_order not in ("asc", "desc"):
        raise InvariantViolation(f"{resource.name}: bad sort direction {sort_order!r}")
    return SortSpec(
        key=sort_by,
        expression=expression,
        descending=sort_order == "desc",
        tie_break=resource.primary_key,
    )


async def execute_read(session: AsyncSession, stmt: Select, *, resource: str, shape: str):
    """Run one read; storage faults surface as TransientStorageError and are not retried."""
    try:
        return await session.execute(stmt)
    except (DBAPIError, PoolTimeoutError, asyncio.TimeoutError, OSError) as exc:
        logger.error("%s %s query failed: %s", resource, shape, type(exc).__name__)
        raise TransientStorageError() from exc


async def fetch_page(
    session: AsyncSession,
    resource: ResourceSpec,
    predicate: Predicate,
    sort: SortSpec,
    page: int,
    limit: int,
) -> PageResult:
    """Count matching rows and fetch one window in sort order. A page past the end yields no rows."""
    if page < 1 or limit < 1:
        raise InvariantViolation(f"{resource.name}: page={page} limit={limit}")
    shape = f"[{', '.join(predicate.names)}] sort={sort.key}"

    count_stmt = predicate.apply(
        select(func.count(distinct(resource.primary_key))).select_from(resource.joined_from())
    )
    total = int((await execute_read(session, count_stmt, resource=resource.name, shape=shape)).scalar_one() or 0)
    offset = (page - 1) * limit
    if offset >= total:
        return PageResult(rows=(), total=total)

    page_stmt = predicate.apply(select(*resource.columns).select_from(resource.joined_from()))
    if resource.group_by:
        page_stmt = page_stmt.group_by(*resource.group_by)
    page_stmt = page_stmt.order_by(*sort.order_by()).limit(limit).offset(offset)
    rows = (await execute_read(session, page_stmt, resource=resource.name, shape=shape)).all()
    return PageResult(rows=rows, total=total)


async def list_resource(session: AsyncSession, resource: ResourceSpec, query: ListQuery) -> ListResponse:
    predicate = build_predicate(resource, query)
    sort = resolve_sort(resource, query.sort_by, query.sort_order)
    logger.debug(
        "list %s page=%s limit=%s sort=%s %s conditions=%s",
        resource.name,
        query.page,
        query.limit,
        sort.key,
        query.sort_order,
        predicate.names,
    )
    result = await fetch_page(session, resource, predicate, sort, query.page, query.limit)
    items = await resource.assemble(session, result.rows)
    return ListResponse(
        message=resource.message,
        data=items,
        pagination=PaginationMeta.from_counts(query.page, query.limit, result.total),
    )
