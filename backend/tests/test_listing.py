"""Predicate builder, sort resolver and page executor without a database."""

import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.core.errors import InvariantViolation, TransientStorageError
from app.models.product import Product
from app.schemas.list_query import ListQuery
from app.services.listing import build_predicate, execute_read, fetch_page, resolve_sort
from app.services.products import PRODUCTS
from app.services.stock import STOCK
from app.services.transactions import TRANSACTIONS


def _query(**kw) -> ListQuery:
    base = {"page": 1, "limit": 10, "sort_by": "name", "sort_order": "asc"}
    base.update(kw)
    return ListQuery(**base)


def test_no_input_keeps_only_scope():
    predicate = build_predicate(STOCK, _query())
    assert predicate.names == ["active"]
    assert predicate.params == []


def test_transactions_have_no_default_scope():
    predicate = build_predicate(TRANSACTIONS, _query(sort_by="time"))
    assert predicate.conditions == ()
    stmt = predicate.apply(select(Product.id))
    assert "WHERE" not in str(stmt)


def test_conditions_in_order_with_bound_values():
    predicate = build_predicate(
        PRODUCTS,
        _query(search="widget", filters={"category_id": 3, "manufacturer_id": 9}),
    )
    assert predicate.names == ["active", "search", "filter:category_id", "filter:manufacturer_id"]
    assert predicate.params == ["widget", 3, 9]


def test_absent_filter_is_no_constraint():
    predicate = build_predicate(PRODUCTS, _query(filters={"category_id": None}))
    assert predicate.names == ["active"]


def test_search_is_bound_not_interpolated():
    term = "x' OR 1=1 --"
    predicate = build_predicate(STOCK, _query(search=term))
    compiled = predicate.apply(select(Product.id)).compile()
    assert term not in str(compiled)
    assert "OR 1=1" not in str(compiled)
    assert term in compiled.params.values()


def test_search_spans_base_and_joined_columns():
    predicate = build_predicate(STOCK, _query(search="widget"))
    sql = str(predicate.apply(select(Product.id)).compile())
    for column in ("products.name", "products.sku", "products.barcode", "categories.name", "manufacturers.name"):
        assert column in sql
    assert "lower(" in sql


def test_unknown_filter_key_is_a_defect():
    with pytest.raises(InvariantViolation):
        build_predicate(STOCK, _query(filters={"supplier_id": 1}))


def test_sort_appends_primary_key_tie_break():
    sort = resolve_sort(TRANSACTIONS, "user", "desc")
    clauses = [str(c) for c in sort.order_by()]
    assert clauses == ["users.name DESC", "transactions.id ASC"]


def test_sort_ascending_keeps_tie_break_ascending():
    clauses = [str(c) for c in resolve_sort(PRODUCTS, "category", "asc").order_by()]
    assert clauses == ["lower(categories.name) ASC", "products.id ASC"]


def test_unmapped_sort_key_fails_loudly():
    with pytest.raises(InvariantViolation):
        resolve_sort(STOCK, "bogus", "asc")
    with pytest.raises(InvariantViolation):
        resolve_sort(STOCK, "name", "sideways")


@pytest.mark.asyncio
async def test_fetch_page_rejects_non_positive_window():
    predicate = build_predicate(STOCK, _query())
    sort = resolve_sort(STOCK, "name", "asc")
    with pytest.raises(InvariantViolation):
        await fetch_page(None, STOCK, predicate, sort, page=0, limit=10)
    with pytest.raises(InvariantViolation):
        await fetch_page(None, STOCK, predicate, sort, page=1, limit=0)


class _FailingSession:
    def __init__(self, exc: BaseException):
        self.exc = exc
        self.calls = 0

    async def execute(self, stmt):
        self.calls += 1
        raise self.exc


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc",
    [
        OperationalError("SELECT 1", {}, Exception("connection refused")),
        asyncio.TimeoutError(),
        ConnectionResetError(),
    ],
)
async def test_storage_faults_become_transient_errors(exc):
    session = _FailingSession(exc)
    with pytest.raises(TransientStorageError) as err:
        await execute_read(session, select(Product.id), resource="products", shape="test")
    assert err.value.status_code == 500
    assert session.calls == 1


@pytest.mark.asyncio
async def test_count_failure_emits_nothing():
    session = _FailingSession(OperationalError("SELECT 1", {}, Exception("timeout")))
    predicate = build_predicate(PRODUCTS, _query())
    sort = resolve_sort(PRODUCTS, "name", "asc")
    with pytest.raises(TransientStorageError):
        await fetch_page(session, PRODUCTS, predicate, sort, page=1, limit=10)
    assert session.calls == 1


class _CountOnlySession:
    def __init__(self, total: int):
        self.total = total
        self.calls = 0

    async def execute(self, stmt):
        self.calls += 1
        if self.calls > 1:
            raise AssertionError("page query should not run")
        return self

    def scalar_one(self):
        return self.total


@pytest.mark.asyncio
async def test_window_past_total_skips_page_query():
    session = _CountOnlySession(total=3)
    predicate = build_predicate(PRODUCTS, _query())
    sort = resolve_sort(PRODUCTS, "name", "asc")
    result = await fetch_page(session, PRODUCTS, predicate, sort, page=10**19, limit=10)
    assert result.rows == ()
    assert result.total == 3
    assert session.calls == 1
