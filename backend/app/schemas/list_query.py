"""Query-string schemas for the list endpoints.

Every list route parses its raw query mapping through one of these models with
``parse_list_query``. Invalid input is rejected with the full set of offending
fields; nothing is silently clamped or defaulted except where a field declares
a default.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.config import settings
from app.core.errors import FieldError, ValidationError

_INTEGER = re.compile(r"^[+-]?[0-9]+$")

SortOrder = Literal["asc", "desc"]


def _parse_int(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and _INTEGER.match(value.strip()):
        return int(value.strip(), 10)
    raise ValueError("invalid integer")


def _parse_optional_id(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _parse_int(value)


@dataclass(frozen=True)
class ListQuery:
    """Validated, resource-neutral list request consumed by the list engine."""

    page: int
    limit: int
    sort_by: str
    sort_order: SortOrder
    search: str | None = None
    filters: Mapping[str, Any] = field(default_factory=dict)


class ListQueryParams(BaseModel):
    """Fields shared by every list endpoint: page, limit and free-text search."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=settings.list_default_limit, ge=1, le=settings.list_max_limit)
    search: str | None = None

    @field_validator("page", "limit", mode="before")
    @classmethod
    def _coerce_int(cls, v: Any) -> Any:
        return _parse_int(v)

    @field_validator("search", mode="before")
    @classmethod
    def _blank_search(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v


class TransactionListParams(ListQueryParams):
    type: Literal["all", "sale", "purchase", "adjustment"] = "all"
    sortBy: Literal["time", "transactionNo", "type", "user"] = "time"
    sortOrder: SortOrder = "desc"

    @field_validator("sortOrder", mode="before")
    @classmethod
    def _lower_order(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    def to_list_query(self) -> ListQuery:
        filters = {} if self.type == "all" else {"type": self.type}
        return ListQuery(
            page=self.page,
            limit=self.limit,
            search=self.search,
            filters=filters,
            sort_by=self.sortBy,
            sort_order=self.sortOrder,
        )


class _CatalogListParams(ListQueryParams):
    sort_order: Literal["ASC", "DESC"] = "ASC"

    @field_validator("sort_order", mode="before")
    @classmethod
    def _upper_order(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    def _filters(self, *names: str) -> dict[str, int]:
        return {name: getattr(self, name) for name in names if getattr(self, name) is not None}


class StockListParams(_CatalogListParams):
    category_id: int | None = Field(default=None, ge=1)
    manufacture_id: int | None = Field(default=None, ge=1)
    sort_by: Literal["name", "category", "manufacture", "stock"] = "name"

    @field_validator("category_id", "manufacture_id", mode="before")
    @classmethod
    def _coerce_ids(cls, v: Any) -> Any:
        return _parse_optional_id(v)

    def to_list_query(self) -> ListQuery:
        return ListQuery(
            page=self.page,
            limit=self.limit,
            search=self.search,
            filters=self._filters("category_id", "manufacture_id"),
            sort_by=self.sort_by,
            sort_order="asc" if self.sort_order == "ASC" else "desc",
        )


class ProductListParams(_CatalogListParams):
    category_id: int | None = Field(default=None, ge=1)
    manufacturer_id: int | None = Field(default=None, ge=1)
    sort_by: Literal["name", "description", "category", "manufacturer"] = "name"

    @field_validator("category_id", "manufacturer_id", mode="before")
    @classmethod
    def _coerce_ids(cls, v: Any) -> Any:
        return _parse_optional_id(v)

    def to_list_query(self) -> ListQuery:
        return ListQuery(
            page=self.page,
            limit=self.limit,
            search=self.search,
            filters=self._filters("category_id", "manufacturer_id"),
            sort_by=self.sort_by,
            sort_order="asc" if self.sort_order == "ASC" else "desc",
        )


class StockHistoryParams(ListQueryParams):
    """Movement history of one product; the path id is validated alongside the query string."""

    product_id: int = Field(ge=1)
    limit: int = Field(default=20, ge=1, le=settings.list_max_limit)

    @field_validator("product_id", mode="before")
    @classmethod
    def _coerce_product_id(cls, v: Any) -> Any:
        return _parse_int(v)

    def to_list_query(self) -> ListQuery:
        return ListQuery(
            page=self.page,
            limit=self.limit,
            filters={"product_id": self.product_id},
            sort_by="created_at",
            sort_order="desc",
        )


P = TypeVar("P", bound=ListQueryParams)


def _field_error(err: Mapping[str, Any]) -> FieldError:
    loc = ".".join(str(part) for part in err.get("loc", ())) or "query"
    msg = str(err.get("msg", "invalid value"))
    if msg.startswith("Value error, "):
        msg = msg[len("Value error, "):]
    return FieldError(field=loc, message=msg)


def parse_list_query(schema: type[P], raw: Mapping[str, Any]) -> P:
    """Validate raw query-string values against ``schema``; raise ValidationError listing every bad field."""
    try:
        return schema.model_validate(dict(raw))
    except PydanticValidationError as exc:
        raise ValidationError([_field_error(e) for e in exc.errors()]) from None
