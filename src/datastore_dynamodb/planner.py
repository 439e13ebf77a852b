from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

from .errors import ValidationError
from .model import TableDefinition
from .query import FilterCondition, Operation

ASCENDING = "ascending"
DESCENDING = "descending"


@dataclass(frozen=True)
class Pagination:
    count: int
    page: int

    def __post_init__(self) -> None:
        for name in ("count", "page"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"paginate.{name} must be an integer")
            if value < 1:
                raise ValidationError(f"paginate.{name} must be >= 1")

    @property
    def limit(self) -> int:
        return self.count * self.page

    @property
    def offset(self) -> int:
        return self.count * (self.page - 1)

    @classmethod
    def from_mapping(cls, paginate: Mapping[str, Any] | None) -> Pagination | None:
        if paginate is None:
            return None
        if not isinstance(paginate, Mapping):
            raise ValidationError("paginate must be a mapping with count and page")
        if "count" not in paginate or "page" not in paginate:
            raise ValidationError("paginate requires count and page")
        return cls(count=paginate["count"], page=paginate["page"])


@dataclass(frozen=True)
class ScanBehavior:
    name: str
    require_paginate: bool
    sort_requires_filters: bool

    BOUNDED: ClassVar[ScanBehavior]
    FILTER_SORTED: ClassVar[ScanBehavior]
    UNBOUNDED: ClassVar[ScanBehavior]

    @classmethod
    def named(cls, name: str) -> ScanBehavior:
        for behavior in (cls.BOUNDED, cls.FILTER_SORTED, cls.UNBOUNDED):
            if behavior.name == name:
                return behavior
        raise ValidationError(f"unknown scan behavior: {name!r}")


ScanBehavior.BOUNDED = ScanBehavior(name="bounded", require_paginate=True, sort_requires_filters=False)
ScanBehavior.FILTER_SORTED = ScanBehavior(
    name="filter_sorted", require_paginate=True, sort_requires_filters=True
)
ScanBehavior.UNBOUNDED = ScanBehavior(name="unbounded", require_paginate=False, sort_requires_filters=True)


@dataclass(frozen=True)
class ScanPlan:
    table: str
    operation: Operation
    index_name: str | None = None
    key_attribute: str | None = None
    key_value: Any = None
    range_key: str | None = None
    filters: tuple[FilterCondition, ...] = ()
    scan_forward: bool | None = None
    pagination: Pagination | None = None

    @property
    def limit(self) -> int | None:
        return self.pagination.limit if self.pagination is not None else None

    @property
    def offset(self) -> int:
        return self.pagination.offset if self.pagination is not None else 0

    @property
    def count(self) -> int | None:
        return self.pagination.count if self.pagination is not None else None


def is_membership(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray)):
        return False
    return isinstance(value, (Sequence, set, frozenset))


def plan_scan(
    definition: TableDefinition,
    params: Mapping[str, Any] | None,
    *,
    paginate: Mapping[str, Any] | Pagination | None = None,
    sort: Any = None,
    behavior: ScanBehavior = ScanBehavior.UNBOUNDED,
) -> ScanPlan:
    if params is not None and not isinstance(params, Mapping):
        raise ValidationError("params must be a mapping of attribute filters")

    pagination = paginate if isinstance(paginate, Pagination) else Pagination.from_mapping(paginate)
    if pagination is None and behavior.require_paginate:
        raise ValidationError("paginate is required")

    remaining = dict(params or {})
    has_filters = bool(remaining)

    operation: Operation = "Scan"
    index_name: str | None = None
    key_attribute: str | None = None
    key_value: Any = None
    range_key: str | None = None

    if has_filters:
        for idx in definition.indexes:
            # A query binds exactly one key value; list values stay membership filters.
            if idx.attribute in remaining and not is_membership(remaining[idx.attribute]):
                operation = "Query"
                index_name = idx.name
                key_attribute = idx.attribute
                key_value = remaining.pop(idx.attribute)
                range_key = idx.range_key
                break

    filters: list[FilterCondition] = []
    for attribute, value in remaining.items():
        if is_membership(value):
            filters.append(FilterCondition.in_(attribute, list(value)))
        else:
            filters.append(FilterCondition.eq(attribute, value))

    scan_forward: bool | None = None
    if has_filters or not behavior.sort_requires_filters:
        scan_forward = sort == ASCENDING

    return ScanPlan(
        table=definition.name,
        operation=operation,
        index_name=index_name,
        key_attribute=key_attribute,
        key_value=key_value,
        range_key=range_key,
        filters=tuple(filters),
        scan_forward=scan_forward,
        pagination=pagination,
    )


def apply_pagination[T](items: Sequence[T], pagination: Pagination | None) -> list[T]:
    if pagination is None:
        return list(items)
    return list(items[pagination.offset : pagination.offset + pagination.count])
