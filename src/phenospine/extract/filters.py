"""
Composable filters over the series contexts and columns of a table.

Each ``where_*`` call adds a predicate to one field. Predicates on the same
field are OR-combined, predicates on different fields are AND-combined, and
a field without predicates matches anything. ``collect()`` returns the
matches in table order; an empty list is a normal outcome.

Examples:
    >>> scs = (
    ...     table.filter_series_context()
    ...     .where_header_context(Filter.is_none())
    ...     .where_data_context(Filter.is_(Context.HPO_LABEL_OR_ID))
    ...     .collect()
    ... )
    >>> onset_cols = (
    ...     table.filter_columns()
    ...     .where_building_block(Filter.is_("pheno"))
    ...     .where_data_contexts_are(ONSET_VARIANTS)
    ...     .collect()
    ... )

Plain values passed to ``where_*`` are shorthand for ``Filter.is_(value)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Generic, Iterable, TypeVar

import polars as pl

from phenospine.config.context import Context, ContextKind
from phenospine.config.table_context import Identifier, SeriesContext

if TYPE_CHECKING:
    from phenospine.extract.contextualized_table import ContextualizedTable

T = TypeVar("T")


class FilterOp(str, Enum):
    IS = "is"
    IS_NOT = "is_not"
    IS_SOME = "is_some"
    IS_NONE = "is_none"


@dataclass(frozen=True)
class Filter(Generic[T]):
    """A single predicate on one field."""

    op: FilterOp
    value: T | None = None

    @classmethod
    def is_(cls, value: T) -> Filter[T]:
        return cls(FilterOp.IS, value)

    @classmethod
    def is_not(cls, value: T) -> Filter[T]:
        return cls(FilterOp.IS_NOT, value)

    @classmethod
    def is_some(cls) -> Filter[Any]:
        return cls(FilterOp.IS_SOME)

    @classmethod
    def is_none(cls) -> Filter[Any]:
        return cls(FilterOp.IS_NONE)

    def matches(self, actual: Any, *, empty: Any = None) -> bool:
        """Test ``actual``; ``empty`` is the field's "absent" value."""
        if self.op is FilterOp.IS:
            return actual == self.value
        if self.op is FilterOp.IS_NOT:
            return actual != self.value
        if self.op is FilterOp.IS_SOME:
            return actual != empty
        return actual == empty


def _as_filter(value: Any) -> Filter[Any]:
    return value if isinstance(value, Filter) else Filter.is_(value)


class SeriesContextFilter:
    """Filter the series contexts of one table."""

    def __init__(self, table: ContextualizedTable):
        self._table = table
        self._identifier: list[Filter[Identifier]] = []
        self._building_block: list[Filter[str]] = []
        self._header_context: list[Filter[Context]] = []
        self._data_context: list[Filter[Context]] = []
        self._data_context_kind: list[Filter[ContextKind]] = []
        self._fill_missing: list[Filter[Any]] = []

    def where_identifier(self, f: Filter[Identifier] | Identifier) -> SeriesContextFilter:
        self._identifier.append(_as_filter(f))
        return self

    def where_building_block(self, f: Filter[str] | str) -> SeriesContextFilter:
        self._building_block.append(_as_filter(f))
        return self

    def where_header_context(self, f: Filter[Context] | Context) -> SeriesContextFilter:
        self._header_context.append(_as_filter(f))
        return self

    def where_data_context(self, f: Filter[Context] | Context) -> SeriesContextFilter:
        self._data_context.append(_as_filter(f))
        return self

    def where_data_contexts_are(self, contexts: Iterable[Context]) -> SeriesContextFilter:
        for context in contexts:
            self._data_context.append(Filter.is_(context))
        return self

    def where_data_context_kind(self, f: Filter[ContextKind] | ContextKind) -> SeriesContextFilter:
        self._data_context_kind.append(_as_filter(f))
        return self

    def where_fill_missing(self, f: Filter[Any]) -> SeriesContextFilter:
        self._fill_missing.append(_as_filter(f))
        return self

    def _accepts(self, sc: SeriesContext) -> bool:
        checks: list[tuple[list[Filter[Any]], Callable[[Filter[Any]], bool]]] = [
            (self._identifier, lambda f: f.matches(sc.identifier)),
            (self._building_block, lambda f: f.matches(sc.building_block_id)),
            (self._header_context, lambda f: f.matches(sc.header_context, empty=Context.NONE)),
            (self._data_context, lambda f: f.matches(sc.data_context, empty=Context.NONE)),
            (
                self._data_context_kind,
                lambda f: f.matches(sc.data_context.kind, empty=ContextKind.NONE),
            ),
            (self._fill_missing, lambda f: f.matches(sc.fill_missing)),
        ]
        return all(not filters or any(test(f) for f in filters) for filters, test in checks)

    def collect(self) -> list[SeriesContext]:
        return [sc for sc in self._table.series_contexts if self._accepts(sc)]


class ColumnFilter:
    """Filter the physical columns of one table through their series contexts."""

    def __init__(self, table: ContextualizedTable):
        self._table = table
        self._sc_filter = SeriesContextFilter(table)
        self._dtype: list[Filter[pl.DataType]] = []

    def where_identifier(self, f: Filter[Identifier] | Identifier) -> ColumnFilter:
        self._sc_filter.where_identifier(f)
        return self

    def where_building_block(self, f: Filter[str] | str) -> ColumnFilter:
        self._sc_filter.where_building_block(f)
        return self

    def where_header_context(self, f: Filter[Context] | Context) -> ColumnFilter:
        self._sc_filter.where_header_context(f)
        return self

    def where_data_context(self, f: Filter[Context] | Context) -> ColumnFilter:
        self._sc_filter.where_data_context(f)
        return self

    def where_data_contexts_are(self, contexts: Iterable[Context]) -> ColumnFilter:
        self._sc_filter.where_data_contexts_are(contexts)
        return self

    def where_data_context_kind(self, f: Filter[ContextKind] | ContextKind) -> ColumnFilter:
        self._sc_filter.where_data_context_kind(f)
        return self

    def where_fill_missing(self, f: Filter[Any]) -> ColumnFilter:
        self._sc_filter.where_fill_missing(f)
        return self

    def where_dtype(self, f: Filter[pl.DataType] | pl.DataType) -> ColumnFilter:
        self._dtype.append(_as_filter(f))
        return self

    def collect(self) -> list[pl.Series]:
        columns: list[pl.Series] = []
        for sc in self._sc_filter.collect():
            for column in self._table.get_columns(sc.identifier):
                if not self._dtype or any(f.matches(column.dtype) for f in self._dtype):
                    columns.append(column)
        return columns

    def collect_names(self) -> list[str]:
        return [column.name for column in self.collect()]


__all__ = [
    "FilterOp",
    "Filter",
    "SeriesContextFilter",
    "ColumnFilter",
]
