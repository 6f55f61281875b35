"""
Contextualized tables: a polars DataFrame bound to a validated TableContext.

A :class:`ContextualizedTable` is the unit every later stage works on. It
is validated on construction and after every builder mutation:

1. every physical column is claimed by at most one series context
2. exactly one column carries the ``SubjectId`` data context
3. the subject id column has no missing values
4. no series context is dangling (matches zero columns)

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                   ContextualizedTable                        │
        │          TableContext  +  pl.DataFrame                       │
        ├──────────────────────────────────────────────────────────────┤
        │  filter_series_context() ──▶ SeriesContextFilter             │
        │  filter_columns()        ──▶ ColumnFilter                    │
        │  builder()               ──▶ ContextualizedTableBuilder      │
        │                               (mutate copy, validate, commit)│
        │  get_single_linked_column(bb_id, contexts)                   │
        │  get_single_multiplicity_element(data_ctx, header_ctx)       │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> table = ContextualizedTable(
    ...     TableContext("patients", [SeriesContext(Identifier.regex("id"), data_context=Context.SUBJECT_ID)]),
    ...     pl.DataFrame({"id": ["P1", "P2"]}),
    ... )
    >>> table.get_subject_id_col().to_list()
    ['P1', 'P2']

Tags:
    contextualized-table, polars, validation, phenospine
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any, Iterable, Sequence

import polars as pl

from phenospine.config.context import Context
from phenospine.config.table_context import Identifier, SeriesContext, TableContext
from phenospine.core.errors import (
    DanglingSeriesContextError,
    DuplicateColumnOwnershipError,
    ExpectedAtMostNLinkedColumnsError,
    ExpectedSingleValueError,
    ParsingError,
    SubjectIdColumnError,
    SubjectIdGapError,
)
from phenospine.extract.filters import ColumnFilter, Filter, SeriesContextFilter

if TYPE_CHECKING:
    from phenospine.extract.builder import ContextualizedTableBuilder


def validate_table(context: TableContext, data: pl.DataFrame) -> None:
    """Check the four structural invariants, raising on the first breach."""
    columns = data.columns

    ownership: Counter[str] = Counter()
    for sc in context.context:
        ownership.update(sc.identifier.resolve(columns))
    duplicates = [column for column in columns if ownership[column] > 1]
    if duplicates:
        raise DuplicateColumnOwnershipError(context.name, duplicates)

    subject_columns = [
        column
        for sc in context.context
        if sc.data_context == Context.SUBJECT_ID
        for column in sc.identifier.resolve(columns)
    ]
    if len(subject_columns) != 1:
        raise SubjectIdColumnError(context.name, len(subject_columns))

    subject_column = subject_columns[0]
    if data[subject_column].null_count() > 0:
        raise SubjectIdGapError(context.name, subject_column)

    dangling = [str(sc.identifier) for sc in context.context if not sc.identifier.resolve(columns)]
    if dangling:
        raise DanglingSeriesContextError(context.name, dangling)


class ContextualizedTable:
    """A physical data matrix plus its validated table context."""

    def __init__(self, context: TableContext, data: pl.DataFrame):
        validate_table(context, data)
        self._context = context
        self._data = data

    @property
    def context(self) -> TableContext:
        return self._context

    @property
    def data(self) -> pl.DataFrame:
        return self._data

    @property
    def name(self) -> str:
        return self._context.name

    @property
    def series_contexts(self) -> list[SeriesContext]:
        return self._context.context

    def __len__(self) -> int:
        return self._data.height

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContextualizedTable):
            return NotImplemented
        return self._context == other._context and self._data.equals(other._data)

    def __repr__(self) -> str:
        return (
            f"ContextualizedTable(name={self.name!r}, rows={self._data.height}, "
            f"columns={self._data.width}, series_contexts={len(self.series_contexts)})"
        )

    # ── Query entry points ───────────────────────────────────────

    def filter_series_context(self) -> SeriesContextFilter:
        return SeriesContextFilter(self)

    def filter_columns(self) -> ColumnFilter:
        return ColumnFilter(self)

    def builder(self) -> ContextualizedTableBuilder:
        from phenospine.extract.builder import ContextualizedTableBuilder

        return ContextualizedTableBuilder(self)

    def _commit(self, context: TableContext, data: pl.DataFrame) -> None:
        """Swap in a state that has already been validated."""
        self._context = context
        self._data = data

    # ── Column lookups ───────────────────────────────────────────

    def get_columns(self, identifier: Identifier) -> list[pl.Series]:
        return [self._data[name] for name in identifier.resolve(self._data.columns)]

    def get_subject_id_col(self) -> pl.Series:
        return (
            self.filter_columns()
            .where_header_context(Filter.is_none())
            .where_data_context(Context.SUBJECT_ID)
            .collect()[0]
        )

    def get_building_block_ids(self) -> list[str]:
        """Building block ids in first-seen order."""
        seen: dict[str, None] = {}
        for sc in self.series_contexts:
            if sc.building_block_id is not None:
                seen.setdefault(sc.building_block_id, None)
        return list(seen)

    def group_column_by_subject_id(self, column: str) -> dict[str, list[str]]:
        """Non-null values of ``column`` rendered as text, keyed by subject id."""
        subject_ids = self.get_subject_id_col().cast(pl.String).to_list()
        values = self._data[column].cast(pl.String).to_list()
        grouped: dict[str, list[str]] = {}
        for subject_id, value in zip(subject_ids, values):
            if value is not None:
                grouped.setdefault(subject_id, []).append(value)
        return grouped

    def get_single_linked_column(
        self,
        building_block_id: str | None,
        contexts: Sequence[Context],
    ) -> pl.Series | None:
        """The one column of the building block whose data context is in ``contexts``.

        Returns None when there is no building block or no such column.

        Raises:
            ExpectedAtMostNLinkedColumnsError: several columns match
        """
        if building_block_id is None:
            return None
        linked = (
            self.filter_columns()
            .where_header_context(Filter.is_none())
            .where_building_block(Filter.is_(building_block_id))
            .where_data_contexts_are(contexts)
            .collect()
        )
        if not linked:
            return None
        if len(linked) > 1:
            raise ExpectedAtMostNLinkedColumnsError(
                self.name, building_block_id, contexts, n_found=len(linked), n_expected=1
            )
        return linked[0]

    def get_linked_cols_with_context(
        self,
        building_block_id: str | None,
        data_context: Context,
        header_context: Context = Context.NONE,
    ) -> list[str]:
        if building_block_id is None:
            return []
        return (
            self.filter_columns()
            .where_building_block(Filter.is_(building_block_id))
            .where_header_context(Filter.is_(header_context))
            .where_data_context(Filter.is_(data_context))
            .collect_names()
        )

    # ── Single-value lookups ─────────────────────────────────────

    def collect_distinct_values(
        self,
        data_context: Context,
        header_context: Context = Context.NONE,
    ) -> list[str]:
        """Non-null values of the matching columns as text, stable-unique."""
        columns = (
            self.filter_columns()
            .where_header_context(Filter.is_(header_context))
            .where_data_context(Filter.is_(data_context))
            .collect()
        )
        seen: dict[str, None] = {}
        for column in columns:
            for value in cast_column(column, pl.String).drop_nulls().to_list():
                seen.setdefault(value, None)
        return list(seen)

    def get_single_multiplicity_element(
        self,
        patient_id: str,
        data_context: Context,
        header_context: Context = Context.NONE,
    ) -> str | None:
        """The single distinct value tagged with the contexts, or None.

        Raises:
            ExpectedSingleValueError: more than one distinct value
        """
        values = self.collect_distinct_values(data_context, header_context)
        if len(values) > 1:
            raise ExpectedSingleValueError(self.name, patient_id, [data_context], values)
        return values[0] if values else None


def single_multiplicity_element_across(
    tables: Iterable[ContextualizedTable],
    patient_id: str,
    data_context: Context,
    header_context: Context = Context.NONE,
) -> str | None:
    """Like :meth:`ContextualizedTable.get_single_multiplicity_element` over all of a patient's slices."""
    seen: dict[str, None] = {}
    sources: dict[str, None] = {}
    for table in tables:
        values = table.collect_distinct_values(data_context, header_context)
        if values:
            sources.setdefault(table.name, None)
        for value in values:
            seen.setdefault(value, None)
    if len(seen) > 1:
        raise ExpectedSingleValueError(", ".join(sources), patient_id, [data_context], list(seen))
    return next(iter(seen), None)


def cast_column(column: pl.Series, dtype: Any) -> pl.Series:
    """Cast ``column`` unless it already has ``dtype``; failures are ParsingErrors."""
    if column.dtype == dtype:
        return column
    try:
        return column.cast(dtype)
    except (pl.exceptions.InvalidOperationError, pl.exceptions.ComputeError) as exc:
        raise ParsingError(str(dtype), column.name, reason=str(exc)).with_context(
            column=column.name
        ) from exc


__all__ = [
    "validate_table",
    "ContextualizedTable",
    "single_multiplicity_element_across",
    "cast_column",
]
