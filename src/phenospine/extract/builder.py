"""
Mutation builder for contextualized tables.

Every structural change goes through a :class:`ContextualizedTableBuilder`.
The builder works on a private copy of the table context and a clone of
the data; :meth:`ContextualizedTableBuilder.build` re-runs the table
invariants and only then swaps the new state into the table. A mutation
that would break an invariant raises and leaves the table as it was.

Examples:
    >>> table.builder().drop_null_cols_alongside_scs().build()
    >>> (
    ...     table.builder()
    ...     .insert_sc_alongside_cols(
    ...         SeriesContext(Identifier.regex("bmi"), data_context=Context.quantitative_measurement("LOINC:39156-5", "UO:0000086")),
    ...         [pl.Series("bmi", [21.3, 24.0])],
    ...     )
    ...     .build()
    ... )
"""

from __future__ import annotations

import copy
import dataclasses
from typing import TYPE_CHECKING, Iterable, Mapping, Sequence

import polars as pl

from phenospine.config.context import Context
from phenospine.config.table_context import SeriesContext, TableContext
from phenospine.core.errors import OrphanedColumnsError, ParsingError, TableValidationError
from phenospine.core.logging import get_logger
from phenospine.extract.contextualized_table import validate_table

if TYPE_CHECKING:
    from phenospine.extract.contextualized_table import ContextualizedTable

logger = get_logger(__name__)


class ContextualizedTableBuilder:
    """Stage mutations on a copy of a table, then validate and commit."""

    def __init__(self, table: ContextualizedTable):
        self._table = table
        self._context: TableContext = copy.deepcopy(table.context)
        self._data: pl.DataFrame = table.data.clone()

    @property
    def name(self) -> str:
        return self._context.name

    @property
    def data(self) -> pl.DataFrame:
        """The staged (uncommitted) data."""
        return self._data

    # ── Series contexts ──────────────────────────────────────────

    def insert_sc(self, sc: SeriesContext) -> ContextualizedTableBuilder:
        self._context.context.append(sc)
        return self

    def insert_scs(self, scs: Iterable[SeriesContext]) -> ContextualizedTableBuilder:
        for sc in scs:
            self.insert_sc(sc)
        return self

    def drop_scs(self, scs: Iterable[SeriesContext]) -> ContextualizedTableBuilder:
        """Remove descriptors only; their columns stay in the data."""
        to_drop = list(scs)
        self._context.context = [sc for sc in self._context.context if sc not in to_drop]
        return self

    def replace_header_contexts(self, mapping: Mapping[Context, Context]) -> ContextualizedTableBuilder:
        self._context.context = [
            dataclasses.replace(sc, header_context=mapping[sc.header_context])
            if sc.header_context in mapping
            else sc
            for sc in self._context.context
        ]
        return self

    def replace_data_contexts(self, mapping: Mapping[Context, Context]) -> ContextualizedTableBuilder:
        self._context.context = [
            dataclasses.replace(sc, data_context=mapping[sc.data_context])
            if sc.data_context in mapping
            else sc
            for sc in self._context.context
        ]
        return self

    # ── Columns ──────────────────────────────────────────────────

    def insert_col(self, column: pl.Series) -> ContextualizedTableBuilder:
        if column.name in self._data.columns:
            raise TableValidationError(
                f"Column {column.name} already exists in table {self.name}", table=self.name
            )
        if column.len() != self._data.height:
            raise TableValidationError(
                f"Column {column.name} has {column.len()} rows, table {self.name} has {self._data.height}",
                table=self.name,
            )
        self._data = self._data.with_columns(column)
        return self

    def insert_cols(self, columns: Iterable[pl.Series]) -> ContextualizedTableBuilder:
        for column in columns:
            self.insert_col(column)
        return self

    def replace_col(self, name: str, column: pl.Series) -> ContextualizedTableBuilder:
        """Swap the values of ``name`` in place, keeping its position."""
        if name not in self._data.columns:
            raise TableValidationError(
                f"Cannot replace missing column {name} in table {self.name}", table=self.name
            )
        self._data = self._data.with_columns(column.alias(name))
        return self

    def cast(
        self,
        header_context: Context,
        data_context: Context,
        dtype: pl.DataType,
    ) -> ContextualizedTableBuilder:
        """Cast every column whose descriptor carries both contexts."""
        for sc in self._context.context:
            if sc.header_context != header_context or sc.data_context != data_context:
                continue
            for name in sc.identifier.resolve(self._data.columns):
                try:
                    casted = self._data[name].cast(dtype, strict=True)
                except (pl.exceptions.InvalidOperationError, pl.exceptions.ComputeError) as exc:
                    raise ParsingError(str(dtype), name, reason=str(exc)).with_context(
                        table=self.name, column=name, tag=str(data_context)
                    ) from exc
                self._data = self._data.with_columns(casted)
        return self

    # ── Series contexts together with their columns ──────────────

    def insert_sc_alongside_cols(
        self,
        sc: SeriesContext,
        columns: Sequence[pl.Series],
    ) -> ContextualizedTableBuilder:
        """Add columns plus the descriptor that claims them.

        Raises:
            OrphanedColumnsError: the descriptor does not identify every column
        """
        names = [column.name for column in columns]
        claimed = set(sc.identifier.resolve(names))
        orphaned = [name for name in names if name not in claimed]
        if orphaned:
            raise OrphanedColumnsError(self.name, orphaned, str(sc.identifier))
        self.insert_cols(columns)
        return self.insert_sc(sc)

    def insert_scs_alongside_cols(
        self,
        pairs: Iterable[tuple[SeriesContext, Sequence[pl.Series]]],
    ) -> ContextualizedTableBuilder:
        for sc, columns in pairs:
            self.insert_sc_alongside_cols(sc, columns)
        return self

    def drop_sc_alongside_cols(self, sc: SeriesContext) -> ContextualizedTableBuilder:
        return self.drop_scs_alongside_cols([sc])

    def drop_scs_alongside_cols(self, scs: Iterable[SeriesContext]) -> ContextualizedTableBuilder:
        to_drop = list(scs)
        names: list[str] = []
        for sc in to_drop:
            names.extend(sc.identifier.resolve(self._data.columns))
        self._data = self._data.drop(names)
        return self.drop_scs(to_drop)

    def drop_scs_alongside_cols_with_context(
        self,
        header_context: Context,
        data_context: Context,
    ) -> ContextualizedTableBuilder:
        matching = [
            sc
            for sc in self._context.context
            if sc.header_context == header_context and sc.data_context == data_context
        ]
        return self.drop_scs_alongside_cols(matching)

    def drop_null_cols_alongside_scs(self) -> ContextualizedTableBuilder:
        """Drop entirely-null columns and any descriptor left without columns."""
        if self._data.height == 0:
            return self
        null_columns = [
            column.name for column in self._data.get_columns() if column.null_count() == column.len()
        ]
        if null_columns:
            # Resolve against the full column set: re-resolving after the
            # drop lets a regex fall through to a sibling column.
            dropped = set(null_columns)
            columns = self._data.columns
            self._context.context = [
                sc
                for sc in self._context.context
                if not set(sc.identifier.resolve(columns)) <= dropped
            ]
            self._data = self._data.drop(null_columns)
            logger.debug("null_columns_dropped", table=self.name, columns=null_columns)
        return self

    # ── Commit ───────────────────────────────────────────────────

    def build(self) -> ContextualizedTable:
        """Validate the staged state and commit it to the table."""
        validate_table(self._context, self._data)
        self._table._commit(self._context, self._data)
        return self._table


__all__ = ["ContextualizedTableBuilder"]
