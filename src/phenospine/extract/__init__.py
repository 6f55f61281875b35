"""Extraction: contextualized tables, their filter and builder engine, and file sources."""

from phenospine.extract.builder import ContextualizedTableBuilder
from phenospine.extract.contextualized_table import (
    ContextualizedTable,
    cast_column,
    single_multiplicity_element_across,
    validate_table,
)
from phenospine.extract.data_source import FileDataSource, FileFormat
from phenospine.extract.filters import ColumnFilter, Filter, FilterOp, SeriesContextFilter

__all__ = [
    "ContextualizedTable",
    "ContextualizedTableBuilder",
    "cast_column",
    "single_multiplicity_element_across",
    "validate_table",
    "FileDataSource",
    "FileFormat",
    "Filter",
    "FilterOp",
    "SeriesContextFilter",
    "ColumnFilter",
]
