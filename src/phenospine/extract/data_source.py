"""
File data sources: read a local table with polars and bind it to its context.

Supports:
- CSV (comma-separated)
- PSV (pipe-separated)
- TSV (tab-separated)
- JSON (array of records) and JSON Lines
- Parquet

Usage:
    from phenospine.extract.data_source import FileDataSource

    source = FileDataSource("data/patients.csv", table_context)
    table = source.extract()
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

import polars as pl

from phenospine.config.table_context import TableContext
from phenospine.core.errors import SourceError, SourceNotFoundError
from phenospine.core.logging import get_logger
from phenospine.extract.contextualized_table import ContextualizedTable

logger = get_logger(__name__)


class FileFormat(str, Enum):
    """Supported file formats."""

    CSV = "csv"
    PSV = "psv"
    TSV = "tsv"
    JSON = "json"
    JSONL = "jsonl"
    PARQUET = "parquet"


EXTENSION_MAP = {
    ".csv": FileFormat.CSV,
    ".psv": FileFormat.PSV,
    ".tsv": FileFormat.TSV,
    ".json": FileFormat.JSON,
    ".jsonl": FileFormat.JSONL,
    ".ndjson": FileFormat.JSONL,
    ".parquet": FileFormat.PARQUET,
    ".pq": FileFormat.PARQUET,
}


class FileDataSource:
    """A local file plus the table context describing its columns."""

    def __init__(
        self,
        path: str | Path,
        table_context: TableContext,
        *,
        format: FileFormat | str | None = None,
        separator: str | None = None,
    ):
        self._path = Path(path)
        self._table_context = table_context

        if format is None:
            self._format = self._detect_format()
        elif isinstance(format, str):
            try:
                self._format = FileFormat(format.lower())
            except ValueError:
                raise SourceError(f"Unsupported format: {format}").with_context(
                    source_name=str(self._path)
                ) from None
        else:
            self._format = format

        self._separator = separator or self._get_default_separator()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def format(self) -> FileFormat:
        return self._format

    @property
    def table_context(self) -> TableContext:
        return self._table_context

    def _detect_format(self) -> FileFormat:
        ext = self._path.suffix.lower()
        if ext in EXTENSION_MAP:
            return EXTENSION_MAP[ext]
        raise SourceError(f"Cannot detect format for extension: {ext}").with_context(
            source_name=str(self._path), table=self._table_context.name
        )

    def _get_default_separator(self) -> str:
        match self._format:
            case FileFormat.PSV:
                return "|"
            case FileFormat.TSV:
                return "\t"
            case _:
                return ","

    def read(self) -> pl.DataFrame:
        """Read the raw data matrix."""
        if not self._path.exists():
            raise SourceNotFoundError(f"File not found: {self._path}").with_context(
                source_name=str(self._path), table=self._table_context.name
            )

        try:
            match self._format:
                case FileFormat.CSV | FileFormat.PSV | FileFormat.TSV:
                    return pl.read_csv(
                        self._path,
                        separator=self._separator,
                        infer_schema_length=10000,
                    )
                case FileFormat.JSON:
                    return pl.read_json(self._path)
                case FileFormat.JSONL:
                    return pl.read_ndjson(self._path)
                case FileFormat.PARQUET:
                    return pl.read_parquet(self._path)
        except (pl.exceptions.PolarsError, OSError) as exc:
            raise SourceError(
                f"Failed to read file: {self._path}", cause=exc
            ).with_context(source_name=str(self._path), table=self._table_context.name) from exc
        raise SourceError(f"Unsupported format: {self._format}")

    def extract(self) -> ContextualizedTable:
        """Read the file and validate it against its table context."""
        data = self.read()
        table = ContextualizedTable(self._table_context, data)
        logger.info(
            "table_extracted",
            table=table.name,
            path=str(self._path),
            rows=data.height,
            columns=data.width,
        )
        return table


__all__ = [
    "FileFormat",
    "EXTENSION_MAP",
    "FileDataSource",
]
