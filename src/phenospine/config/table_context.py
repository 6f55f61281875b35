"""
Series and table descriptors.

A :class:`SeriesContext` binds one or more physical columns (selected by an
:class:`Identifier`) to a header context and a data context, optionally
grouping it with sibling descriptors through a ``building_block_id``. A
:class:`TableContext` is the ordered list of descriptors for one table.

Identifier resolution:
    - a single string first matches a column of exactly that name; failing
      that it is treated as a regular expression and every column for which
      ``re.search`` matches is selected
    - a list of names selects those names that are present
    - in both cases the result follows the table's column order

Examples:
    >>> ident = Identifier.from_config("^hpo_")
    >>> ident.resolve(["patient", "hpo_1", "hpo_2"])
    ['hpo_1', 'hpo_2']
    >>> Identifier.from_config(["b", "a"]).resolve(["a", "b", "c"])
    ['a', 'b']

Tags:
    series-context, table-context, descriptor, phenospine
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Sequence, Union

import polars as pl

from phenospine.config.context import Context

CellValue = Union[str, int, float, bool]


class OutputDataType(str, Enum):
    """Physical dtype an alias-mapped column is cast to."""

    BOOLEAN = "Boolean"
    STRING = "String"
    FLOAT64 = "Float64"
    INT64 = "Int64"
    DATE = "Date"
    DATETIME = "Datetime"

    @property
    def polars_dtype(self) -> pl.DataType:
        return {
            OutputDataType.BOOLEAN: pl.Boolean,
            OutputDataType.STRING: pl.String,
            OutputDataType.FLOAT64: pl.Float64,
            OutputDataType.INT64: pl.Int64,
            OutputDataType.DATE: pl.Date,
            OutputDataType.DATETIME: pl.Datetime,
        }[self]

    @classmethod
    def from_config(cls, value: str) -> OutputDataType:
        for member in cls:
            if value.lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown output dtype {value!r}")


@dataclass(frozen=True)
class Identifier:
    """Selects physical columns: one name-or-regex, or an explicit list of names."""

    pattern: str | None = None
    names: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        if (self.pattern is None) == (self.names is None):
            raise ValueError("Identifier needs exactly one of pattern or names")

    @classmethod
    def regex(cls, pattern: str) -> Identifier:
        return cls(pattern=pattern)

    @classmethod
    def multi(cls, names: Sequence[str]) -> Identifier:
        return cls(names=tuple(names))

    @classmethod
    def from_config(cls, value: Any) -> Identifier:
        if isinstance(value, Identifier):
            return value
        if isinstance(value, str):
            return cls.regex(value)
        if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
            return cls.multi(value)
        raise ValueError(f"Cannot interpret {value!r} as an identifier")

    def to_config(self) -> str | list[str]:
        if self.pattern is not None:
            return self.pattern
        return list(self.names or ())

    def resolve(self, columns: Sequence[str]) -> list[str]:
        """Column names this identifier selects, in table order."""
        if self.names is not None:
            wanted = set(self.names)
            return [c for c in columns if c in wanted]

        assert self.pattern is not None
        if self.pattern in columns:
            return [self.pattern]
        try:
            compiled = re.compile(self.pattern)
        except re.error:
            return []
        return [c for c in columns if compiled.search(c)]

    def __str__(self) -> str:
        if self.pattern is not None:
            return self.pattern
        return "[" + ", ".join(self.names or ()) + "]"


@dataclass
class AliasMap:
    """Raw value to canonical value (or null) substitutions, plus the resulting dtype."""

    hash_map: dict[str, str | None] = field(default_factory=dict)
    output_dtype: OutputDataType = OutputDataType.STRING


@dataclass
class SeriesContext:
    """Declarative metadata binding columns to semantic tags."""

    identifier: Identifier
    header_context: Context = Context.NONE
    data_context: Context = Context.NONE
    fill_missing: CellValue | None = None
    alias_map: AliasMap | None = None
    building_block_id: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.identifier, Identifier):
            self.identifier = Identifier.from_config(self.identifier)


@dataclass
class TableContext:
    """Name plus ordered series contexts of one source table."""

    name: str
    context: list[SeriesContext] = field(default_factory=list)


__all__ = [
    "CellValue",
    "OutputDataType",
    "Identifier",
    "AliasMap",
    "SeriesContext",
    "TableContext",
]
