"""Semantic tags and table descriptors.

The pipeline file models live in :mod:`phenospine.config.pipeline_config`
and are imported from there directly.
"""

from phenospine.config.context import (
    LAST_ENCOUNTER_VARIANTS,
    ONSET_VARIANTS,
    TIME_OF_DEATH_VARIANTS,
    TIME_OF_PROCEDURE_VARIANTS,
    Boundary,
    Context,
    ContextKind,
    TimeElementType,
)
from phenospine.config.table_context import (
    AliasMap,
    Identifier,
    OutputDataType,
    SeriesContext,
    TableContext,
)

__all__ = [
    "AliasMap",
    "Boundary",
    "Context",
    "ContextKind",
    "Identifier",
    "LAST_ENCOUNTER_VARIANTS",
    "ONSET_VARIANTS",
    "OutputDataType",
    "SeriesContext",
    "TableContext",
    "TimeElementType",
    "TIME_OF_DEATH_VARIANTS",
    "TIME_OF_PROCEDURE_VARIANTS",
]
