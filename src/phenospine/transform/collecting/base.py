"""
Collector contract and registry.

A collector is a stateless, named extraction rule: given every slice of
one patient's data it calls the phenopacket builder's upserts. Collectors
register themselves by name; :data:`DEFAULT_COLLECTORS` fixes the order
the broker runs them in.

Manifesto:
    - **Stateless:** Nothing is kept between patients
    - **Idempotent:** Running a collector twice on the same slices changes nothing
    - **Discoverable:** ``@register_collector(name)`` plus lazy module loading

Tags:
    collector, registry, protocol, phenospine
"""

from __future__ import annotations

import importlib
from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

import polars as pl

from phenospine.config.context import Context
from phenospine.core.errors import CollectorError
from phenospine.core.logging import get_logger
from phenospine.extract.contextualized_table import ContextualizedTable, cast_column
from phenospine.transform.entity_builder import PhenopacketBuilder

logger = get_logger(__name__)

DEFAULT_COLLECTORS: tuple[str, ...] = (
    "individual",
    "hpo_in_cells",
    "hpo_in_header",
    "interpretation",
    "disease",
    "quantitative_measurement",
    "qualitative_measurement",
    "medical_procedure",
)

_COLLECTOR_MODULES = (
    "phenospine.transform.collecting.individual",
    "phenospine.transform.collecting.phenotypes",
    "phenospine.transform.collecting.interpretation",
    "phenospine.transform.collecting.disease",
    "phenospine.transform.collecting.measurements",
    "phenospine.transform.collecting.procedure",
)


@runtime_checkable
class Collector(Protocol):
    """Extracts one kind of sub-record from a patient's slices."""

    name: str

    def collect(
        self,
        builder: PhenopacketBuilder,
        patient_slices: Sequence[ContextualizedTable],
        patient_id: str,
    ) -> None: ...


# =============================================================================
# REGISTRY
# =============================================================================

_registry: dict[str, type[Any]] = {}
_loaded: bool = False


def register_collector(name: str) -> Callable[[type[Any]], type[Any]]:
    """Decorator to register a collector class."""

    def decorator(cls: type[Any]) -> type[Any]:
        if name in _registry:
            raise ValueError(f"Collector '{name}' is already registered")
        cls.name = name
        _registry[name] = cls
        logger.debug("collector_registered", name=name, cls=cls.__name__)
        return cls

    return decorator


def _ensure_loaded() -> None:
    global _loaded
    if not _loaded:
        for module in _COLLECTOR_MODULES:
            importlib.import_module(module)
        _loaded = True
        logger.debug("collector_registry_loaded", registered=len(_registry))


def get_collector(name: str) -> Collector:
    """Instantiate a registered collector by name."""
    _ensure_loaded()
    if name not in _registry:
        available = ", ".join(sorted(_registry))
        raise CollectorError(f"Collector '{name}' not found. Available: {available}").with_context(
            collector=name
        )
    return _registry[name]()


def list_collectors() -> list[str]:
    _ensure_loaded()
    return sorted(_registry)


# =============================================================================
# HELPERS SHARED BY COLLECTORS
# =============================================================================


def text_values(column: pl.Series | None, height: int) -> list[str | None]:
    """Cells of ``column`` as text, or ``height`` Nones when there is no column."""
    if column is None:
        return [None] * height
    return cast_column(column, pl.String).to_list()


def float_values(column: pl.Series | None, height: int) -> list[float | None]:
    if column is None:
        return [None] * height
    return cast_column(column, pl.Float64).to_list()


def linked_text(
    table: ContextualizedTable,
    building_block_id: str | None,
    contexts: Sequence[Context],
) -> list[str | None]:
    """Row-aligned text of the single linked column, all None when absent."""
    return text_values(table.get_single_linked_column(building_block_id, contexts), table.data.height)


__all__ = [
    "DEFAULT_COLLECTORS",
    "Collector",
    "register_collector",
    "get_collector",
    "list_collectors",
    "text_values",
    "float_values",
    "linked_text",
]
