"""
Collector broker: partition tables by subject, then run every collector.

Manifesto:
    - **Partition first:** Each patient slice owns a copy of its rows and
      of the table context, re-validated after dropping all-null columns
    - **Fixed order:** Collectors run in registration order for each patient
    - **All or nothing:** The first error aborts the run, enriched with
      table, patient and collector where they are known

Architecture:
    ::

        [table A] [table B] ...
            │ partition_by(subject id), drop all-null cols, validate
            ▼
        {patient_id: [slice A, slice B, ...]}
            │ for patient: for collector:
            ▼     collector.collect(builder, slices, patient_id)
        PhenopacketBuilder.build() ─▶ list[Phenopacket]

Examples:
    >>> broker = CollectorBroker.with_default_collectors(builder)
    >>> phenopackets = broker.process([patients, phenotypes])

Tags:
    broker, partition, collector, orchestration, phenospine
"""

from __future__ import annotations

import copy
from collections.abc import Sequence

import phenopackets.schema.v2 as pps2
import polars as pl

from phenospine.core.errors import PhenoSpineError
from phenospine.core.logging import LogContext, get_logger
from phenospine.extract.contextualized_table import ContextualizedTable
from phenospine.transform.collecting.base import DEFAULT_COLLECTORS, Collector, get_collector
from phenospine.transform.entity_builder import PhenopacketBuilder

logger = get_logger(__name__)


def partition_by_subject(table: ContextualizedTable) -> dict[str, ContextualizedTable]:
    """One slice per distinct subject id, rows in their original order."""
    subject_col = table.get_subject_id_col().name
    slices: dict[str, ContextualizedTable] = {}
    for frame in table.data.partition_by(subject_col, maintain_order=True):
        patient_id = str(frame[subject_col].cast(pl.String)[0])
        patient_slice = ContextualizedTable(copy.deepcopy(table.context), frame)
        patient_slice.builder().drop_null_cols_alongside_scs().build()
        slices[patient_id] = patient_slice
    logger.debug("table_partitioned", table=table.name, patients=len(slices))
    return slices


class CollectorBroker:
    """Drives collectors over per-patient slices of a set of tables."""

    def __init__(self, builder: PhenopacketBuilder, collectors: Sequence[Collector]):
        self._builder = builder
        self._collectors = list(collectors)

    @classmethod
    def with_default_collectors(cls, builder: PhenopacketBuilder) -> CollectorBroker:
        return cls(builder, [get_collector(name) for name in DEFAULT_COLLECTORS])

    @property
    def builder(self) -> PhenopacketBuilder:
        return self._builder

    @property
    def collectors(self) -> list[Collector]:
        return list(self._collectors)

    @property
    def collector_names(self) -> list[str]:
        return [collector.name for collector in self._collectors]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CollectorBroker):
            return NotImplemented
        return [type(c) for c in self._collectors] == [type(c) for c in other._collectors]

    def __repr__(self) -> str:
        return f"CollectorBroker(collectors={self.collector_names})"

    def group_by_patient(
        self, tables: Sequence[ContextualizedTable]
    ) -> dict[str, list[ContextualizedTable]]:
        """Slices of every table, grouped by patient id (first-seen order)."""
        grouped: dict[str, list[ContextualizedTable]] = {}
        for table in tables:
            try:
                slices = partition_by_subject(table)
            except PhenoSpineError as exc:
                raise exc.with_context(table=table.name)
            for patient_id, patient_slice in slices.items():
                grouped.setdefault(patient_id, []).append(patient_slice)
        return grouped

    def process(self, tables: Sequence[ContextualizedTable]) -> list[pps2.Phenopacket]:
        """Collect every patient and return the built phenopackets."""
        grouped = self.group_by_patient(tables)
        logger.info("collection_started", tables=len(tables), patients=len(grouped))

        for patient_id, patient_slices in grouped.items():
            for collector in self._collectors:
                with LogContext(patient_id=patient_id, collector=collector.name):
                    try:
                        collector.collect(self._builder, patient_slices, patient_id)
                    except PhenoSpineError as exc:
                        tables_involved = ", ".join(s.name for s in patient_slices)
                        raise exc.with_context(
                            table=tables_involved, patient_id=patient_id, collector=collector.name
                        )
                    logger.debug("collector_finished")

        phenopackets = self._builder.build()
        logger.info("collection_finished", phenopackets=len(phenopackets))
        return phenopackets


__all__ = ["CollectorBroker", "partition_by_subject"]
