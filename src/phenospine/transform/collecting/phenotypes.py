"""
Phenotype collectors.

``hpo_in_cells``: columns whose values are HPO labels or ids; every
non-null cell is one observed feature, with onset from the building
block's linked onset column.

``hpo_in_header``: columns named after an HPO term (``HP:0001250`` or
``HP:0001250#block``) whose values are an observation status. Per
column, the distinct (status, onset) pairs of the patient's rows, minus
the all-null pair, must collapse to one: true is an observed feature,
false an excluded one, null nothing.
"""

from __future__ import annotations

from collections.abc import Sequence

import polars as pl

from phenospine.config.context import ONSET_VARIANTS, Context
from phenospine.core.errors import AmbiguousPhenotypeDataError
from phenospine.core.logging import get_logger
from phenospine.extract.contextualized_table import ContextualizedTable
from phenospine.extract.filters import Filter
from phenospine.transform.collecting.base import linked_text, register_collector, text_values
from phenospine.transform.entity_builder import PhenopacketBuilder
from phenospine.transform.parsing import parse_bool

logger = get_logger(__name__)

HEADER_SEPARATOR = "#"


def encode_phenotype_header(term_id: str, building_block_id: str | None = None) -> str:
    if building_block_id is None:
        return term_id
    return f"{term_id}{HEADER_SEPARATOR}{building_block_id}"


def decode_phenotype_header(header: str) -> tuple[str, str | None]:
    """``"HP:0001250#A"`` -> ``("HP:0001250", "A")``."""
    term_id, sep, block = header.partition(HEADER_SEPARATOR)
    return term_id.strip(), (block.strip() or None) if sep else None


def _observation_statuses(column: pl.Series) -> list[bool | None]:
    if column.dtype == pl.Boolean:
        return column.to_list()
    return [None if value is None else parse_bool(value) for value in text_values(column, column.len())]


@register_collector("hpo_in_cells")
class HpoInCellsCollector:
    def collect(
        self,
        builder: PhenopacketBuilder,
        patient_slices: Sequence[ContextualizedTable],
        patient_id: str,
    ) -> None:
        for table in patient_slices:
            scs = (
                table.filter_series_context()
                .where_header_context(Filter.is_none())
                .where_data_context(Context.HPO_LABEL_OR_ID)
                .collect()
            )
            for sc in scs:
                onsets = linked_text(table, sc.building_block_id, ONSET_VARIANTS)
                for column in table.get_columns(sc.identifier):
                    for phenotype, onset in zip(text_values(column, column.len()), onsets):
                        if phenotype is None:
                            continue
                        builder.upsert_phenotypic_feature(patient_id, phenotype, onset=onset)


@register_collector("hpo_in_header")
class HpoInHeaderCollector:
    def collect(
        self,
        builder: PhenopacketBuilder,
        patient_slices: Sequence[ContextualizedTable],
        patient_id: str,
    ) -> None:
        for table in patient_slices:
            scs = (
                table.filter_series_context()
                .where_header_context(Context.HPO_LABEL_OR_ID)
                .where_data_context(Context.OBSERVATION_STATUS)
                .collect()
            )
            for sc in scs:
                for column in table.get_columns(sc.identifier):
                    term_id, header_block = decode_phenotype_header(column.name)
                    onsets = linked_text(table, sc.building_block_id or header_block, ONSET_VARIANTS)

                    pairs: dict[tuple[bool | None, str | None], None] = {}
                    for pair in zip(_observation_statuses(column), onsets):
                        pairs.setdefault(pair, None)
                    pairs.pop((None, None), None)

                    if not pairs:
                        continue
                    if len(pairs) > 1:
                        raise AmbiguousPhenotypeDataError(table.name, patient_id, term_id)

                    ((observed, onset),) = pairs
                    if observed is None:
                        logger.warning(
                            "onset_without_observation_status",
                            table=table.name,
                            patient_id=patient_id,
                            phenotype=term_id,
                            onset=onset,
                        )
                        continue
                    builder.upsert_phenotypic_feature(
                        patient_id,
                        term_id,
                        excluded=None if observed else True,
                        onset=onset,
                    )


__all__ = [
    "HEADER_SEPARATOR",
    "encode_phenotype_header",
    "decode_phenotype_header",
    "HpoInCellsCollector",
    "HpoInHeaderCollector",
]
