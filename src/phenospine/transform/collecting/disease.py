"""Diseases in cells, with onset from the building block."""

from __future__ import annotations

from collections.abc import Sequence

from phenospine.config.context import ONSET_VARIANTS, Context
from phenospine.extract.contextualized_table import ContextualizedTable
from phenospine.extract.filters import Filter
from phenospine.transform.collecting.base import linked_text, register_collector, text_values
from phenospine.transform.entity_builder import PhenopacketBuilder


@register_collector("disease")
class DiseaseCollector:
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
                .where_data_context(Context.DISEASE_LABEL_OR_ID)
                .collect()
            )
            for sc in scs:
                onsets = linked_text(table, sc.building_block_id, ONSET_VARIANTS)
                for column in table.get_columns(sc.identifier):
                    for disease, onset in zip(text_values(column, column.len()), onsets):
                        if disease is not None:
                            builder.insert_disease(patient_id, disease, onset=onset)


__all__ = ["DiseaseCollector"]
