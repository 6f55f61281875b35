"""
Measurement collectors.

The assay (and, for quantitative values, the unit) comes from the
column's data context. The building block may link an onset column
(time observed) and, for quantitative values, reference range start and
end columns; a range is only recorded when both ends are present.
"""

from __future__ import annotations

from collections.abc import Sequence

from phenospine.config.context import ONSET_VARIANTS, Boundary, Context, ContextKind
from phenospine.extract.contextualized_table import ContextualizedTable
from phenospine.transform.collecting.base import (
    float_values,
    linked_text,
    register_collector,
    text_values,
)
from phenospine.transform.entity_builder import PhenopacketBuilder


@register_collector("quantitative_measurement")
class QuantitativeMeasurementCollector:
    def collect(
        self,
        builder: PhenopacketBuilder,
        patient_slices: Sequence[ContextualizedTable],
        patient_id: str,
    ) -> None:
        for table in patient_slices:
            height = table.data.height
            scs = (
                table.filter_series_context()
                .where_data_context_kind(ContextKind.QUANTITATIVE_MEASUREMENT)
                .collect()
            )
            for sc in scs:
                assay_id = sc.data_context.assay_id
                unit_id = sc.data_context.unit_ontology_id
                assert assay_id is not None and unit_id is not None

                bb_id = sc.building_block_id
                observed = linked_text(table, bb_id, ONSET_VARIANTS)
                lows = float_values(
                    table.get_single_linked_column(bb_id, [Context.reference_range(Boundary.START)]),
                    height,
                )
                highs = float_values(
                    table.get_single_linked_column(bb_id, [Context.reference_range(Boundary.END)]),
                    height,
                )

                for column in table.get_columns(sc.identifier):
                    for value, time_observed, low, high in zip(
                        float_values(column, height), observed, lows, highs
                    ):
                        if value is None:
                            continue
                        reference_range = (low, high) if low is not None and high is not None else None
                        builder.insert_quantitative_measurement(
                            patient_id,
                            value,
                            time_observed,
                            assay_id,
                            unit_id,
                            reference_range,
                        )


@register_collector("qualitative_measurement")
class QualitativeMeasurementCollector:
    def collect(
        self,
        builder: PhenopacketBuilder,
        patient_slices: Sequence[ContextualizedTable],
        patient_id: str,
    ) -> None:
        for table in patient_slices:
            scs = (
                table.filter_series_context()
                .where_data_context_kind(ContextKind.QUALITATIVE_MEASUREMENT)
                .collect()
            )
            for sc in scs:
                assay_id = sc.data_context.assay_id
                assert assay_id is not None

                observed = linked_text(table, sc.building_block_id, ONSET_VARIANTS)
                for column in table.get_columns(sc.identifier):
                    for value, time_observed in zip(text_values(column, column.len()), observed):
                        if value is not None:
                            builder.insert_qualitative_measurement(
                                patient_id, value, time_observed, assay_id
                            )


__all__ = [
    "QuantitativeMeasurementCollector",
    "QualitativeMeasurementCollector",
]
