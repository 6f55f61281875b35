"""Medical procedures with body site, time performed and treatment outcome terms."""

from __future__ import annotations

from collections.abc import Sequence

from phenospine.config.context import TIME_OF_PROCEDURE_VARIANTS, Context
from phenospine.extract.contextualized_table import ContextualizedTable
from phenospine.transform.collecting.base import linked_text, register_collector, text_values
from phenospine.transform.entity_builder import PhenopacketBuilder

# builder keyword -> linked column tag
_MEDICAL_ACTION_FIELDS = {
    "treatment_target": Context.TREATMENT_TARGET,
    "treatment_intent": Context.TREATMENT_INTENT,
    "response_to_treatment": Context.RESPONSE_TO_TREATMENT,
    "treatment_termination_reason": Context.TREATMENT_TERMINATION_REASON,
}


@register_collector("medical_procedure")
class MedicalProcedureCollector:
    def collect(
        self,
        builder: PhenopacketBuilder,
        patient_slices: Sequence[ContextualizedTable],
        patient_id: str,
    ) -> None:
        for table in patient_slices:
            scs = (
                table.filter_series_context()
                .where_data_context(Context.PROCEDURE_LABEL_OR_ID)
                .collect()
            )
            for sc in scs:
                bb_id = sc.building_block_id
                body_sites = linked_text(table, bb_id, [Context.PROCEDURE_BODY_SITE])
                performed = linked_text(table, bb_id, TIME_OF_PROCEDURE_VARIANTS)
                action_data = {
                    field: linked_text(table, bb_id, [context])
                    for field, context in _MEDICAL_ACTION_FIELDS.items()
                }

                for column in table.get_columns(sc.identifier):
                    for row, procedure in enumerate(text_values(column, column.len())):
                        if procedure is None:
                            continue
                        builder.insert_medical_procedure(
                            patient_id,
                            procedure,
                            body_site=body_sites[row],
                            performed=performed[row],
                            **{field: values[row] for field, values in action_data.items()},
                        )


__all__ = ["MedicalProcedureCollector"]
