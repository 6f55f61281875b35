"""Individual demographics and vital status."""

from __future__ import annotations

from collections.abc import Sequence

from phenospine.config.context import LAST_ENCOUNTER_VARIANTS, TIME_OF_DEATH_VARIANTS, Context
from phenospine.extract.contextualized_table import (
    ContextualizedTable,
    single_multiplicity_element_across,
)
from phenospine.transform.collecting.base import register_collector
from phenospine.transform.entity_builder import PhenopacketBuilder
from phenospine.transform.parsing import parse_survival_time_days


def first_candidate_value(
    patient_slices: Sequence[ContextualizedTable],
    patient_id: str,
    candidates: Sequence[Context],
) -> str | None:
    """Value of the first candidate tag (in priority order) that has one."""
    for context in candidates:
        value = single_multiplicity_element_across(patient_slices, patient_id, context)
        if value is not None:
            return value
    return None


@register_collector("individual")
class IndividualCollector:
    def collect(
        self,
        builder: PhenopacketBuilder,
        patient_slices: Sequence[ContextualizedTable],
        patient_id: str,
    ) -> None:
        builder.upsert_individual(
            patient_id,
            date_of_birth=single_multiplicity_element_across(
                patient_slices, patient_id, Context.DATE_OF_BIRTH
            ),
            time_at_last_encounter=first_candidate_value(
                patient_slices, patient_id, LAST_ENCOUNTER_VARIANTS
            ),
            sex=single_multiplicity_element_across(patient_slices, patient_id, Context.SUBJECT_SEX),
        )
        self._collect_vital_status(builder, patient_slices, patient_id)

    @staticmethod
    def _collect_vital_status(
        builder: PhenopacketBuilder,
        patient_slices: Sequence[ContextualizedTable],
        patient_id: str,
    ) -> None:
        status = single_multiplicity_element_across(patient_slices, patient_id, Context.VITAL_STATUS)
        if status is None:
            return

        survival_time = single_multiplicity_element_across(
            patient_slices, patient_id, Context.SURVIVAL_TIME_DAYS
        )
        builder.upsert_vital_status(
            patient_id,
            status,
            time_of_death=first_candidate_value(patient_slices, patient_id, TIME_OF_DEATH_VARIANTS),
            cause_of_death=single_multiplicity_element_across(
                patient_slices, patient_id, Context.CAUSE_OF_DEATH
            ),
            survival_time_in_days=(
                parse_survival_time_days(survival_time) if survival_time is not None else None
            ),
        )


__all__ = ["IndividualCollector", "first_candidate_value"]
