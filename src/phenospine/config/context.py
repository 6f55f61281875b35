"""
Semantic tags for table columns.

A :class:`Context` says what role a column plays: its *name* (header
context) or its *values* (data context) can be a subject id, a phenotype
code, an onset age, a quantitative measurement of some assay, and so on.
Some tags carry parameters (a measurement knows its assay and unit; an
onset knows whether it is an age or a date). :class:`ContextKind` is the
tag with its parameters erased, used for "any quantitative measurement"
style matching.

Architecture:
    ::

        Context(kind, time_element?, boundary?, assay_id?, unit_ontology_id?)
            │
            ├── Context.SUBJECT_ID, Context.HPO_LABEL_OR_ID, ...   (constants)
            ├── Context.onset(TimeElementType.AGE)                  (factories)
            ├── Context.quantitative_measurement("LOINC:2345-7", "UO:0000084")
            │
            └── .kind ──▶ ContextKind.QUANTITATIVE_MEASUREMENT

Config form (snake_case):
    ``subject_id`` | ``{onset: age}`` | ``{reference_range: start}`` |
    ``{quantitative_measurement: {assay_id: ..., unit_ontology_id: ...}}``

Examples:
    >>> Context.from_config({"onset": "age"}) == Context.onset(TimeElementType.AGE)
    True
    >>> str(Context.qualitative_measurement("LOINC:1234-5"))
    'QualitativeMeasurement(assay_id=LOINC:1234-5)'

Tags:
    context, semantic-tag, column-role, phenospine
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar


class ContextKind(str, Enum):
    """A semantic tag with its parameters stripped."""

    # individual
    SUBJECT_ID = "SubjectId"
    SUBJECT_SEX = "SubjectSex"
    DATE_OF_BIRTH = "DateOfBirth"
    VITAL_STATUS = "VitalStatus"
    LAST_ENCOUNTER = "LastEncounter"
    TIME_OF_DEATH = "TimeOfDeath"
    CAUSE_OF_DEATH = "CauseOfDeath"
    SURVIVAL_TIME_DAYS = "SurvivalTimeDays"

    # ontologies and databases
    HPO_LABEL_OR_ID = "HpoLabelOrId"
    DISEASE_LABEL_OR_ID = "DiseaseLabelOrId"
    HGNC_SYMBOL_OR_ID = "HgncSymbolOrId"

    # variants
    HGVS = "Hgvs"

    # measurements
    QUANTITATIVE_MEASUREMENT = "QuantitativeMeasurement"
    QUALITATIVE_MEASUREMENT = "QualitativeMeasurement"
    REFERENCE_RANGE = "ReferenceRange"

    # medical actions
    TREATMENT_TARGET = "TreatmentTarget"
    TREATMENT_INTENT = "TreatmentIntent"
    RESPONSE_TO_TREATMENT = "ResponseToTreatment"
    TREATMENT_TERMINATION_REASON = "TreatmentTerminationReason"
    PROCEDURE_LABEL_OR_ID = "ProcedureLabelOrId"
    PROCEDURE_BODY_SITE = "ProcedureBodySite"
    TIME_OF_PROCEDURE = "TimeOfProcedure"

    # other
    OBSERVATION_STATUS = "ObservationStatus"
    MULTI_HPO_ID = "MultiHpoId"
    ONSET = "Onset"
    NONE = "None"

    def __str__(self) -> str:
        return self.value


class TimeElementType(str, Enum):
    """Whether a time-valued column holds ages (ISO8601 durations) or dates."""

    AGE = "Age"
    DATE = "Date"


class Boundary(str, Enum):
    """Which end of a reference range a column holds."""

    START = "Start"
    END = "End"


_TIME_ELEMENT_KINDS = frozenset(
    {
        ContextKind.LAST_ENCOUNTER,
        ContextKind.TIME_OF_DEATH,
        ContextKind.TIME_OF_PROCEDURE,
        ContextKind.ONSET,
    }
)


@dataclass(frozen=True)
class Context:
    """
    The role a column's header or values play.

    Immutable and hashable. Only the parameters belonging to ``kind`` may
    be set: ``time_element`` for LastEncounter/TimeOfDeath/TimeOfProcedure/
    Onset, ``boundary`` for ReferenceRange, ``assay_id`` and
    ``unit_ontology_id`` for QuantitativeMeasurement, ``assay_id`` for
    QualitativeMeasurement.
    """

    kind: ContextKind = ContextKind.NONE
    time_element: TimeElementType | None = None
    boundary: Boundary | None = None
    assay_id: str | None = None
    unit_ontology_id: str | None = None

    NONE: ClassVar[Context]
    SUBJECT_ID: ClassVar[Context]
    SUBJECT_SEX: ClassVar[Context]
    DATE_OF_BIRTH: ClassVar[Context]
    VITAL_STATUS: ClassVar[Context]
    CAUSE_OF_DEATH: ClassVar[Context]
    SURVIVAL_TIME_DAYS: ClassVar[Context]
    HPO_LABEL_OR_ID: ClassVar[Context]
    DISEASE_LABEL_OR_ID: ClassVar[Context]
    HGNC_SYMBOL_OR_ID: ClassVar[Context]
    HGVS: ClassVar[Context]
    TREATMENT_TARGET: ClassVar[Context]
    TREATMENT_INTENT: ClassVar[Context]
    RESPONSE_TO_TREATMENT: ClassVar[Context]
    TREATMENT_TERMINATION_REASON: ClassVar[Context]
    PROCEDURE_LABEL_OR_ID: ClassVar[Context]
    PROCEDURE_BODY_SITE: ClassVar[Context]
    OBSERVATION_STATUS: ClassVar[Context]
    MULTI_HPO_ID: ClassVar[Context]

    def __post_init__(self) -> None:
        kind = ContextKind(self.kind)
        object.__setattr__(self, "kind", kind)

        if kind in _TIME_ELEMENT_KINDS:
            if self.time_element is None:
                raise ValueError(f"{kind} requires a time element type (Age or Date)")
            object.__setattr__(self, "time_element", TimeElementType(self.time_element))
        elif self.time_element is not None:
            raise ValueError(f"{kind} does not take a time element type")

        if kind is ContextKind.REFERENCE_RANGE:
            if self.boundary is None:
                raise ValueError("ReferenceRange requires a boundary (Start or End)")
            object.__setattr__(self, "boundary", Boundary(self.boundary))
        elif self.boundary is not None:
            raise ValueError(f"{kind} does not take a boundary")

        if kind is ContextKind.QUANTITATIVE_MEASUREMENT:
            if not self.assay_id or not self.unit_ontology_id:
                raise ValueError("QuantitativeMeasurement requires assay_id and unit_ontology_id")
        elif kind is ContextKind.QUALITATIVE_MEASUREMENT:
            if not self.assay_id or self.unit_ontology_id is not None:
                raise ValueError("QualitativeMeasurement requires assay_id and no unit_ontology_id")
        elif self.assay_id is not None or self.unit_ontology_id is not None:
            raise ValueError(f"{kind} does not take assay or unit identifiers")

    # ── Factories for parameterised tags ─────────────────────────

    @classmethod
    def last_encounter(cls, time_element: TimeElementType) -> Context:
        return cls(ContextKind.LAST_ENCOUNTER, time_element=time_element)

    @classmethod
    def time_of_death(cls, time_element: TimeElementType) -> Context:
        return cls(ContextKind.TIME_OF_DEATH, time_element=time_element)

    @classmethod
    def time_of_procedure(cls, time_element: TimeElementType) -> Context:
        return cls(ContextKind.TIME_OF_PROCEDURE, time_element=time_element)

    @classmethod
    def onset(cls, time_element: TimeElementType) -> Context:
        return cls(ContextKind.ONSET, time_element=time_element)

    @classmethod
    def reference_range(cls, boundary: Boundary) -> Context:
        return cls(ContextKind.REFERENCE_RANGE, boundary=boundary)

    @classmethod
    def quantitative_measurement(cls, assay_id: str, unit_ontology_id: str) -> Context:
        return cls(
            ContextKind.QUANTITATIVE_MEASUREMENT,
            assay_id=assay_id,
            unit_ontology_id=unit_ontology_id,
        )

    @classmethod
    def qualitative_measurement(cls, assay_id: str) -> Context:
        return cls(ContextKind.QUALITATIVE_MEASUREMENT, assay_id=assay_id)

    @classmethod
    def all_time_based(cls, time_element: TimeElementType) -> list[Context]:
        """Every time-valued tag for one time element type."""
        return [cls(kind, time_element=time_element) for kind in ContextKind if kind in _TIME_ELEMENT_KINDS]

    # ── Config (de)serialisation ─────────────────────────────────

    @classmethod
    def from_config(cls, value: Any) -> Context:
        """Parse the snake_case config form.

        Raises:
            ValueError: unknown tag name or malformed parameters
        """
        if isinstance(value, Context):
            return value
        if value is None:
            return cls.NONE
        if isinstance(value, str):
            kind = _kind_from_config_name(value)
            return cls(kind)
        if isinstance(value, dict) and len(value) == 1:
            ((name, payload),) = value.items()
            kind = _kind_from_config_name(name)
            if kind in _TIME_ELEMENT_KINDS:
                return cls(kind, time_element=TimeElementType(str(payload).capitalize()))
            if kind is ContextKind.REFERENCE_RANGE:
                return cls(kind, boundary=Boundary(str(payload).capitalize()))
            if kind in (ContextKind.QUANTITATIVE_MEASUREMENT, ContextKind.QUALITATIVE_MEASUREMENT):
                if not isinstance(payload, dict):
                    raise ValueError(f"{name} expects a mapping of parameters, got {payload!r}")
                return cls(
                    kind,
                    assay_id=payload.get("assay_id"),
                    unit_ontology_id=payload.get("unit_ontology_id"),
                )
            raise ValueError(f"{name} does not take parameters")
        raise ValueError(f"Cannot interpret {value!r} as a context")

    def to_config(self) -> str | dict[str, Any]:
        """Inverse of :meth:`from_config`."""
        name = self.kind.name.lower()
        if self.time_element is not None:
            return {name: self.time_element.value.lower()}
        if self.boundary is not None:
            return {name: self.boundary.value.lower()}
        if self.kind is ContextKind.QUANTITATIVE_MEASUREMENT:
            return {name: {"assay_id": self.assay_id, "unit_ontology_id": self.unit_ontology_id}}
        if self.kind is ContextKind.QUALITATIVE_MEASUREMENT:
            return {name: {"assay_id": self.assay_id}}
        return name

    def __str__(self) -> str:
        if self.time_element is not None:
            return f"{self.kind.value}({self.time_element.value})"
        if self.boundary is not None:
            return f"{self.kind.value}({self.boundary.value})"
        if self.kind is ContextKind.QUANTITATIVE_MEASUREMENT:
            return f"{self.kind.value}(assay_id={self.assay_id}, unit_ontology_id={self.unit_ontology_id})"
        if self.kind is ContextKind.QUALITATIVE_MEASUREMENT:
            return f"{self.kind.value}(assay_id={self.assay_id})"
        return self.kind.value


def _kind_from_config_name(name: str) -> ContextKind:
    try:
        return ContextKind[name.strip().upper()]
    except KeyError:
        raise ValueError(f"Unknown context {name!r}") from None


for _kind in ContextKind:
    if _kind not in _TIME_ELEMENT_KINDS and _kind not in (
        ContextKind.REFERENCE_RANGE,
        ContextKind.QUANTITATIVE_MEASUREMENT,
        ContextKind.QUALITATIVE_MEASUREMENT,
    ):
        setattr(Context, _kind.name, Context(_kind))
del _kind


# Candidate lists in priority order: ages win over dates.
LAST_ENCOUNTER_VARIANTS: tuple[Context, ...] = (
    Context.last_encounter(TimeElementType.AGE),
    Context.last_encounter(TimeElementType.DATE),
)
TIME_OF_DEATH_VARIANTS: tuple[Context, ...] = (
    Context.time_of_death(TimeElementType.AGE),
    Context.time_of_death(TimeElementType.DATE),
)
TIME_OF_PROCEDURE_VARIANTS: tuple[Context, ...] = (
    Context.time_of_procedure(TimeElementType.AGE),
    Context.time_of_procedure(TimeElementType.DATE),
)
ONSET_VARIANTS: tuple[Context, ...] = (
    Context.onset(TimeElementType.AGE),
    Context.onset(TimeElementType.DATE),
)


__all__ = [
    "ContextKind",
    "TimeElementType",
    "Boundary",
    "Context",
    "LAST_ENCOUNTER_VARIANTS",
    "TIME_OF_DEATH_VARIANTS",
    "TIME_OF_PROCEDURE_VARIANTS",
    "ONSET_VARIANTS",
]
