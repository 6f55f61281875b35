"""Tests for the individual collector."""

import phenopackets.schema.v2 as pps2
import pytest

from conftest import make_table, subject_sc
from phenospine.config.context import Context, TimeElementType
from phenospine.config.table_context import Identifier, SeriesContext
from phenospine.core.errors import ExpectedSingleValueError
from phenospine.transform.collecting.individual import IndividualCollector


def _sc(name, context):
    return SeriesContext(Identifier.regex(name), data_context=context)


@pytest.fixture
def demographics():
    return make_table(
        "demographics",
        {
            "patient_id": ["P1", "P1"],
            "sex": ["FEMALE", "FEMALE"],
            "dob": ["2010-05-01", None],
            "last_age": ["P14Y", "P14Y"],
            "last_date": ["2024-05-01", None],
        },
        subject_sc(),
        _sc("sex", Context.SUBJECT_SEX),
        _sc("dob", Context.DATE_OF_BIRTH),
        _sc("last_age", Context.last_encounter(TimeElementType.AGE)),
        _sc("last_date", Context.last_encounter(TimeElementType.DATE)),
    )


@pytest.fixture
def survival():
    return make_table(
        "survival",
        {
            "patient_id": ["P1"],
            "status": ["DECEASED"],
            "death_date": ["2024-01-01"],
            "cause": ["cancer"],
            "days": ["30"],
        },
        subject_sc(),
        _sc("status", Context.VITAL_STATUS),
        _sc("death_date", Context.time_of_death(TimeElementType.DATE)),
        _sc("cause", Context.CAUSE_OF_DEATH),
        _sc("days", Context.SURVIVAL_TIME_DAYS),
    )


class TestIndividualCollector:
    def test_demographics(self, builder, demographics):
        IndividualCollector().collect(builder, [demographics], "P1")
        subject = builder.get("P1").subject
        assert subject.id == "P1"
        assert subject.sex == pps2.Sex.FEMALE
        assert subject.date_of_birth.ToDatetime().year == 2010
        assert not subject.HasField("vital_status")

    def test_age_wins_over_date(self, builder, demographics):
        IndividualCollector().collect(builder, [demographics], "P1")
        last_encounter = builder.get("P1").subject.time_at_last_encounter
        assert last_encounter.WhichOneof("element") == "age"
        assert last_encounter.age.iso8601duration == "P14Y"

    def test_vital_status_across_tables(self, builder, demographics, survival):
        IndividualCollector().collect(builder, [demographics, survival], "P1")
        vital_status = builder.get("P1").subject.vital_status
        assert vital_status.status == pps2.VitalStatus.Status.DECEASED
        assert vital_status.time_of_death.WhichOneof("element") == "timestamp"
        assert vital_status.cause_of_death.id == "MONDO:0004992"
        assert vital_status.survival_time_in_days == 30

    def test_idempotent(self, builder, demographics, survival):
        for _ in range(2):
            IndividualCollector().collect(builder, [demographics, survival], "P1")
        phenopacket = builder.get("P1")
        assert len(phenopacket.meta_data.resources) == 1

    def test_conflicting_values_across_tables(self, builder, demographics):
        other = make_table(
            "visits",
            {"patient_id": ["P1"], "gender": ["MALE"]},
            subject_sc(),
            _sc("gender", Context.SUBJECT_SEX),
        )
        with pytest.raises(ExpectedSingleValueError) as exc_info:
            IndividualCollector().collect(builder, [demographics, other], "P1")
        assert exc_info.value.context.table == "demographics, visits"
        assert exc_info.value.values == ["FEMALE", "MALE"]

    def test_no_data_still_creates_subject(self, builder):
        bare = make_table("ids", {"patient_id": ["P1"]}, subject_sc())
        IndividualCollector().collect(builder, [bare], "P1")
        assert builder.get("P1").subject.id == "P1"
