"""Tests for the normalisation strategies and their registry."""

import pytest

from conftest import make_table, subject_sc
from phenospine.config.context import Context, TimeElementType
from phenospine.config.table_context import AliasMap, Identifier, OutputDataType, SeriesContext
from phenospine.core.errors import ExpectedSingleValueError, MissingTermSourceError, ParsingError
from phenospine.transform.collecting.broker import partition_by_subject
from phenospine.transform.collecting.phenotypes import HpoInHeaderCollector
from phenospine.transform.strategies import (
    MappingStrategy,
    get_strategy,
    list_strategies,
    register_strategy,
)


class TestRegistry:
    def test_builtins_registered(self):
        assert {
            "alias_map",
            "fill_missing",
            "sex_mapping",
            "vital_status_mapping",
            "age_to_iso8601",
            "date_to_age",
            "hpo_normaliser",
            "disease_normaliser",
            "multi_hpo_col_expansion",
        } <= set(list_strategies())

    def test_get_strategy_returns_fresh_instances(self):
        assert get_strategy("sex_mapping") is not get_strategy("sex_mapping")

    def test_unknown_strategy(self):
        with pytest.raises(KeyError, match="not found"):
            get_strategy("uppercase")

    def test_duplicate_registration(self):
        with pytest.raises(ValueError, match="already registered"):
            register_strategy("alias_map")(lambda: None)

    def test_register_custom(self):
        @register_strategy("noop")
        class Noop:
            name = "noop"

            def transform(self, tables):
                pass

        assert isinstance(get_strategy("noop"), Noop)


class TestAliasMap:
    def test_maps_and_keeps_unmapped_values(self):
        table = make_table(
            "phenotypes",
            {"patient_id": ["P1", "P2", "P3"], "nose": ["broken", "fine", None]},
            subject_sc(),
            SeriesContext(
                Identifier.regex("nose"),
                data_context=Context.HPO_LABEL_OR_ID,
                alias_map=AliasMap({"broken": "Fractured nose"}),
            ),
        )
        get_strategy("alias_map").transform([table])
        assert table.data["nose"].to_list() == ["Fractured nose", "fine", None]

    def test_none_mapping_and_boolean_cast(self):
        table = make_table(
            "phenotypes",
            {"patient_id": ["P1", "P2", "P3"], "excluded": ["no", "yes", "n/a"]},
            subject_sc(),
            SeriesContext(
                Identifier.regex("excluded"),
                alias_map=AliasMap({"no": "true", "yes": "false", "n/a": None}, OutputDataType.BOOLEAN),
            ),
        )
        get_strategy("alias_map").transform([table])
        assert table.data["excluded"].to_list() == [True, False, None]

    def test_numeric_cast(self):
        table = make_table(
            "labs",
            {"patient_id": ["P1", "P2"], "weight": ["twelve", "14.5"]},
            subject_sc(),
            SeriesContext(Identifier.regex("weight"), alias_map=AliasMap({"twelve": "12"}, OutputDataType.FLOAT64)),
        )
        get_strategy("alias_map").transform([table])
        assert table.data["weight"].to_list() == [12.0, 14.5]

    def test_failed_cast_leaves_table_unchanged(self):
        table = make_table(
            "labs",
            {"patient_id": ["P1", "P2"], "weight": ["heavy", "14.5"]},
            subject_sc(),
            SeriesContext(Identifier.regex("weight"), alias_map=AliasMap({}, OutputDataType.FLOAT64)),
        )
        with pytest.raises(ParsingError) as exc_info:
            get_strategy("alias_map").transform([table])
        assert exc_info.value.context.table == "labs"
        assert table.data["weight"].to_list() == ["heavy", "14.5"]


class TestFillMissing:
    def test_fills_nulls(self):
        table = make_table(
            "patients",
            {"patient_id": ["P1", "P2"], "status": [None, "ALIVE"], "days": [None, 3]},
            subject_sc(),
            SeriesContext(Identifier.regex("status"), data_context=Context.VITAL_STATUS, fill_missing="UNKNOWN_STATUS"),
            SeriesContext(Identifier.regex("days"), data_context=Context.SURVIVAL_TIME_DAYS, fill_missing=0),
        )
        get_strategy("fill_missing").transform([table])
        assert table.data["status"].to_list() == ["UNKNOWN_STATUS", "ALIVE"]
        assert table.data["days"].to_list() == [0, 3]

    def test_all_null_column(self):
        table = make_table(
            "patients",
            {"patient_id": ["P1"], "sex": [None]},
            subject_sc(),
            SeriesContext(Identifier.regex("sex"), data_context=Context.SUBJECT_SEX, fill_missing="UNKNOWN_SEX"),
        )
        get_strategy("fill_missing").transform([table])
        assert table.data["sex"].to_list() == ["UNKNOWN_SEX"]


class TestMappingStrategies:
    def test_sex_mapping(self):
        table = make_table(
            "patients",
            {"patient_id": ["P1", "P2", "P3", "P4"], "sex": [" m ", "Woman", "FEMALE", None]},
            subject_sc(),
            SeriesContext(Identifier.regex("sex"), data_context=Context.SUBJECT_SEX),
        )
        get_strategy("sex_mapping").transform([table])
        assert table.data["sex"].to_list() == ["MALE", "FEMALE", "FEMALE", None]

    def test_vital_status_mapping(self):
        table = make_table(
            "patients",
            {"patient_id": ["P1", "P2", "P3"], "alive": ["living", "dead", "no data"]},
            subject_sc(),
            SeriesContext(Identifier.regex("alive"), data_context=Context.VITAL_STATUS),
        )
        get_strategy("vital_status_mapping").transform([table])
        assert table.data["alive"].to_list() == ["ALIVE", "DECEASED", "UNKNOWN_STATUS"]

    def test_unmapped_values_reported_together(self):
        tables = [
            make_table(
                name,
                {"patient_id": ["P1", "P2"], "sex": ["x", "robot"]},
                subject_sc(),
                SeriesContext(Identifier.regex("sex"), data_context=Context.SUBJECT_SEX),
            )
            for name in ("a", "b")
        ]
        with pytest.raises(ParsingError) as exc_info:
            get_strategy("sex_mapping").transform(tables)
        assert exc_info.value.value == "x, robot"

    def test_custom_alias(self):
        strategy = MappingStrategy("sex", {"m": "MALE"}, Context.SUBJECT_SEX)
        strategy.add_alias("Herr", "MALE")
        assert strategy.synonym_map == {"m": "MALE", "male": "MALE", "herr": "MALE"}

    def test_other_contexts_untouched(self):
        table = make_table(
            "patients",
            {"patient_id": ["P1"], "sex": ["m"], "note": ["m"]},
            subject_sc(),
            SeriesContext(Identifier.regex("sex"), data_context=Context.SUBJECT_SEX),
            SeriesContext(Identifier.regex("note")),
        )
        get_strategy("sex_mapping").transform([table])
        assert table.data["note"].to_list() == ["m"]


AGE_ONSET = Context.onset(TimeElementType.AGE)
DATE_ONSET = Context.onset(TimeElementType.DATE)


class TestAgeToIso8601:
    @staticmethod
    def _table(ages):
        return make_table(
            "diseases",
            {"patient_id": [f"P{i}" for i in range(len(ages))], "onset": ages},
            subject_sc(),
            SeriesContext(Identifier.regex("onset"), data_context=AGE_ONSET),
        )

    def test_whole_years_become_durations(self):
        table = self._table(["12", "3.0", "P1Y2M", None])
        get_strategy("age_to_iso8601").transform([table])
        assert table.data["onset"].to_list() == ["P12Y", "P3Y", "P1Y2M", None]

    @pytest.mark.parametrize("value", ["200", "-1", "2.5", "teen"])
    def test_rejected_ages(self, value):
        table = self._table(["12", value])
        with pytest.raises(ParsingError, match=value) as exc_info:
            get_strategy("age_to_iso8601").transform([table])
        assert exc_info.value.what == "Age"

    def test_other_contexts_untouched(self):
        table = make_table(
            "patients",
            {"patient_id": ["P1"], "weight": ["12"]},
            subject_sc(),
            SeriesContext(
                Identifier.regex("weight"),
                data_context=Context.quantitative_measurement("LOINC:29463-7", "UO:0000009"),
            ),
        )
        get_strategy("age_to_iso8601").transform([table])
        assert table.data["weight"].to_list() == ["12"]


class TestDateToAge:
    @staticmethod
    def _patients(dobs):
        return make_table(
            "patients",
            {"patient_id": list(dobs), "dob": list(dobs.values())},
            subject_sc(),
            SeriesContext(Identifier.regex("dob"), data_context=Context.DATE_OF_BIRTH),
        )

    @staticmethod
    def _diseases(onsets):
        return make_table(
            "diseases",
            {"patient_id": list(onsets), "onset": list(onsets.values())},
            subject_sc(),
            SeriesContext(Identifier.regex("onset"), data_context=DATE_ONSET, building_block_id="A"),
        )

    def test_dates_become_ages(self):
        patients = self._patients({"P1": "2010-03-15", "P2": "2001-01-31"})
        diseases = self._diseases({"P1": "2022-09-12", "P2": "2001-03-01"})
        get_strategy("date_to_age").transform([patients, diseases])
        assert diseases.data["onset"].to_list() == ["P12Y5M28D", "P1M1D"]
        assert diseases.series_contexts[1].data_context == AGE_ONSET
        assert diseases.series_contexts[1].building_block_id == "A"

    def test_patient_without_date_of_birth(self):
        patients = self._patients({"P1": "2010-03-15"})
        diseases = self._diseases({"P1": "2022-09-12", "P2": "2001-03-01"})
        with pytest.raises(ParsingError, match="P2: 2001-03-01"):
            get_strategy("date_to_age").transform([patients, diseases])

    def test_date_before_birth(self):
        patients = self._patients({"P1": "2010-03-15"})
        diseases = self._diseases({"P1": "2009-12-31"})
        with pytest.raises(ParsingError, match="precedes"):
            get_strategy("date_to_age").transform([patients, diseases])

    def test_conflicting_dates_of_birth(self):
        first = self._patients({"P1": "2010-03-15"})
        second = self._patients({"P1": "2011-03-15"})
        with pytest.raises(ExpectedSingleValueError) as exc_info:
            get_strategy("date_to_age").transform([first, second, self._diseases({"P1": "2022-09-12"})])
        assert exc_info.value.context.patient_id == "P1"

    def test_no_dated_columns_is_a_no_op(self):
        patients = self._patients({"P1": "not a date"})
        get_strategy("date_to_age").transform([patients])
        assert patients.data["dob"].to_list() == ["not a date"]


class TestOntologyNormaliser:
    @staticmethod
    def _phenotypes(values):
        return make_table(
            "phenotypes",
            {"patient_id": [f"P{i}" for i in range(len(values))], "phenotype": values},
            subject_sc(),
            SeriesContext(Identifier.regex("phenotype"), data_context=Context.HPO_LABEL_OR_ID),
        )

    def test_labels_and_synonyms_become_ids(self, term_resolvers):
        table = self._phenotypes(["Seizure", "Epileptic seizure", "HP:0000508", None])
        get_strategy("hpo_normaliser", term_resolvers=term_resolvers).transform([table])
        assert table.data["phenotype"].to_list() == ["HP:0001250", "HP:0001250", "HP:0000508", None]

    def test_unknown_terms(self, term_resolvers):
        table = self._phenotypes(["Seizure", "Sneezing"])
        with pytest.raises(ParsingError, match="Sneezing") as exc_info:
            get_strategy("hpo_normaliser", term_resolvers=term_resolvers).transform([table])
        assert "no hpo term found" in str(exc_info.value)

    def test_missing_source(self):
        table = self._phenotypes(["Seizure"])
        with pytest.raises(MissingTermSourceError) as exc_info:
            get_strategy("hpo_normaliser").transform([table])
        assert exc_info.value.context.table == "phenotypes"

    def test_disease_labels(self, term_resolvers):
        table = make_table(
            "diseases",
            {"patient_id": ["P1"], "disease": ["cancer"]},
            subject_sc(),
            SeriesContext(Identifier.regex("disease"), data_context=Context.DISEASE_LABEL_OR_ID),
        )
        get_strategy("disease_normaliser", term_resolvers=term_resolvers).transform([table])
        assert table.data["disease"].to_list() == ["MONDO:0004992"]


class TestMultiHpoColExpansion:
    @staticmethod
    def _table():
        return make_table(
            "phenotypes",
            {
                "patient_id": ["P1", "P2"],
                "hpo": ["HP:0001250; hp:0000508", "Seizure (HP:0001250)"],
                "onset": ["P1Y", None],
            },
            subject_sc(),
            SeriesContext(Identifier.regex("^hpo$"), data_context=Context.MULTI_HPO_ID, building_block_id="A"),
            SeriesContext(Identifier.regex("onset"), data_context=AGE_ONSET, building_block_id="A"),
        )

    def test_one_column_per_listed_id(self):
        table = self._table()
        get_strategy("multi_hpo_col_expansion").transform([table])

        assert table.data.columns == ["patient_id", "onset", "HP:0001250#A", "HP:0000508#A"]
        assert table.data["HP:0001250#A"].to_list() == [True, True]
        assert table.data["HP:0000508#A"].to_list() == [True, None]
        sc = table.series_contexts[-1]
        assert sc.header_context == Context.HPO_LABEL_OR_ID
        assert sc.data_context == Context.OBSERVATION_STATUS
        assert sc.building_block_id == "A"
        assert all(sc.data_context != Context.MULTI_HPO_ID for sc in table.series_contexts)

    def test_expanded_columns_feed_header_collector(self, builder):
        table = self._table()
        get_strategy("multi_hpo_col_expansion").transform([table])
        HpoInHeaderCollector().collect(builder, [partition_by_subject(table)["P1"]], "P1")

        features = {f.type.id: f for f in builder.get("P1").phenotypic_features}
        assert set(features) == {"HP:0001250", "HP:0000508"}
        assert features["HP:0000508"].onset.age.iso8601duration == "P1Y"
