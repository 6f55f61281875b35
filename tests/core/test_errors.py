"""Tests for phenospine.core.errors module."""

import pytest

from phenospine.core.errors import (
    AmbiguousPhenotypeDataError,
    CardinalityError,
    ConfigError,
    ContradictoryAllelicDataError,
    DomainLogicError,
    DuplicateColumnOwnershipError,
    ErrorCategory,
    ErrorContext,
    ExpectedAtMostNLinkedColumnsError,
    ExpectedSingleValueError,
    GeneMismatchError,
    InvalidGeneVariantCountError,
    LoadError,
    MissingTermSourceError,
    ParsingError,
    PhenoSpineError,
    ResolutionError,
    SubjectIdColumnError,
    SubjectIdGapError,
    TableValidationError,
    TermNotFoundError,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        """Create context with no fields set."""
        ctx = ErrorContext()
        assert ctx.table is None
        assert ctx.patient_id is None
        assert ctx.metadata == {}
        assert ctx.to_dict() == {}

    def test_to_dict_skips_none_and_merges_metadata(self):
        """Only set fields appear; metadata is flattened in."""
        ctx = ErrorContext(table="patients", column="sex", metadata={"row": 3})
        assert ctx.to_dict() == {"table": "patients", "column": "sex", "row": 3}


class TestPhenoSpineError:
    """Test the base error class."""

    def test_default_category_is_internal(self):
        error = PhenoSpineError("boom")
        assert error.category == ErrorCategory.INTERNAL
        assert str(error) == "boom"

    def test_category_override(self):
        error = PhenoSpineError("boom", category=ErrorCategory.PIPELINE)
        assert error.category == ErrorCategory.PIPELINE

    def test_cause_is_chained(self):
        cause = ValueError("inner")
        error = PhenoSpineError("outer", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "inner"

    def test_with_context_is_fluent(self):
        error = ParsingError("Sex", "maybe")
        assert error.with_context(table="patients") is error
        assert error.context.table == "patients"

    def test_with_context_keeps_innermost_values(self):
        """Fields already set are not overwritten by outer layers."""
        error = ParsingError("Sex", "maybe").with_context(table="patients_P1", column="sex")
        error.with_context(table="patients, visits", patient_id="P1", collector="individual")
        assert error.context.table == "patients_P1"
        assert error.context.column == "sex"
        assert error.context.patient_id == "P1"
        assert error.context.collector == "individual"

    def test_with_context_unknown_keys_go_to_metadata(self):
        error = PhenoSpineError("boom").with_context(row=4, table=None)
        assert error.context.metadata == {"row": 4}
        assert error.context.table is None

    def test_str_includes_context(self):
        error = PhenoSpineError("boom").with_context(table="t", patient_id="P1")
        assert str(error) == "boom [table=t, patient_id=P1]"

    def test_to_dict(self):
        error = TermNotFoundError("hpo", "Fractured elbow").with_context(patient_id="P1")
        payload = error.to_dict()
        assert payload["error_type"] == "TermNotFoundError"
        assert payload["category"] == "RESOLUTION"
        assert payload["context"] == {"patient_id": "P1"}

    def test_repr(self):
        assert repr(PhenoSpineError("boom")) == "PhenoSpineError('boom', category=INTERNAL)"


class TestTableValidationErrors:
    """Test table invariant errors."""

    def test_duplicate_ownership_lists_columns(self):
        error = DuplicateColumnOwnershipError("patients", ["age"])
        assert isinstance(error, TableValidationError)
        assert error.category == ErrorCategory.VALIDATION
        assert error.columns == ["age"]
        assert "'age'" in error.message
        assert error.context.table == "patients"

    def test_subject_id_column_error(self):
        error = SubjectIdColumnError("patients", 0)
        assert error.n_found == 0
        assert "SubjectId" in error.message

    def test_subject_id_gap_sets_column(self):
        error = SubjectIdGapError("patients", "id")
        assert error.context.column == "id"
        assert "has gaps" in error.message


class TestParsingError:
    """Test ParsingError."""

    def test_message_names_what_and_value(self):
        error = ParsingError("TimeElement", "yesterday")
        assert error.category == ErrorCategory.PARSE
        assert error.message == "Could not parse TimeElement from value 'yesterday'"

    def test_reason_is_appended(self):
        error = ParsingError("SurvivalTimeDays", "1.5", reason="expected a whole number of days")
        assert error.message.endswith(": expected a whole number of days")

    def test_to_dict_includes_value(self):
        payload = ParsingError("Sex", 3).to_dict()
        assert payload["what"] == "Sex"
        assert payload["value"] == "3"


class TestResolutionErrors:
    """Test term resolution errors."""

    def test_term_not_found(self):
        error = TermNotFoundError("disease", "flu")
        assert isinstance(error, ResolutionError)
        assert error.domain == "disease"
        assert error.query == "flu"

    def test_missing_term_source_is_config(self):
        error = MissingTermSourceError("unit")
        assert isinstance(error, ResolutionError)
        assert error.category == ErrorCategory.CONFIG
        assert error.message == "Missing term source for domain unit"


class TestCardinalityErrors:
    """Test cardinality errors."""

    def test_expected_at_most_n_linked(self):
        error = ExpectedAtMostNLinkedColumnsError("visits", "pheno", ["Onset(Age)"], n_found=2)
        assert isinstance(error, CardinalityError)
        assert error.n_expected == 1
        assert error.context.table == "visits"
        assert "found 2" in error.message

    def test_expected_single_value(self):
        error = ExpectedSingleValueError("patients", "P1", ["SubjectSex"], ["MALE", "FEMALE"])
        assert error.context.patient_id == "P1"
        assert error.values == ["MALE", "FEMALE"]

    def test_ambiguous_phenotype_data(self):
        error = AmbiguousPhenotypeDataError("visits", "P1", "HP:0001250")
        assert error.phenotype == "HP:0001250"
        assert error.category == ErrorCategory.CARDINALITY


class TestDomainLogicErrors:
    """Test genetics errors."""

    @pytest.mark.parametrize(
        "error",
        [
            InvalidGeneVariantCountError(2, 0),
            ContradictoryAllelicDataError(2, "X", "MALE"),
            GeneMismatchError("KIF21A", ["F8", "HGNC:3546"], "NM_000132.4:c.6977G>A"),
        ],
    )
    def test_domain_category(self, error):
        assert isinstance(error, DomainLogicError)
        assert error.category == ErrorCategory.DOMAIN


class TestOtherErrors:
    """Test config and load errors."""

    def test_config_error_category(self):
        assert ConfigError("bad").category == ErrorCategory.CONFIG

    def test_load_error_entity_id(self):
        error = LoadError("disk full", entity_id="cohort-P1")
        assert error.entity_id == "cohort-P1"
        assert error.category == ErrorCategory.LOAD
