"""Tests for the interpretation collector."""

import pytest

from conftest import CFEOM1, F8_VARIANT, KIF21A_VARIANT, make_table, subject_sc
from phenospine.config.context import Context
from phenospine.config.table_context import Identifier, SeriesContext
from phenospine.core.errors import GeneMismatchError, InvalidGeneVariantCountError
from phenospine.transform.collecting.interpretation import InterpretationCollector


def _genetics(data, block="G"):
    return make_table(
        "genetics",
        data,
        subject_sc(),
        SeriesContext(Identifier.regex("sex"), data_context=Context.SUBJECT_SEX),
        SeriesContext(Identifier.regex("diagnosis"), data_context=Context.DISEASE_LABEL_OR_ID, building_block_id=block),
        SeriesContext(Identifier.regex("gene"), data_context=Context.HGNC_SYMBOL_OR_ID, building_block_id="G"),
        SeriesContext(Identifier.multi(["allele_1", "allele_2"]), data_context=Context.HGVS, building_block_id="G"),
    )


def _allelic_states(phenopacket):
    return [
        g.variant_interpretation.variation_descriptor.allelic_state.label
        for i in phenopacket.interpretations
        for g in i.diagnosis.genomic_interpretations
    ]


class TestInterpretationCollector:
    def test_homozygous_kif21a(self, builder):
        table = _genetics(
            {
                "patient_id": ["P1"],
                "sex": ["FEMALE"],
                "diagnosis": [CFEOM1],
                "gene": ["KIF21A"],
                "allele_1": [KIF21A_VARIANT],
                "allele_2": [KIF21A_VARIANT],
            }
        )
        InterpretationCollector().collect(builder, [table], "P1")
        phenopacket = builder.get("P1")
        (interpretation,) = phenopacket.interpretations
        assert interpretation.id == f"cohort-P1-{CFEOM1}"
        assert _allelic_states(phenopacket) == ["homozygous"]

    def test_hemizygous_in_male(self, builder):
        table = _genetics(
            {
                "patient_id": ["P1"],
                "sex": ["MALE"],
                "diagnosis": ["cancer"],
                "gene": [None],
                "allele_1": [F8_VARIANT],
                "allele_2": [None],
            }
        )
        InterpretationCollector().collect(builder, [table], "P1")
        assert _allelic_states(builder.get("P1")) == ["hemizygous"]

    def test_causative_gene_only(self, builder):
        table = _genetics(
            {
                "patient_id": ["P1"],
                "sex": [None],
                "diagnosis": [CFEOM1],
                "gene": ["KIF21A"],
                "allele_1": [None],
                "allele_2": [None],
            }
        )
        InterpretationCollector().collect(builder, [table], "P1")
        (genomic,) = builder.get("P1").interpretations[0].diagnosis.genomic_interpretations
        assert genomic.gene.symbol == "KIF21A"

    def test_rows_without_genetics_skipped(self, builder):
        table = _genetics(
            {
                "patient_id": ["P1"],
                "sex": ["FEMALE"],
                "diagnosis": [CFEOM1],
                "gene": [None],
                "allele_1": [None],
                "allele_2": [None],
            }
        )
        InterpretationCollector().collect(builder, [table], "P1")
        assert builder.get("P1") is None

    def test_disease_outside_building_block_ignored(self, builder):
        table = _genetics(
            {
                "patient_id": ["P1"],
                "sex": ["FEMALE"],
                "diagnosis": [CFEOM1],
                "gene": ["KIF21A"],
                "allele_1": [None],
                "allele_2": [None],
            },
            block=None,
        )
        InterpretationCollector().collect(builder, [table], "P1")
        assert builder.get("P1") is None

    def test_one_interpretation_per_disease(self, builder):
        table = _genetics(
            {
                "patient_id": ["P1", "P1"],
                "sex": ["FEMALE", "FEMALE"],
                "diagnosis": [CFEOM1, CFEOM1],
                "gene": ["KIF21A", "KIF21A"],
                "allele_1": [KIF21A_VARIANT, KIF21A_VARIANT],
                "allele_2": [None, None],
            }
        )
        InterpretationCollector().collect(builder, [table], "P1")
        assert len(builder.get("P1").interpretations) == 1

    def test_gene_mismatch(self, builder):
        table = _genetics(
            {
                "patient_id": ["P1"],
                "sex": ["FEMALE"],
                "diagnosis": [CFEOM1],
                "gene": ["F8"],
                "allele_1": [KIF21A_VARIANT],
                "allele_2": [None],
            }
        )
        with pytest.raises(GeneMismatchError):
            InterpretationCollector().collect(builder, [table], "P1")

    def test_compound_heterozygous_without_gene(self, builder):
        table = _genetics(
            {
                "patient_id": ["P1"],
                "sex": ["FEMALE"],
                "diagnosis": [CFEOM1],
                "gene": [None],
                "allele_1": [KIF21A_VARIANT],
                "allele_2": [F8_VARIANT],
            }
        )
        InterpretationCollector().collect(builder, [table], "P1")
        assert _allelic_states(builder.get("P1")) == ["heterozygous", "heterozygous"]

    def test_invalid_count(self, builder):
        table = make_table(
            "genetics",
            {"patient_id": ["P1"], "diagnosis": [CFEOM1], "gene_a": ["KIF21A"], "gene_b": ["F8"]},
            subject_sc(),
            SeriesContext(Identifier.regex("diagnosis"), data_context=Context.DISEASE_LABEL_OR_ID, building_block_id="G"),
            SeriesContext(Identifier.regex("gene_"), data_context=Context.HGNC_SYMBOL_OR_ID, building_block_id="G"),
        )
        with pytest.raises(InvalidGeneVariantCountError):
            InterpretationCollector().collect(builder, [table], "P1")
