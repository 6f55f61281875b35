"""
Shared pytest fixtures for phenospine tests.

This module provides:
- Registry restore fixtures for test isolation (collectors, strategies, settings)
- Small in-memory ontologies for every term domain
- Static gene and variant collaborators (KIF21A and an X-linked F8 variant)
- A phenopacket builder factory wired with all of the above
- Helpers for building contextualized tables inline

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments:

    def test_something(builder, patient_table):
        ...
"""

from collections.abc import Callable, Generator
from pathlib import Path

import polars as pl
import pytest

from phenospine.config.context import Context
from phenospine.config.table_context import Identifier, SeriesContext, TableContext
from phenospine.core.settings import clear_settings_cache
from phenospine.extract.contextualized_table import ContextualizedTable
from phenospine.ontology.genomics import HgvsVariant, StaticGeneResolver, StaticVariantValidator
from phenospine.ontology.resource_references import ResourceRef
from phenospine.ontology.term_source import OntologyBiDict
from phenospine.transform import strategies as strategy_module
from phenospine.transform.collecting import base as collector_base
from phenospine.transform.entity_builder import BuilderMetaData, PhenopacketBuilder
from phenospine.transform.term_resolver import TermResolver


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if "integration" in str(test_path) or "cli" in test_path.parts:
            item.add_marker(pytest.mark.integration)
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Registry Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def restore_registries() -> Generator[None, None, None]:
    """
    Snapshot the collector and strategy registries and restore them afterwards.

    Collectors are loaded first so that a restore never leaves the registry
    empty while the collector modules are already imported.
    """
    collector_base._ensure_loaded()
    collectors = dict(collector_base._registry)
    strategies = dict(strategy_module._registry)
    yield
    collector_base._registry.clear()
    collector_base._registry.update(collectors)
    collector_base._loaded = True
    strategy_module._registry.clear()
    strategy_module._registry.update(strategies)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear cached settings and any PHENOSPINE_* overrides around each test."""
    import os

    for key in list(os.environ):
        if key.startswith("PHENOSPINE_"):
            monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Ontologies
# =============================================================================

HP_REF = ResourceRef("HP", "2025-01-16")
MONDO_REF = ResourceRef("MONDO", "2024-01-03")
UO_REF = ResourceRef("UO", "2023-05-25")
LOINC_REF = ResourceRef("LOINC", "2.77")
PATO_REF = ResourceRef("PATO", "2024-03-28")
NCIT_REF = ResourceRef("NCIT", "24.01d")
UBERON_REF = ResourceRef("UBERON", "2024-09-03")

CFEOM1 = "MONDO:0007565"


@pytest.fixture
def hpo() -> OntologyBiDict:
    return OntologyBiDict.from_mappings(
        HP_REF,
        {
            "HP:0041249": "Fractured nose",
            "HP:0010533": "Spasmus nutans",
            "HP:0001250": "Seizure",
            "HP:0000508": "Ptosis",
        },
        synonyms={"HP:0001250": ["Epileptic seizure"], "HP:0041249": ["Nasal bone fracture"]},
    )


@pytest.fixture
def mondo() -> OntologyBiDict:
    return OntologyBiDict.from_mappings(
        MONDO_REF,
        {
            CFEOM1: "congenital fibrosis of extraocular muscles type 1",
            "MONDO:0005015": "diabetes mellitus",
            "MONDO:0004992": "cancer",
        },
    )


@pytest.fixture
def term_resolvers(hpo: OntologyBiDict, mondo: OntologyBiDict) -> dict[str, TermResolver]:
    """One resolver per term domain, each backed by a tiny dictionary."""
    ncit_treatment = OntologyBiDict.from_mappings(
        NCIT_REF,
        {
            "NCIT:C62220": "Curative Intent",
            "NCIT:C123584": "Favorable Response",
            "NCIT:C41331": "Adverse Event",
        },
    )
    return {
        "hpo": TermResolver("hpo", [hpo]),
        "disease": TermResolver("disease", [mondo]),
        "unit": TermResolver(
            "unit",
            [OntologyBiDict.from_mappings(UO_REF, {"UO:0000009": "kilogram", "UO:0000015": "centimeter"})],
        ),
        "assay": TermResolver(
            "assay",
            [
                OntologyBiDict.from_mappings(
                    LOINC_REF,
                    {
                        "LOINC:29463-7": "Body weight",
                        "LOINC:8302-2": "Body height",
                        "LOINC:5778-6": "Color of Urine",
                    },
                )
            ],
        ),
        "qualitative": TermResolver(
            "qualitative",
            [OntologyBiDict.from_mappings(PATO_REF, {"PATO:0000322": "red", "PATO:0000324": "yellow"})],
        ),
        "procedure": TermResolver(
            "procedure",
            [OntologyBiDict.from_mappings(NCIT_REF, {"NCIT:C15189": "Biopsy", "NCIT:C15329": "Surgical Procedure"})],
        ),
        "anatomy": TermResolver(
            "anatomy",
            [OntologyBiDict.from_mappings(UBERON_REF, {"UBERON:0002107": "liver", "UBERON:0001155": "colon"})],
        ),
        "treatment": TermResolver("treatment", [ncit_treatment]),
    }


# =============================================================================
# Genes and variants
# =============================================================================

KIF21A_VARIANT = "NM_001173464.1:c.2860C>T"
F8_VARIANT = "NM_000132.4:c.6977G>A"


@pytest.fixture
def gene_resolver() -> StaticGeneResolver:
    return StaticGeneResolver({"KIF21A": "HGNC:19349", "F8": "HGNC:3546"})


@pytest.fixture
def kif21a_variant() -> HgvsVariant:
    return HgvsVariant(
        assembly="hg38",
        chromosome="12",
        position=39332405,
        ref_allele="G",
        alt_allele="A",
        symbol="KIF21A",
        hgnc_id="HGNC:19349",
        transcript="NM_001173464.1",
        hgvs="c.2860C>T",
        g_hgvs="NC_000012.12:g.39332405G>A",
        p_hgvs="NP_001166935.1:p.(Arg954Trp)",
    )


@pytest.fixture
def f8_variant() -> HgvsVariant:
    return HgvsVariant(
        assembly="hg38",
        chromosome="X",
        position=154835788,
        ref_allele="C",
        alt_allele="T",
        symbol="F8",
        hgnc_id="HGNC:3546",
        transcript="NM_000132.4",
        hgvs="c.6977G>A",
        g_hgvs="NC_000023.11:g.154835788C>T",
    )


@pytest.fixture
def variant_validator(kif21a_variant: HgvsVariant, f8_variant: HgvsVariant) -> StaticVariantValidator:
    return StaticVariantValidator({KIF21A_VARIANT: kif21a_variant, F8_VARIANT: f8_variant})


# =============================================================================
# Builder
# =============================================================================


@pytest.fixture
def builder_factory(
    term_resolvers: dict[str, TermResolver],
    gene_resolver: StaticGeneResolver,
    variant_validator: StaticVariantValidator,
) -> Callable[..., PhenopacketBuilder]:
    """Build a fully wired PhenopacketBuilder; keyword overrides pass through."""

    def factory(cohort_name: str = "cohort", **kwargs) -> PhenopacketBuilder:
        options = {
            "gene_resolver": gene_resolver,
            "variant_validator": variant_validator,
        }
        options.update(kwargs)
        return PhenopacketBuilder(BuilderMetaData(cohort_name), term_resolvers, **options)

    return factory


@pytest.fixture
def builder(builder_factory: Callable[..., PhenopacketBuilder]) -> PhenopacketBuilder:
    return builder_factory()


# =============================================================================
# Tables
# =============================================================================


def make_table(name: str, data: dict, *scs: SeriesContext) -> ContextualizedTable:
    """Inline table helper: ``make_table("t", {"id": [...]}, sc1, sc2)``."""
    return ContextualizedTable(TableContext(name, list(scs)), pl.DataFrame(data))


def subject_sc(column: str = "patient_id") -> SeriesContext:
    return SeriesContext(Identifier.regex(column), data_context=Context.SUBJECT_ID)


@pytest.fixture
def table_factory() -> Callable[..., ContextualizedTable]:
    return make_table


# =============================================================================
# On-disk cohort
# =============================================================================

COHORT_CSV = """patient_id,sex,phenotype,onset,diagnosis,gene,allele_1,allele_2
P001,f,Fractured nose,,,,,
P001,f,Spasmus nutans,P12Y5M28D,,,,
P002,m,Ptosis,,MONDO:0007565,KIF21A,NM_001173464.1:c.2860C>T,NM_001173464.1:c.2860C>T
"""

COHORT_YAML = """
meta_data:
  cohort_name: kif21a
data_sources:
  - path: patients.csv
    table:
      name: patients
      context:
        - {identifier: patient_id, data_context: subject_id}
        - {identifier: sex, data_context: subject_sex}
        - {identifier: phenotype, data_context: hpo_label_or_id, building_block_id: pheno}
        - {identifier: onset, data_context: {onset: age}, building_block_id: pheno}
        - {identifier: diagnosis, data_context: disease_label_or_id, building_block_id: genetics}
        - {identifier: gene, data_context: hgnc_symbol_or_id, building_block_id: genetics}
        - {identifier: "^allele_", data_context: hgvs, building_block_id: genetics}
strategies: [sex_mapping]
ontologies:
  hpo:
    prefix: HP
    version: "2025-01-16"
    terms: {"HP:0041249": Fractured nose, "HP:0010533": Spasmus nutans, "HP:0000508": Ptosis}
  disease:
    prefix: MONDO
    version: "2024-01-03"
    terms: {"MONDO:0007565": congenital fibrosis of extraocular muscles type 1}
genes: {KIF21A: "HGNC:19349"}
variants:
  "NM_001173464.1:c.2860C>T":
    chromosome: "12"
    position: 39332405
    ref: G
    alt: A
    gene_symbol: KIF21A
    hgnc_id: "HGNC:19349"
    g_hgvs: "NC_000012.12:g.39332405G>A"
    p_hgvs: "NP_001166935.1:p.(Arg954Trp)"
output: {dir: out}
"""


@pytest.fixture
def cohort_dir(tmp_path: Path) -> Path:
    """A directory holding ``cohort.yaml`` and the ``patients.csv`` it reads."""
    (tmp_path / "patients.csv").write_text(COHORT_CSV, encoding="utf-8")
    (tmp_path / "cohort.yaml").write_text(COHORT_YAML, encoding="utf-8")
    return tmp_path
