"""Tests for TermResolver."""

import pytest

from conftest import HP_REF
from phenospine.core.errors import MissingTermSourceError, TermNotFoundError
from phenospine.ontology.resource_references import ResourceRef
from phenospine.ontology.term_source import OntologyBiDict
from phenospine.transform.term_resolver import TermResolver


class TestTermResolver:
    def test_resolve_label(self, hpo):
        term, ref = TermResolver("hpo", [hpo]).resolve("Fractured nose")
        assert (term.id, term.label) == ("HP:0041249", "Fractured nose")
        assert ref == HP_REF

    def test_resolve_id(self, hpo):
        term, _ = TermResolver("hpo", [hpo]).resolve("HP:0010533")
        assert (term.id, term.label) == ("HP:0010533", "Spasmus nutans")

    def test_resolve_id_normalises_case(self, hpo):
        term, _ = TermResolver("hpo", [hpo]).resolve("hp:0010533")
        assert term.id == "HP:0010533"

    def test_resolve_synonym_gives_primary_label(self, hpo):
        term, _ = TermResolver("hpo", [hpo]).resolve("epileptic seizure")
        assert (term.id, term.label) == ("HP:0001250", "Seizure")

    def test_first_source_wins(self):
        first = OntologyBiDict.from_mappings(ResourceRef("MONDO", "1"), {"MONDO:0004992": "cancer"})
        second = OntologyBiDict.from_mappings(ResourceRef("NCIT", "2"), {"NCIT:C9305": "cancer"})
        term, ref = TermResolver("disease", [first, second]).resolve("Cancer")
        assert term.id == "MONDO:0004992"
        assert ref.prefix_id == "MONDO"

    def test_curie_only_asked_of_matching_prefix(self, hpo, mondo):
        resolver = TermResolver("disease", [hpo, mondo])
        term, ref = resolver.resolve("MONDO:0005015")
        assert term.label == "diabetes mellitus"
        assert ref.prefix_id == "MONDO"

    def test_falls_through_to_later_source(self, hpo, mondo):
        term, _ = TermResolver("mixed", [hpo, mondo]).resolve("diabetes mellitus")
        assert term.id == "MONDO:0005015"

    def test_not_found(self, hpo):
        with pytest.raises(TermNotFoundError) as exc_info:
            TermResolver("hpo", [hpo]).resolve("Fractured elbow")
        assert exc_info.value.domain == "hpo"

    def test_unknown_curie(self, hpo):
        assert TermResolver("hpo", [hpo]).query("HP:9999999") is None

    def test_no_sources(self):
        resolver = TermResolver("unit")
        assert resolver.is_empty()
        with pytest.raises(MissingTermSourceError, match="unit"):
            resolver.resolve("kilogram")

    def test_add_source(self, hpo):
        resolver = TermResolver("hpo")
        resolver.add_source(hpo)
        assert resolver.prefixes == ["HP"]
        assert resolver.query("Ptosis") is not None
