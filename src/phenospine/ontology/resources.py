"""
Resource metadata for phenopacket provenance.

Every term written into a phenopacket must be backed by a ``Resource``
entry in its metadata. :class:`ResourceResolver` turns a
:class:`ResourceRef` into that entry from a built-in table of the
ontologies phenospine knows; unknown prefixes get a minimal record.
"""

from __future__ import annotations

from dataclasses import dataclass

import phenopackets.schema.v2 as pps2

from phenospine.ontology.resource_references import KnownResourcePrefix, ResourceRef


@dataclass(frozen=True)
class ResourceInfo:
    name: str
    url: str
    iri_prefix: str


KNOWN_RESOURCES: dict[KnownResourcePrefix, ResourceInfo] = {
    KnownResourcePrefix.HP: ResourceInfo(
        "human phenotype ontology",
        "http://purl.obolibrary.org/obo/hp.json",
        "http://purl.obolibrary.org/obo/HP_",
    ),
    KnownResourcePrefix.MONDO: ResourceInfo(
        "Mondo Disease Ontology",
        "http://purl.obolibrary.org/obo/mondo.json",
        "http://purl.obolibrary.org/obo/MONDO_",
    ),
    KnownResourcePrefix.HGNC: ResourceInfo(
        "HUGO Gene Nomenclature Committee",
        "https://www.genenames.org",
        "https://www.genenames.org/data/gene-symbol-report/#!/hgnc_id/",
    ),
    KnownResourcePrefix.LOINC: ResourceInfo(
        "Logical Observation Identifiers Names and Codes",
        "https://loinc.org",
        "https://loinc.org/",
    ),
    KnownResourcePrefix.UO: ResourceInfo(
        "Units of measurement ontology",
        "http://purl.obolibrary.org/obo/uo.json",
        "http://purl.obolibrary.org/obo/UO_",
    ),
    KnownResourcePrefix.OMIM: ResourceInfo(
        "Online Mendelian Inheritance in Man",
        "https://www.omim.org",
        "https://www.omim.org/entry/",
    ),
    KnownResourcePrefix.PATO: ResourceInfo(
        "Phenotype And Trait Ontology",
        "http://purl.obolibrary.org/obo/pato.json",
        "http://purl.obolibrary.org/obo/PATO_",
    ),
    KnownResourcePrefix.UBERON: ResourceInfo(
        "Uber-anatomy ontology",
        "http://purl.obolibrary.org/obo/uberon.json",
        "http://purl.obolibrary.org/obo/UBERON_",
    ),
    KnownResourcePrefix.MAXO: ResourceInfo(
        "Medical Action Ontology",
        "http://purl.obolibrary.org/obo/maxo.json",
        "http://purl.obolibrary.org/obo/MAXO_",
    ),
    KnownResourcePrefix.NCIT: ResourceInfo(
        "NCI Thesaurus",
        "http://purl.obolibrary.org/obo/ncit.owl",
        "http://purl.obolibrary.org/obo/NCIT_",
    ),
    KnownResourcePrefix.GENO: ResourceInfo(
        "Genotype Ontology",
        "http://purl.obolibrary.org/obo/geno.json",
        "http://purl.obolibrary.org/obo/GENO_",
    ),
}


class ResourceResolver:
    """ResourceRef to phenopacket ``Resource``, memoised per prefix and version."""

    def __init__(self, extra: dict[str, ResourceInfo] | None = None):
        self._extra = {k.upper(): v for k, v in (extra or {}).items()}
        self._cache: dict[tuple[str, str], pps2.Resource] = {}

    def _info(self, prefix: str) -> ResourceInfo | None:
        upper = prefix.upper()
        if upper in self._extra:
            return self._extra[upper]
        try:
            return KNOWN_RESOURCES[KnownResourcePrefix(upper)]
        except ValueError:
            return None

    def resolve(self, ref: ResourceRef) -> pps2.Resource:
        key = (ref.prefix_id.lower(), ref.version.lower())
        cached = self._cache.get(key)
        if cached is None:
            info = self._info(ref.prefix_id)
            cached = pps2.Resource(
                id=ref.prefix_id.lower(),
                name=info.name if info else ref.prefix_id,
                url=info.url if info else "",
                version=ref.version,
                namespace_prefix=ref.prefix_id,
                iri_prefix=info.iri_prefix if info else "",
            )
            self._cache[key] = cached
        resource = pps2.Resource()
        resource.CopyFrom(cached)
        return resource


__all__ = [
    "ResourceInfo",
    "KNOWN_RESOURCES",
    "ResourceResolver",
]
