"""Ontology layer: resource references, term sources, registries and gene/variant collaborators."""

from phenospine.ontology.factory import OntologyFactory
from phenospine.ontology.genomics import (
    GeneResolver,
    HgvsVariant,
    StaticGeneResolver,
    StaticVariantValidator,
    VariantValidator,
)
from phenospine.ontology.registry import (
    FileSystemOntologyRegistry,
    InMemoryOntologyRegistry,
    OntologyNotFoundError,
    OntologyRegistry,
)
from phenospine.ontology.resource_references import KnownResourcePrefix, ResourceRef
from phenospine.ontology.resources import ResourceResolver
from phenospine.ontology.term_source import CachedTermSource, OntologyBiDict, TermSource, curie_prefix

__all__ = [
    "OntologyFactory",
    "GeneResolver",
    "HgvsVariant",
    "StaticGeneResolver",
    "StaticVariantValidator",
    "VariantValidator",
    "FileSystemOntologyRegistry",
    "InMemoryOntologyRegistry",
    "OntologyNotFoundError",
    "OntologyRegistry",
    "KnownResourcePrefix",
    "ResourceRef",
    "ResourceResolver",
    "CachedTermSource",
    "OntologyBiDict",
    "TermSource",
    "curie_prefix",
]
