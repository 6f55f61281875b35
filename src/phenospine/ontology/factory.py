"""Build and memoise ontology dictionaries from an injected registry."""

from __future__ import annotations

from phenospine.core.logging import get_logger
from phenospine.ontology.registry import OntologyRegistry
from phenospine.ontology.resource_references import ResourceRef
from phenospine.ontology.term_source import OntologyBiDict

logger = get_logger(__name__)


class OntologyFactory:
    """
    One factory per run; dictionaries are built once per ResourceRef.

    Examples:
        >>> factory = OntologyFactory(FileSystemOntologyRegistry("~/.phenospine/ontologies"))
        >>> hpo = factory.build_bidict(ResourceRef.hp())
    """

    def __init__(self, registry: OntologyRegistry):
        self._registry = registry
        self._cache: dict[ResourceRef, OntologyBiDict] = {}

    @property
    def registry(self) -> OntologyRegistry:
        return self._registry

    def build_bidict(self, ref: ResourceRef) -> OntologyBiDict:
        key = ResourceRef(ref.prefix_id.upper(), ref.version)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        with self._registry.open(ref) as stream:
            bidict = OntologyBiDict.from_obographs(stream, ref.prefix_id)
        self._cache[key] = bidict
        logger.info("ontology_loaded", resource=str(bidict.reference()), terms=len(bidict))
        return bidict

    def clear(self) -> None:
        self._cache.clear()


__all__ = ["OntologyFactory"]
