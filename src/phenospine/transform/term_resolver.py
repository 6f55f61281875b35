"""
Term resolution over an ordered list of term sources for one domain.

For each source in order: if the raw value is a CURIE whose prefix is the
source's prefix, resolve id to label; otherwise resolve label (or
synonym) to id. The first source that answers wins.

Examples:
    >>> hpo = TermResolver("hpo", [hpo_bidict])
    >>> term, ref = hpo.resolve("Fractured nose")
    >>> term.id, term.label, str(ref)
    ('HP:0041249', 'Fractured nose', 'HP:2025-01-16')
"""

from __future__ import annotations

from typing import Iterable

import phenopackets.schema.v2 as pps2

from phenospine.core.errors import MissingTermSourceError, TermNotFoundError
from phenospine.ontology.resource_references import ResourceRef
from phenospine.ontology.term_source import TermSource, curie_prefix


class TermResolver:
    """Ordered term sources of one domain (hpo, disease, unit, ...)."""

    def __init__(self, domain: str, sources: Iterable[TermSource] = ()):
        self._domain = domain
        self._sources: list[TermSource] = list(sources)

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def sources(self) -> list[TermSource]:
        return list(self._sources)

    @property
    def prefixes(self) -> list[str]:
        return [source.prefix for source in self._sources]

    def add_source(self, source: TermSource) -> None:
        self._sources.append(source)

    def is_empty(self) -> bool:
        return not self._sources

    def query(self, raw: str) -> tuple[pps2.OntologyClass, ResourceRef] | None:
        """First (term, resource) any source resolves ``raw`` to, or None."""
        prefix = curie_prefix(raw)
        for source in self._sources:
            if prefix is not None and prefix.lower() == source.prefix.lower():
                label = source.get_label(raw)
                if label is None:
                    continue
                term_id = source.get_id(label) or raw.strip()
            else:
                term_id = source.get_id(raw)
                if term_id is None:
                    continue
                label = source.get_label(term_id)
                if label is None:
                    continue
            return pps2.OntologyClass(id=term_id, label=label), source.reference()
        return None

    def resolve(self, raw: str) -> tuple[pps2.OntologyClass, ResourceRef]:
        """Like :meth:`query` but raising.

        Raises:
            MissingTermSourceError: the domain has no sources
            TermNotFoundError: no source resolves ``raw``
        """
        if not self._sources:
            raise MissingTermSourceError(self._domain)
        found = self.query(raw)
        if found is None:
            raise TermNotFoundError(self._domain, raw)
        return found

    def __repr__(self) -> str:
        return f"TermResolver(domain={self._domain!r}, prefixes={self.prefixes})"


__all__ = ["TermResolver"]
