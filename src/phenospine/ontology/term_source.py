"""
Term sources: bidirectional label/id lookups for one ontology.

A term source answers four questions about its ontology: what does this
label-or-id map to (``get``), what is the label of this id
(``get_label``), what is the id of this label or synonym (``get_id``),
and which resource am I (``reference``). Not found is signalled by
``None``; callers decide whether that is an error.

Architecture:
    ::

        TermSource (protocol)
            ├── OntologyBiDict      in-memory dictionaries (mappings or hpotk)
            └── CachedTermSource    memoising wrapper around any source

Lookups are case-insensitive and ignore surrounding whitespace. ``get``
tries primary labels first, then synonyms, then ids.

Examples:
    >>> hpo = OntologyBiDict.from_mappings(
    ...     ResourceRef("HP", "2025-01-16"),
    ...     {"HP:0041249": "Fractured nose"},
    ...     synonyms={"HP:0041249": ["Nasal bone fracture"]},
    ... )
    >>> hpo.get("fractured nose")
    'HP:0041249'
    >>> hpo.get("HP:0041249")
    'Fractured nose'

Tags:
    term-source, bidict, ontology, hpotk, phenospine
"""

from __future__ import annotations

import io
from typing import IO, Iterable, Mapping, Protocol, runtime_checkable

import hpotk

from phenospine.core.logging import get_logger
from phenospine.ontology.resource_references import LATEST, ResourceRef

logger = get_logger(__name__)


def _normalize_key(key: str) -> str:
    return key.strip().lower()


def curie_prefix(value: str) -> str | None:
    """Prefix of a ``prefix:reference`` CURIE, or None when ``value`` is not one."""
    prefix, sep, reference = value.strip().partition(":")
    if not sep or not prefix or not reference or " " in prefix:
        return None
    return prefix


@runtime_checkable
class TermSource(Protocol):
    """Resolution contract of a single ontology."""

    @property
    def prefix(self) -> str:
        """CURIE prefix of the ids this source issues."""
        ...

    def get(self, query: str) -> str | None:
        """Label for an id, or id for a label or synonym."""
        ...

    def get_label(self, term_id: str) -> str | None:
        ...

    def get_id(self, label: str) -> str | None:
        ...

    def reference(self) -> ResourceRef:
        ...


class OntologyBiDict:
    """In-memory label/synonym/id dictionaries for one ontology."""

    def __init__(
        self,
        ontology: ResourceRef,
        label_to_id: Mapping[str, str],
        synonym_to_id: Mapping[str, str],
        id_to_label: Mapping[str, str],
    ):
        self._ontology = ontology
        self._label_to_id = {_normalize_key(k): v for k, v in label_to_id.items()}
        self._synonym_to_id = {_normalize_key(k): v for k, v in synonym_to_id.items()}
        self._id_to_label = {_normalize_key(k): v for k, v in id_to_label.items()}

    @classmethod
    def from_mappings(
        cls,
        ontology: ResourceRef,
        terms: Mapping[str, str],
        *,
        synonyms: Mapping[str, Iterable[str]] | None = None,
    ) -> OntologyBiDict:
        """Build from ``{id: label}`` plus optional ``{id: [synonym, ...]}``."""
        synonym_to_id: dict[str, str] = {}
        for term_id, names in (synonyms or {}).items():
            for name in names:
                synonym_to_id[name] = term_id
        return cls(
            ontology,
            label_to_id={label: term_id for term_id, label in terms.items()},
            synonym_to_id=synonym_to_id,
            id_to_label=dict(terms),
        )

    @classmethod
    def from_ontology(cls, ontology: hpotk.MinimalOntology, prefix: str) -> OntologyBiDict:
        """Current terms of ``prefix`` from a loaded hpotk ontology."""
        label_to_id: dict[str, str] = {}
        synonym_to_id: dict[str, str] = {}
        id_to_label: dict[str, str] = {}
        wanted = prefix.lower()

        for term in ontology.terms:
            if not term.is_current or term.identifier.prefix.lower() != wanted:
                continue
            term_id = term.identifier.value
            label_to_id[term.name] = term_id
            for synonym in term.synonyms or ():
                synonym_to_id[synonym.name] = term_id
            id_to_label[term_id] = term.name

        version = ontology.version or LATEST
        logger.debug("bidict_built", prefix=prefix, version=version, terms=len(id_to_label))
        return cls(ResourceRef(prefix, version), label_to_id, synonym_to_id, id_to_label)

    @classmethod
    def from_obographs(cls, stream: IO[bytes], prefix: str) -> OntologyBiDict:
        """Load an obographs JSON document with hpotk and index it."""
        text = io.TextIOWrapper(stream, encoding="utf-8")
        ontology = hpotk.load_ontology(text, prefixes_of_interest={prefix})
        return cls.from_ontology(ontology, prefix)

    @property
    def prefix(self) -> str:
        return self._ontology.prefix_id

    def reference(self) -> ResourceRef:
        return self._ontology

    def get(self, query: str) -> str | None:
        key = _normalize_key(query)
        return (
            self._label_to_id.get(key)
            or self._synonym_to_id.get(key)
            or self._id_to_label.get(key)
        )

    def get_label(self, term_id: str) -> str | None:
        return self._id_to_label.get(_normalize_key(term_id))

    def get_id(self, label: str) -> str | None:
        key = _normalize_key(label)
        return self._label_to_id.get(key) or self._synonym_to_id.get(key)

    def is_primary_label(self, value: str) -> bool:
        return _normalize_key(value) in self._label_to_id

    def __len__(self) -> int:
        return len(self._id_to_label)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OntologyBiDict):
            return NotImplemented
        return (
            self._ontology == other._ontology
            and self._label_to_id == other._label_to_id
            and self._synonym_to_id == other._synonym_to_id
            and self._id_to_label == other._id_to_label
        )

    def __repr__(self) -> str:
        return f"OntologyBiDict(ontology={self._ontology}, terms={len(self)})"


_MISS = object()


class CachedTermSource:
    """Append-only memo in front of another term source (misses included)."""

    def __init__(self, inner: TermSource):
        self._inner = inner
        self._cache: dict[tuple[str, str], object] = {}

    @property
    def prefix(self) -> str:
        return self._inner.prefix

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def reference(self) -> ResourceRef:
        return self._inner.reference()

    def _lookup(self, method: str, query: str) -> str | None:
        key = (method, query)
        cached = self._cache.get(key, _MISS)
        if cached is _MISS:
            cached = getattr(self._inner, method)(query)
            self._cache[key] = cached
        return cached  # type: ignore[return-value]

    def get(self, query: str) -> str | None:
        return self._lookup("get", query)

    def get_label(self, term_id: str) -> str | None:
        return self._lookup("get_label", term_id)

    def get_id(self, label: str) -> str | None:
        return self._lookup("get_id", label)


__all__ = [
    "curie_prefix",
    "TermSource",
    "OntologyBiDict",
    "CachedTermSource",
]
