"""
Ontology registries: turn a ResourceRef into a readable byte stream.

The registry is the only seam between phenospine and where ontology
files live. :class:`FileSystemOntologyRegistry` reads ``<prefix>.json``
(or ``<prefix>-<version>.json`` for pinned versions) from a directory;
:class:`InMemoryOntologyRegistry` serves preloaded documents for tests
and embedded use.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from phenospine.core.errors import ConfigError
from phenospine.ontology.resource_references import ResourceRef


class OntologyNotFoundError(ConfigError):
    """No ontology document is registered for a resource."""

    def __init__(self, ref: ResourceRef, location: str):
        self.ref = ref
        super().__init__(f"No ontology document for {ref} in {location}")


@runtime_checkable
class OntologyRegistry(Protocol):
    """Resolve an ontology reference to an obographs JSON byte stream."""

    def open(self, ref: ResourceRef) -> BinaryIO:
        ...


class FileSystemOntologyRegistry:
    """Ontology documents stored as files in one directory."""

    def __init__(self, root: str | Path):
        self._root = Path(root).expanduser()

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, ref: ResourceRef) -> Path:
        prefix = ref.prefix_id.lower()
        if not ref.is_latest:
            pinned = self._root / f"{prefix}-{ref.version}.json"
            if pinned.exists():
                return pinned
        return self._root / f"{prefix}.json"

    def open(self, ref: ResourceRef) -> BinaryIO:
        path = self.path_for(ref)
        if not path.exists():
            raise OntologyNotFoundError(ref, str(self._root))
        return path.open("rb")


class InMemoryOntologyRegistry:
    """Ontology documents held as bytes, keyed by lower-cased prefix."""

    def __init__(self, documents: dict[str, bytes] | None = None):
        self._documents = {k.lower(): v for k, v in (documents or {}).items()}

    def register(self, prefix: str, document: bytes) -> None:
        self._documents[prefix.lower()] = document

    def open(self, ref: ResourceRef) -> BinaryIO:
        document = self._documents.get(ref.prefix_id.lower())
        if document is None:
            raise OntologyNotFoundError(ref, "memory")
        return io.BytesIO(document)


__all__ = [
    "OntologyNotFoundError",
    "OntologyRegistry",
    "FileSystemOntologyRegistry",
    "InMemoryOntologyRegistry",
]
