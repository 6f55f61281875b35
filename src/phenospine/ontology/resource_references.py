"""
References to versioned ontology resources.

A :class:`ResourceRef` names an ontology (by its CURIE prefix) and a
version. ``"latest"`` means "whatever the registry currently serves".

Examples:
    >>> str(ResourceRef.hp())
    'HP:latest'
    >>> ResourceRef("mondo", "2024-01-03").same_as(ResourceRef("MONDO", "2024-01-03"))
    True
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

LATEST = "latest"


class KnownResourcePrefix(str, Enum):
    """Ontologies phenospine knows resource metadata for."""

    HP = "HP"
    MONDO = "MONDO"
    HGNC = "HGNC"
    LOINC = "LOINC"
    UO = "UO"
    OMIM = "OMIM"
    PATO = "PATO"
    UBERON = "UBERON"
    MAXO = "MAXO"
    NCIT = "NCIT"
    GENO = "GENO"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ResourceRef:
    """Prefix id plus version of an ontology resource."""

    prefix_id: str
    version: str = LATEST

    @property
    def is_latest(self) -> bool:
        return self.version == LATEST

    def with_version(self, version: str) -> ResourceRef:
        return replace(self, version=version)

    def with_latest(self) -> ResourceRef:
        return replace(self, version=LATEST)

    def same_as(self, other: ResourceRef) -> bool:
        """Case-insensitive comparison on prefix id and version."""
        return (
            self.prefix_id.lower() == other.prefix_id.lower()
            and self.version.lower() == other.version.lower()
        )

    def __str__(self) -> str:
        return f"{self.prefix_id}:{self.version}"

    # ── Known resources ──────────────────────────────────────────

    @classmethod
    def known(cls, prefix: KnownResourcePrefix | str, version: str = LATEST) -> ResourceRef:
        return cls(str(KnownResourcePrefix(str(prefix).upper())), version)

    @classmethod
    def hp(cls) -> ResourceRef:
        return cls.known(KnownResourcePrefix.HP)

    @classmethod
    def mondo(cls) -> ResourceRef:
        return cls.known(KnownResourcePrefix.MONDO)

    @classmethod
    def hgnc(cls) -> ResourceRef:
        return cls.known(KnownResourcePrefix.HGNC)

    @classmethod
    def loinc(cls) -> ResourceRef:
        return cls.known(KnownResourcePrefix.LOINC)

    @classmethod
    def uo(cls) -> ResourceRef:
        return cls.known(KnownResourcePrefix.UO)

    @classmethod
    def omim(cls) -> ResourceRef:
        return cls.known(KnownResourcePrefix.OMIM)

    @classmethod
    def pato(cls) -> ResourceRef:
        return cls.known(KnownResourcePrefix.PATO)

    @classmethod
    def uberon(cls) -> ResourceRef:
        return cls.known(KnownResourcePrefix.UBERON)

    @classmethod
    def maxo(cls) -> ResourceRef:
        return cls.known(KnownResourcePrefix.MAXO)

    @classmethod
    def ncit(cls) -> ResourceRef:
        return cls.known(KnownResourcePrefix.NCIT)

    @classmethod
    def geno(cls, version: str = LATEST) -> ResourceRef:
        return cls.known(KnownResourcePrefix.GENO, version)


__all__ = [
    "LATEST",
    "KnownResourcePrefix",
    "ResourceRef",
]
