"""
Gene and variant collaborators.

Interpretation building needs two answers from the outside world: the
canonical ``(symbol, HGNC id)`` of a gene named in a table, and a
validated, fully described variant for an HGVS expression. Both are
protocols; the static implementations answer from preloaded data (the
pipeline file's ``genes`` and ``variants`` sections, or test fixtures).

Examples:
    >>> genes = StaticGeneResolver({"KIF21A": "HGNC:19349"})
    >>> genes.resolve_gene("hgnc:19349")
    ('KIF21A', 'HGNC:19349')
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Protocol, runtime_checkable

from phenospine.core.errors import GeneMismatchError, ResolutionError, VariantValidationError

_X_CHROMOSOMES = frozenset({"x", "chrx", "23"})
_Y_CHROMOSOMES = frozenset({"y", "chry", "24"})


@dataclass(frozen=True)
class HgvsVariant:
    """A validated HGVS variant with genomic coordinates."""

    assembly: str
    chromosome: str
    position: int
    ref_allele: str
    alt_allele: str
    symbol: str
    hgnc_id: str
    transcript: str
    hgvs: str
    g_hgvs: str
    p_hgvs: str | None = None

    @property
    def variant_key(self) -> str:
        """Stable identifier of the variant, usable as a descriptor id."""
        return re.sub(r"[^A-Za-z0-9]", "_", f"{self.hgvs}_{self.symbol}_{self.transcript}")

    @property
    def c_hgvs(self) -> str:
        return f"{self.transcript}:{self.hgvs}"

    @property
    def is_x_chromosomal(self) -> bool:
        return self.chromosome.strip().lower() in _X_CHROMOSOMES

    @property
    def is_y_chromosomal(self) -> bool:
        return self.chromosome.strip().lower() in _Y_CHROMOSOMES

    def validate_against_gene(self, gene: str) -> None:
        """Check that ``gene`` (symbol or HGNC id) names this variant's gene.

        Raises:
            GeneMismatchError: the gene differs
        """
        wanted = gene.strip().lower()
        if wanted not in (self.symbol.lower(), self.hgnc_id.lower()):
            raise GeneMismatchError(gene, [self.symbol, self.hgnc_id], self.c_hgvs)

    @classmethod
    def from_config(cls, expression: str, data: Mapping[str, Any]) -> HgvsVariant:
        transcript, hgvs = split_hgvs(expression)
        return cls(
            assembly=str(data.get("assembly", "hg38")),
            chromosome=str(data["chromosome"]),
            position=int(data["position"]),
            ref_allele=str(data["ref"]),
            alt_allele=str(data["alt"]),
            symbol=str(data["gene_symbol"]),
            hgnc_id=str(data["hgnc_id"]),
            transcript=str(data.get("transcript") or transcript),
            hgvs=str(data.get("hgvs") or hgvs),
            g_hgvs=str(data["g_hgvs"]),
            p_hgvs=data.get("p_hgvs"),
        )


def split_hgvs(expression: str) -> tuple[str, str]:
    """``NM_001173464.1:c.2860C>T`` -> (transcript, allele).

    Raises:
        VariantValidationError: not of the form ``transcript:allele``
    """
    transcript, sep, allele = expression.strip().partition(":")
    if not sep or not transcript or not allele:
        raise VariantValidationError(expression, "expected transcript:allele")
    return transcript, allele


@runtime_checkable
class GeneResolver(Protocol):
    def resolve_gene(self, symbol_or_id: str) -> tuple[str, str]:
        """Return ``(symbol, hgnc_id)``."""
        ...


@runtime_checkable
class VariantValidator(Protocol):
    def validate(self, expression: str) -> HgvsVariant:
        ...


class StaticGeneResolver:
    """Gene symbols and HGNC ids from a ``{symbol: hgnc_id}`` mapping."""

    def __init__(self, genes: Mapping[str, str] | None = None):
        self._by_symbol: dict[str, tuple[str, str]] = {}
        self._by_id: dict[str, tuple[str, str]] = {}
        for symbol, hgnc_id in (genes or {}).items():
            self.add(symbol, hgnc_id)

    def add(self, symbol: str, hgnc_id: str) -> None:
        pair = (symbol, hgnc_id)
        self._by_symbol[symbol.lower()] = pair
        self._by_id[hgnc_id.lower()] = pair

    def resolve_gene(self, symbol_or_id: str) -> tuple[str, str]:
        key = symbol_or_id.strip().lower()
        pair = self._by_symbol.get(key) or self._by_id.get(key)
        if pair is None:
            raise ResolutionError(
                f"No (gene_symbol, hgnc_id) pair found via HGNC for gene {symbol_or_id}."
            )
        return pair


class StaticVariantValidator:
    """Validated variants keyed by their ``transcript:allele`` expression."""

    def __init__(self, variants: Mapping[str, HgvsVariant] | None = None):
        self._variants = {k.strip(): v for k, v in (variants or {}).items()}

    @classmethod
    def from_config(cls, variants: Mapping[str, Mapping[str, Any]]) -> StaticVariantValidator:
        return cls({expr: HgvsVariant.from_config(expr, data) for expr, data in variants.items()})

    def add(self, expression: str, variant: HgvsVariant) -> None:
        self._variants[expression.strip()] = variant

    def validate(self, expression: str) -> HgvsVariant:
        split_hgvs(expression)
        variant = self._variants.get(expression.strip())
        if variant is None:
            raise VariantValidationError(expression, "unknown variant")
        return variant


__all__ = [
    "HgvsVariant",
    "split_hgvs",
    "GeneResolver",
    "VariantValidator",
    "StaticGeneResolver",
    "StaticVariantValidator",
]
