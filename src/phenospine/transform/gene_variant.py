"""
Gene and variant data found on one row of an interpretation building block.

:meth:`PathogenicGeneVariantData.from_genes_and_variants` applies the
cardinality rule:

====================  ====================  ==================================
genes                 variants              result
====================  ====================  ==================================
0                     0                     NONE (row skipped)
1                     0                     CAUSATIVE_GENE
0 or 1                1                     HETEROZYGOUS_VARIANT
0 or 1                2 identical           HOMOZYGOUS_VARIANT
0 or 1                2 distinct            COMPOUND_HETEROZYGOUS_VARIANT_PAIR
anything else                               InvalidGeneVariantCountError
====================  ====================  ==================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from phenospine.core.errors import InvalidGeneVariantCountError


class GeneVariantKind(str, Enum):
    NONE = "none"
    CAUSATIVE_GENE = "causative_gene"
    HETEROZYGOUS_VARIANT = "heterozygous_variant"
    HOMOZYGOUS_VARIANT = "homozygous_variant"
    COMPOUND_HETEROZYGOUS_VARIANT_PAIR = "compound_heterozygous_variant_pair"


_ALLELE_COUNTS = {
    GeneVariantKind.NONE: 0,
    GeneVariantKind.CAUSATIVE_GENE: 0,
    GeneVariantKind.HETEROZYGOUS_VARIANT: 1,
    GeneVariantKind.HOMOZYGOUS_VARIANT: 2,
    GeneVariantKind.COMPOUND_HETEROZYGOUS_VARIANT_PAIR: 1,
}


@dataclass(frozen=True)
class PathogenicGeneVariantData:
    kind: GeneVariantKind = GeneVariantKind.NONE
    gene: str | None = None
    variants: tuple[str, ...] = ()

    @classmethod
    def from_genes_and_variants(
        cls,
        genes: Sequence[str],
        variants: Sequence[str],
    ) -> PathogenicGeneVariantData:
        n_genes, n_variants = len(genes), len(variants)
        gene = genes[0] if genes else None

        if n_genes > 1 or n_variants > 2:
            raise InvalidGeneVariantCountError(n_genes, n_variants)
        if n_variants == 0:
            if gene is None:
                return cls()
            return cls(GeneVariantKind.CAUSATIVE_GENE, gene)
        if n_variants == 1:
            return cls(GeneVariantKind.HETEROZYGOUS_VARIANT, gene, (variants[0],))
        if variants[0] == variants[1]:
            return cls(GeneVariantKind.HOMOZYGOUS_VARIANT, gene, (variants[0],))
        return cls(
            GeneVariantKind.COMPOUND_HETEROZYGOUS_VARIANT_PAIR,
            gene,
            (variants[0], variants[1]),
        )

    @property
    def is_empty(self) -> bool:
        return self.kind is GeneVariantKind.NONE

    @property
    def allele_count(self) -> int:
        """Alleles carried per listed variant."""
        return _ALLELE_COUNTS[self.kind]


__all__ = [
    "GeneVariantKind",
    "PathogenicGeneVariantData",
]
