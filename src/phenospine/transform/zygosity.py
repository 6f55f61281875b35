"""
Zygosity decision table.

Given the subject's chromosomal sex, the number of alleles a variant is
reported on, and whether the variant sits on X or Y, decide the allelic
state:

==========  ======================  ==============  ===============
chromosome  copies of that          1 allele        2 alleles
            chromosome
==========  ======================  ==============  ===============
autosome    any                     heterozygous    homozygous
X or Y      unknown sex             unspecified     homozygous
X or Y      0                       contradictory   contradictory
X or Y      1                       hemizygous      contradictory
X or Y      2 or more               heterozygous    homozygous
==========  ======================  ==============  ===============

An allele count outside {1, 2}, or a variant flagged both X- and
Y-linked, is contradictory.

Examples:
    >>> decide_zygosity(ChromosomalSex.parse("MALE"), 1, is_x=True, is_y=False)
    <Zygosity.HEMIZYGOUS: 'hemizygous'>
    >>> decide_zygosity(ChromosomalSex.parse(None), 2, is_x=False, is_y=False)
    <Zygosity.HOMOZYGOUS: 'homozygous'>
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import phenopackets.schema.v2 as pps2

from phenospine.core.errors import ContradictoryAllelicDataError, ParsingError

_UNKNOWN_SEX_NAMES = frozenset({"UNKNOWN_SEX", "OTHER_SEX", "UNKNOWN_KARYOTYPE", "OTHER_KARYOTYPE"})
_KARYOTYPES = frozenset({"XX", "XY", "XO", "XXY", "XXX", "XXYY", "XXXY", "XXXX", "XYY"})


class Zygosity(str, Enum):
    HOMOZYGOUS = "homozygous"
    HETEROZYGOUS = "heterozygous"
    HEMIZYGOUS = "hemizygous"
    UNSPECIFIED = "unspecified zygosity"

    @property
    def geno_id(self) -> str:
        return _GENO_IDS[self]

    def to_ontology_class(self) -> pps2.OntologyClass:
        return pps2.OntologyClass(id=self.geno_id, label=self.value)


_GENO_IDS = {
    Zygosity.HOMOZYGOUS: "GENO:0000136",
    Zygosity.HETEROZYGOUS: "GENO:0000135",
    Zygosity.HEMIZYGOUS: "GENO:0000134",
    Zygosity.UNSPECIFIED: "GENO:0000137",
}


@dataclass(frozen=True)
class ChromosomalSex:
    """Sex-chromosome copy numbers; both None when unknown."""

    x_copies: int | None = None
    y_copies: int | None = None
    label: str = "UNKNOWN"

    @property
    def is_known(self) -> bool:
        return self.x_copies is not None

    @classmethod
    def unknown(cls) -> ChromosomalSex:
        return cls()

    @classmethod
    def parse(cls, value: str | None) -> ChromosomalSex:
        """From a ``Sex`` or ``KaryotypicSex`` name (any case) or None.

        Raises:
            ParsingError: the name is neither
        """
        if value is None:
            return cls.unknown()
        name = value.strip().upper()
        if name in _UNKNOWN_SEX_NAMES:
            return cls(label=name)
        if name == "MALE":
            return cls(1, 1, name)
        if name == "FEMALE":
            return cls(2, 0, name)
        if name in _KARYOTYPES:
            return cls(name.count("X"), name.count("Y"), name)
        raise ParsingError("ChromosomalSex", value)

    def __str__(self) -> str:
        return self.label


def decide_zygosity(
    sex: ChromosomalSex,
    allele_count: int,
    *,
    is_x: bool,
    is_y: bool,
    chromosome: str | None = None,
) -> Zygosity:
    """Apply the decision table.

    Raises:
        ContradictoryAllelicDataError: incoherent inputs
    """
    chrom = chromosome or ("X" if is_x else "Y" if is_y else "autosome")

    if allele_count not in (1, 2) or (is_x and is_y):
        raise ContradictoryAllelicDataError(allele_count, chrom, str(sex))

    if not is_x and not is_y:
        return Zygosity.HOMOZYGOUS if allele_count == 2 else Zygosity.HETEROZYGOUS

    if not sex.is_known:
        return Zygosity.HOMOZYGOUS if allele_count == 2 else Zygosity.UNSPECIFIED

    copies = sex.x_copies if is_x else sex.y_copies
    assert copies is not None
    if copies == 0:
        raise ContradictoryAllelicDataError(allele_count, chrom, str(sex))
    if copies == 1:
        if allele_count == 2:
            raise ContradictoryAllelicDataError(allele_count, chrom, str(sex))
        return Zygosity.HEMIZYGOUS
    return Zygosity.HOMOZYGOUS if allele_count == 2 else Zygosity.HETEROZYGOUS


__all__ = [
    "Zygosity",
    "ChromosomalSex",
    "decide_zygosity",
]
