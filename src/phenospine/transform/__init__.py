"""Transformation: parsing, term resolution, the phenopacket builder, strategies and collectors."""

from phenospine.transform.collecting import CollectorBroker, get_collector, register_collector
from phenospine.transform.entity_builder import BuilderMetaData, PhenopacketBuilder
from phenospine.transform.gene_variant import GeneVariantKind, PathogenicGeneVariantData
from phenospine.transform.strategies import Strategy, get_strategy, register_strategy
from phenospine.transform.term_resolver import TermResolver
from phenospine.transform.zygosity import ChromosomalSex, Zygosity, decide_zygosity

__all__ = [
    "BuilderMetaData",
    "ChromosomalSex",
    "CollectorBroker",
    "GeneVariantKind",
    "PathogenicGeneVariantData",
    "PhenopacketBuilder",
    "Strategy",
    "TermResolver",
    "Zygosity",
    "decide_zygosity",
    "get_collector",
    "get_strategy",
    "register_collector",
    "register_strategy",
]
