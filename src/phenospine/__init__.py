"""
phenospine: compile semantically annotated clinical tables into GA4GH phenopackets.

Packages:
    - ``phenospine.core``: errors, logging, settings
    - ``phenospine.config``: semantic tags, table descriptors, pipeline config
    - ``phenospine.extract``: contextualized tables and file sources
    - ``phenospine.ontology``: term sources, registries, resources, gene/variant collaborators
    - ``phenospine.transform``: term resolution, the phenopacket builder, strategies, collectors
    - ``phenospine.load``: writing phenopackets
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
