"""
End-to-end pipeline: extract, normalise, collect, load.

Manifesto:
    - **One pass:** Sources are read, strategies applied, patients
      collected and phenopackets written in a single sequential run
    - **Wired from config:** :meth:`Pipeline.from_spec` turns a
      :class:`PipelineSpec` plus settings into live collaborators
    - **All or nothing:** Any error aborts the run before anything is written

Architecture:
    ::

        PipelineSpec ──from_spec──▶ Pipeline
                                      │
            FileDataSource.extract() ─┤  tables
            Strategy.transform()     ─┤  (in place)
            CollectorBroker.process()─┤  phenopackets
            FileSystemLoader.load()  ─┘  <out>/<id>.json

Examples:
    >>> spec = PipelineSpec.from_file("cohort.yaml")
    >>> pipeline = Pipeline.from_spec(spec, base_dir=Path("cohort.yaml").parent)
    >>> phenopackets = pipeline.run()

Tags:
    pipeline, orchestration, etl, phenospine
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import phenopackets.schema.v2 as pps2

from phenospine.config.pipeline_config import PipelineSpec
from phenospine.core.logging import get_logger
from phenospine.core.settings import PhenoSpineSettings, get_settings
from phenospine.extract.contextualized_table import ContextualizedTable
from phenospine.extract.data_source import FileDataSource
from phenospine.load.file_system_loader import FileSystemLoader
from phenospine.ontology.factory import OntologyFactory
from phenospine.ontology.registry import FileSystemOntologyRegistry
from phenospine.transform.collecting.broker import CollectorBroker
from phenospine.transform.entity_builder import BuilderMetaData, PhenopacketBuilder
from phenospine.transform.strategies import Strategy, get_strategy
from phenospine.transform.term_resolver import TermResolver

logger = get_logger(__name__)


class Pipeline:
    """Sources, strategies, broker and loader of one run."""

    def __init__(
        self,
        sources: Sequence[FileDataSource],
        strategies: Sequence[Strategy],
        broker: CollectorBroker,
        loader: FileSystemLoader | None = None,
    ):
        self._sources = list(sources)
        self._strategies = list(strategies)
        self._broker = broker
        self._loader = loader

    @classmethod
    def from_spec(
        cls,
        spec: PipelineSpec,
        settings: PhenoSpineSettings | None = None,
        ontology_factory: OntologyFactory | None = None,
        *,
        base_dir: Path | None = None,
        out_dir: Path | None = None,
    ) -> Pipeline:
        """Wire a pipeline from a parsed config.

        Relative source and ontology paths are resolved against ``base_dir``.
        ``out_dir`` overrides the config's output directory, which in turn
        overrides ``settings.output_dir``.
        """
        settings = settings or get_settings()
        factory = ontology_factory or OntologyFactory(FileSystemOntologyRegistry(settings.ontology_dir))

        def resolve_path(path: Path) -> Path:
            return path if path.is_absolute() or base_dir is None else base_dir / path

        sources = [
            FileDataSource(
                resolve_path(source.path),
                source.to_table_context(),
                format=source.format,
                separator=source.separator,
            )
            for source in spec.data_sources
        ]

        term_resolvers = {
            domain: TermResolver(
                domain, [source.to_term_source(factory, base_dir) for source in sources_of_domain]
            )
            for domain, sources_of_domain in spec.ontologies.items()
        }
        meta = spec.meta_data
        builder = PhenopacketBuilder(
            BuilderMetaData(
                cohort_name=meta.cohort_name or settings.cohort_name,
                created_by=meta.created_by or settings.created_by,
                submitted_by=meta.submitted_by or settings.submitted_by,
            ),
            term_resolvers,
            gene_resolver=spec.gene_resolver(),
            variant_validator=spec.variant_validator(),
            geno_version=settings.geno_version,
        )

        output_dir = out_dir or (resolve_path(spec.output.dir) if spec.output.dir else settings.output_dir)
        loader = FileSystemLoader(output_dir, create_dir=spec.output.create_dir)

        return cls(
            sources,
            [get_strategy(name, term_resolvers=term_resolvers) for name in spec.strategies],
            CollectorBroker.with_default_collectors(builder),
            loader,
        )

    @property
    def broker(self) -> CollectorBroker:
        return self._broker

    @property
    def loader(self) -> FileSystemLoader | None:
        return self._loader

    def extract(self) -> list[ContextualizedTable]:
        tables = []
        for source in self._sources:
            tables.append(source.extract())
        logger.info("extract_finished", tables=len(tables))
        return tables

    def normalise(self, tables: Sequence[ContextualizedTable]) -> None:
        for strategy in self._strategies:
            strategy.transform(tables)
        logger.info("normalise_finished", strategies=[s.name for s in self._strategies])

    def run(self) -> list[pps2.Phenopacket]:
        """Run every stage and return the built phenopackets."""
        logger.info("pipeline_started", sources=len(self._sources))
        tables = self.extract()
        self.normalise(tables)
        phenopackets = self._broker.process(tables)
        if self._loader is not None:
            self._loader.load(phenopackets)
        logger.info("pipeline_finished", phenopackets=len(phenopackets))
        return phenopackets


__all__ = ["Pipeline"]
