"""Pydantic models for pipeline YAML/JSON configuration.

Usage::

    from phenospine.config.pipeline_config import PipelineSpec

    spec = PipelineSpec.from_file("cohort.yaml")
    tables = [source.to_table_context() for source in spec.data_sources]

Example YAML::

    meta_data:
      cohort_name: kif21a
      created_by: curation-team
    data_sources:
      - path: patients.csv
        table:
          name: patients
          context:
            - identifier: patient_id
              data_context: subject_id
            - identifier: sex
              data_context: subject_sex
              alias_map: {hash_map: {M: MALE, F: FEMALE}}
            - identifier: "^phenotype_.*$"
              data_context: hpo_label_or_id
              building_block_id: pheno
            - identifier: onset
              data_context: {onset: age}
              building_block_id: pheno
    strategies: [alias_map, fill_missing]
    ontologies:
      hpo: {path: hp.json, prefix: HP}
      unit: {prefix: UO, version: "2024-01-01", terms: {"UO:0000009": kilogram}}
    genes: {KIF21A: "HGNC:19349"}
    output: {dir: out}

Manifesto:
    A cohort is described once, declaratively. Every descriptor, tag and
    ontology source is checked when the file is parsed so that a bad
    config fails before any data is read.

Tags:
    config, yaml, pydantic, declarative, phenospine
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from phenospine.config.context import Context
from phenospine.config.table_context import (
    AliasMap,
    Identifier,
    OutputDataType,
    SeriesContext,
    TableContext,
)
from phenospine.core.errors import ConfigError
from phenospine.ontology.factory import OntologyFactory
from phenospine.ontology.genomics import StaticGeneResolver, StaticVariantValidator
from phenospine.ontology.resource_references import LATEST, ResourceRef
from phenospine.ontology.term_source import OntologyBiDict
from phenospine.transform.entity_builder import TERM_DOMAINS
from phenospine.transform.strategies import list_strategies


class MetaDataSpec(BaseModel):
    """Cohort metadata; unset fields fall back to settings."""

    model_config = ConfigDict(extra="forbid")

    cohort_name: str | None = Field(default=None, min_length=1)
    created_by: str | None = None
    submitted_by: str | None = None


class AliasMapSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    hash_map: dict[str, str | None] = Field(default_factory=dict)
    output_dtype: str = "string"

    @field_validator("output_dtype")
    @classmethod
    def validate_output_dtype(cls, v: str) -> str:
        OutputDataType.from_config(v)
        return v

    def to_alias_map(self) -> AliasMap:
        return AliasMap(
            hash_map=dict(self.hash_map),
            output_dtype=OutputDataType.from_config(self.output_dtype),
        )


class SeriesContextSpec(BaseModel):
    """One column descriptor."""

    model_config = ConfigDict(extra="forbid")

    identifier: str | list[str]
    header_context: Any = None
    data_context: Any = None
    building_block_id: str | None = None
    fill_missing: str | int | float | bool | None = None
    alias_map: AliasMapSpec | None = None

    @field_validator("header_context", "data_context")
    @classmethod
    def validate_context(cls, v: Any) -> Any:
        Context.from_config(v)
        return v

    def to_series_context(self) -> SeriesContext:
        return SeriesContext(
            identifier=Identifier.from_config(self.identifier),
            header_context=Context.from_config(self.header_context),
            data_context=Context.from_config(self.data_context),
            fill_missing=self.fill_missing,
            alias_map=self.alias_map.to_alias_map() if self.alias_map else None,
            building_block_id=self.building_block_id,
        )


class TableSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    context: list[SeriesContextSpec] = Field(default_factory=list)

    def to_table_context(self) -> TableContext:
        return TableContext(self.name, [sc.to_series_context() for sc in self.context])


class DataSourceSpec(BaseModel):
    """A tabular file plus the descriptors of its columns."""

    model_config = ConfigDict(extra="forbid")

    path: Path
    format: str | None = None
    separator: str | None = None
    table: TableSpec

    def to_table_context(self) -> TableContext:
        return self.table.to_table_context()


class OntologySourceSpec(BaseModel):
    """
    One term source of a domain.

    ``path`` loads an obographs JSON file; ``terms`` (with optional
    ``synonyms``) defines the dictionary inline; neither means "ask the
    ontology registry for ``prefix``/``version``".
    """

    model_config = ConfigDict(extra="forbid")

    prefix: str = Field(..., min_length=1)
    version: str = LATEST
    path: Path | None = None
    terms: dict[str, str] | None = None
    synonyms: dict[str, list[str]] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_source(self) -> OntologySourceSpec:
        if self.path is not None and self.terms is not None:
            raise ValueError(f"Ontology source {self.prefix} takes either path or terms, not both")
        if self.synonyms and self.terms is None:
            raise ValueError(f"Ontology source {self.prefix} declares synonyms without terms")
        return self

    @property
    def ref(self) -> ResourceRef:
        return ResourceRef(self.prefix, self.version)

    def to_term_source(self, factory: OntologyFactory, base_dir: Path | None = None) -> OntologyBiDict:
        if self.terms is not None:
            return OntologyBiDict.from_mappings(self.ref, self.terms, synonyms=self.synonyms)
        if self.path is not None:
            path = self.path if self.path.is_absolute() or base_dir is None else base_dir / self.path
            if not path.exists():
                raise ConfigError(f"Ontology file not found: {path}").with_context(
                    source_name=str(path)
                )
            with path.open("rb") as stream:
                return OntologyBiDict.from_obographs(stream, self.prefix)
        return factory.build_bidict(self.ref)


class OutputSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    dir: Path | None = None
    create_dir: bool = True


class PipelineSpec(BaseModel):
    """Root of a pipeline configuration file."""

    model_config = ConfigDict(extra="forbid")

    meta_data: MetaDataSpec = Field(default_factory=MetaDataSpec)
    data_sources: list[DataSourceSpec] = Field(..., min_length=1)
    strategies: list[str] = Field(default_factory=list)
    ontologies: dict[str, list[OntologySourceSpec]] = Field(default_factory=dict)
    genes: dict[str, str] = Field(default_factory=dict)
    variants: dict[str, dict[str, Any]] = Field(default_factory=dict)
    output: OutputSpec = Field(default_factory=OutputSpec)

    @field_validator("ontologies", mode="before")
    @classmethod
    def normalize_ontologies(cls, v: Any) -> Any:
        """A single source per domain may be given without a list."""
        if not isinstance(v, dict):
            return v
        return {domain: sources if isinstance(sources, list) else [sources] for domain, sources in v.items()}

    @field_validator("ontologies")
    @classmethod
    def validate_domains(cls, v: dict[str, list[OntologySourceSpec]]) -> dict[str, list[OntologySourceSpec]]:
        unknown = set(v) - set(TERM_DOMAINS)
        if unknown:
            raise ValueError(f"Unknown ontology domains: {sorted(unknown)}. Known: {list(TERM_DOMAINS)}")
        return v

    @field_validator("strategies")
    @classmethod
    def validate_strategies(cls, v: list[str]) -> list[str]:
        unknown = [name for name in v if name not in list_strategies()]
        if unknown:
            raise ValueError(f"Unknown strategies: {unknown}. Available: {list_strategies()}")
        return v

    @field_validator("data_sources")
    @classmethod
    def validate_unique_table_names(cls, v: list[DataSourceSpec]) -> list[DataSourceSpec]:
        names = [source.table.name for source in v]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate table names: {duplicates}")
        return v

    # ── Collaborators ────────────────────────────────────────────

    def gene_resolver(self) -> StaticGeneResolver:
        return StaticGeneResolver(self.genes)

    def variant_validator(self) -> StaticVariantValidator:
        return StaticVariantValidator.from_config(self.variants)

    # ── Loading ──────────────────────────────────────────────────

    @classmethod
    def from_yaml(cls, yaml_content: str) -> PipelineSpec:
        """Parse and validate YAML content.

        Raises:
            ConfigError: the content is not valid YAML
            pydantic.ValidationError: the content does not match the schema
        """
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}", cause=e) from e
        return cls.model_validate(data)

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> PipelineSpec:
        content = Path(path).read_text(encoding="utf-8")
        return cls.from_yaml(content)

    @classmethod
    def from_json(cls, json_content: str) -> PipelineSpec:
        try:
            data = json.loads(json_content)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON: {e}", cause=e) from e
        return cls.model_validate(data)

    @classmethod
    def from_file(cls, path: str | Path) -> PipelineSpec:
        """Load YAML or JSON, chosen by the file suffix."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}").with_context(source_name=str(path))
        match path.suffix.lower():
            case ".yaml" | ".yml":
                return cls.from_yaml_file(path)
            case ".json":
                return cls.from_json(path.read_text(encoding="utf-8"))
            case _:
                raise ConfigError(
                    f"Unsupported config format {path.suffix!r}; expected .yaml, .yml or .json"
                ).with_context(source_name=str(path))


__all__ = [
    "MetaDataSpec",
    "AliasMapSpec",
    "SeriesContextSpec",
    "TableSpec",
    "DataSourceSpec",
    "OntologySourceSpec",
    "OutputSpec",
    "PipelineSpec",
]
