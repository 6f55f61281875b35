"""Environment-driven settings for phenospine.

Every run needs cohort metadata (used to prefix phenopacket ids and stamp
``meta_data``), an output location and a directory where ontology files
live. ``PhenoSpineSettings`` reads them from ``PHENOSPINE_*`` environment
variables or a ``.env`` file; pipeline files may override the cohort
metadata per run.

Features:
    - **PhenoSpineSettings:** cohort name, created/submitted by, log level/format,
      output and ontology directories, GENO resource version
    - **get_settings():** cached instance, ``clear_settings_cache()`` for tests
    - **.env file support:** Automatic loading via pydantic-settings
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> import os
    >>> os.environ["PHENOSPINE_COHORT_NAME"] = "keio"
    >>> clear_settings_cache()
    >>> get_settings().cohort_name
    'keio'

Tags:
    settings, configuration, pydantic, environment, phenospine
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PhenoSpineSettings(BaseSettings):
    """Settings shared by the pipeline, the CLI and the entity builder.

    Fields
    ──────
    cohort_name   : Prefix for generated phenopacket ids
    created_by    : Stamped into meta_data.created_by
    submitted_by  : Stamped into meta_data.submitted_by
    log_level     : Structlog log level
    log_format    : "console" or "json"
    output_dir    : Where the file-system loader writes phenopackets
    ontology_dir  : Root of the file-system ontology registry
    geno_version  : Version recorded for the GENO resource
    """

    model_config = SettingsConfigDict(
        env_prefix="PHENOSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Cohort metadata ──────────────────────────────────────────
    cohort_name: str = "cohort"
    created_by: str = "phenospine"
    submitted_by: str = "phenospine"

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "console"

    # ── Storage ──────────────────────────────────────────────────
    output_dir: Path = Field(
        default_factory=lambda: Path("phenopackets"),
        description="Directory the file-system loader writes to",
    )
    ontology_dir: Path = Field(
        default_factory=lambda: Path.home() / ".phenospine" / "ontologies",
        description="Directory holding <prefix>.json obographs files",
    )

    # ── Resources ────────────────────────────────────────────────
    geno_version: str = "2025-07-25"


_settings_cache: dict[str, PhenoSpineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> PhenoSpineSettings:
    """Load, validate, and cache a :class:`PhenoSpineSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = PhenoSpineSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "PhenoSpineSettings",
    "get_settings",
    "clear_settings_cache",
]
