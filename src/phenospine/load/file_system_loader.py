"""Write phenopackets as pretty-printed JSON files, one per phenopacket."""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path

import phenopackets.schema.v2 as pps2
from google.protobuf import json_format

from phenospine.core.errors import LoadError
from phenospine.core.logging import get_logger

logger = get_logger(__name__)


def phenopacket_to_dict(phenopacket: pps2.Phenopacket) -> dict:
    """camelCase JSON mapping; fields at their default value (e.g. a survival time of 0) are left out."""
    return json_format.MessageToDict(phenopacket)


class FileSystemLoader:
    """Writes ``<out_path>/<phenopacket id>.json``."""

    def __init__(self, out_path: str | Path, create_dir: bool = False):
        self._out_path = Path(out_path)
        self._create_dir = create_dir

    @property
    def out_path(self) -> Path:
        return self._out_path

    def path_for(self, phenopacket: pps2.Phenopacket) -> Path:
        return self._out_path / f"{phenopacket.id}.json"

    def _ensure_dir(self) -> None:
        if self._out_path.is_dir():
            return
        if not self._create_dir:
            raise LoadError(f"Output directory {self._out_path} does not exist")
        self._out_path.mkdir(parents=True, exist_ok=True)

    def load(self, phenopackets: Sequence[pps2.Phenopacket]) -> list[Path]:
        """Write every phenopacket; returns the written paths."""
        self._ensure_dir()
        written: list[Path] = []
        for phenopacket in phenopackets:
            path = self.path_for(phenopacket)
            try:
                path.write_text(
                    json.dumps(phenopacket_to_dict(phenopacket), indent=2) + "\n",
                    encoding="utf-8",
                )
            except OSError as exc:
                raise LoadError(
                    f"Could not write phenopacket {phenopacket.id} to {path}: {exc}",
                    entity_id=phenopacket.id,
                    cause=exc,
                ) from exc
            logger.debug("phenopacket_written", phenopacket_id=phenopacket.id, path=str(path))
            written.append(path)
        logger.info("phenopackets_loaded", count=len(written), out_path=str(self._out_path))
        return written


def read_phenopacket(path: str | Path) -> pps2.Phenopacket:
    """Parse a phenopacket JSON file written by :class:`FileSystemLoader`."""
    phenopacket = pps2.Phenopacket()
    json_format.Parse(Path(path).read_text(encoding="utf-8"), phenopacket)
    return phenopacket


__all__ = ["FileSystemLoader", "phenopacket_to_dict", "read_phenopacket"]
