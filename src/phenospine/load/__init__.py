"""Load stage: persisting built phenopackets."""

from phenospine.load.file_system_loader import FileSystemLoader, phenopacket_to_dict, read_phenopacket

__all__ = ["FileSystemLoader", "phenopacket_to_dict", "read_phenopacket"]
