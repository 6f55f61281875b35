"""Collectors and the broker that runs them per patient."""

from phenospine.transform.collecting.base import (
    DEFAULT_COLLECTORS,
    Collector,
    get_collector,
    list_collectors,
    register_collector,
)
from phenospine.transform.collecting.broker import CollectorBroker, partition_by_subject

__all__ = [
    "DEFAULT_COLLECTORS",
    "Collector",
    "CollectorBroker",
    "get_collector",
    "list_collectors",
    "partition_by_subject",
    "register_collector",
]
