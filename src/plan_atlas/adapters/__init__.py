"""Adapter layer for plan and configuration ingestion."""

from .config_loader import ConfigLoader, collect_references
from .plan_loader import PlanLoader, PlanLoaderError

__all__ = [
    "ConfigLoader",
    "PlanLoader",
    "PlanLoaderError",
    "collect_references",
]
