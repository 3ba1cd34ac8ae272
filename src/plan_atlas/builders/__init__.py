"""Pure builders turning plan and configuration input into the three documents."""

from .differ import AttributeDiffer, diff_values
from .graph_builder import GraphBuilder, collapse_to_modules, dedupe_edges, find_cycles
from .map_builder import MapBuilder, combined_action
from .overview_builder import ResourceOverviewBuilder, normalize_action
from .scopes import ScopeResolver, reference_candidates

__all__ = [
    "AttributeDiffer",
    "GraphBuilder",
    "MapBuilder",
    "ResourceOverviewBuilder",
    "ScopeResolver",
    "collapse_to_modules",
    "combined_action",
    "dedupe_edges",
    "diff_values",
    "find_cycles",
    "normalize_action",
    "reference_candidates",
]
