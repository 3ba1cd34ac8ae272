"""JSON-ready renderings of the generated documents.

Each function returns a self-contained document: a consumer can interpret
any one of them without the others.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from .models import (
    AttributeDiff,
    Diagnostic,
    Graph,
    GraphEdge,
    MapNode,
    ResourceMap,
    ResourceOverview,
    ResourceOverviewEntry,
)


def _serialize_diagnostics(diagnostics: Iterable[Diagnostic]) -> List[Dict[str, Any]]:
    return [
        {
            "severity": diagnostic.severity.value,
            "code": diagnostic.code,
            "summary": diagnostic.summary,
            "subject": diagnostic.subject,
        }
        for diagnostic in diagnostics
    ]


def _serialize_diff(diff: AttributeDiff) -> Dict[str, Any]:
    return {
        "path": diff.path_text,
        "before": diff.before,
        "after": diff.after,
        "kind": diff.kind.value,
    }


def serialize_entry(entry: ResourceOverviewEntry) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "address": entry.key,
        "type": entry.type,
        "name": entry.name,
        "module_path": list(entry.module_path),
        "provider_name": entry.provider_name,
        "index": entry.address.key,
        "action": entry.action.value,
        "is_data_source": entry.is_data_source,
        "diffs": [_serialize_diff(diff) for diff in entry.diffs],
    }
    if entry.action_reason:
        payload["action_reason"] = entry.action_reason
    if entry.previous_address:
        payload["previous_address"] = entry.previous_address
    if entry.replace_paths:
        payload["replace_paths"] = [list(path) for path in entry.replace_paths]
    if entry.deposed:
        payload["deposed"] = entry.deposed
    return payload


def overview_to_dict(overview: ResourceOverview) -> Dict[str, Any]:
    return {
        "resources": {address: serialize_entry(entry) for address, entry in overview.items()},
        "outputs": {
            name: {
                "action": change.action.value,
                "before": change.before,
                "after": change.after,
                "sensitive": change.sensitive,
            }
            for name, change in overview.output_changes.items()
        },
        "deposed": [serialize_entry(entry) for entry in overview.deposed],
        "diagnostics": _serialize_diagnostics(overview.diagnostics),
    }


def _serialize_node(node: MapNode) -> Dict[str, Any]:
    entry: Optional[Dict[str, Any]] = serialize_entry(node.entry) if node.entry else None
    return {
        "id": node.id,
        "kind": node.kind.value,
        "label": node.label,
        "parent": node.parent,
        "children": list(node.children),
        "address": node.address,
        "module_path": list(node.module_path),
        "action": node.action.value,
        "orphaned": node.orphaned,
        "is_parent": node.is_parent,
        "entry": entry,
    }


def map_to_dict(resource_map: ResourceMap) -> Dict[str, Any]:
    return {
        "root": resource_map.root.id,
        "terraform_version": resource_map.terraform_version,
        "required_providers": dict(resource_map.required_providers),
        "nodes": [_serialize_node(node) for node in resource_map.walk()],
        "address_index": dict(resource_map.address_index),
        "diagnostics": _serialize_diagnostics(resource_map.diagnostics),
    }


def _serialize_edges(edges: Iterable[GraphEdge]) -> List[Dict[str, str]]:
    return [{"id": edge.id, "source": edge.source, "target": edge.target} for edge in edges]


def graph_to_dict(graph: Graph) -> Dict[str, Any]:
    return {
        "nodes": [
            {
                "id": node.id,
                "kind": node.kind.value,
                "label": node.label,
                "parent": node.parent,
                "action": node.action.value,
            }
            for node in graph.nodes
        ],
        "edges": _serialize_edges(graph.edges),
        "module_edges": _serialize_edges(graph.module_edges),
        "diagnostics": _serialize_diagnostics(graph.diagnostics),
    }


__all__ = ["graph_to_dict", "map_to_dict", "overview_to_dict", "serialize_entry"]
