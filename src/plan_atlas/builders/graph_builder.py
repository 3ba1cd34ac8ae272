"""Construction of the dependency graph from the ownership map."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import networkx as nx

from ..models import (
    ChangeAction,
    Diagnostic,
    DiagnosticSeverity,
    Graph,
    GraphEdge,
    GraphNode,
    MapNode,
    NodeKind,
    ResourceMap,
)
from .overview_builder import normalize_action
from .scopes import ScopeResolver, is_modeled, reference_candidates

logger = logging.getLogger(__name__)

GRAPH_KINDS = frozenset(
    {NodeKind.MODULE_CALL, NodeKind.RESOURCE, NodeKind.OUTPUT, NodeKind.VARIABLE}
)


def dedupe_edges(edges: Iterable[GraphEdge]) -> Tuple[GraphEdge, ...]:
    """Collapse edges sharing an ordered pair, keeping first-seen order."""

    seen: Set[Tuple[str, str]] = set()
    unique: List[GraphEdge] = []
    for edge in edges:
        pair = (edge.source, edge.target)
        if pair in seen:
            continue
        seen.add(pair)
        unique.append(edge)
    return tuple(unique)


def _module_chain(resource_map: ResourceMap, node_id: str) -> List[str]:
    """Module-call ancestors of ``node_id``, outermost first."""

    return [
        node.id
        for node in reversed(resource_map.ancestors(node_id))
        if node.kind is NodeKind.MODULE_CALL
    ]


def collapse_to_modules(
    edges: Iterable[GraphEdge], resource_map: ResourceMap
) -> Tuple[GraphEdge, ...]:
    """Redirect cross-module edges to the module calls that own their endpoints.

    Each endpoint is replaced by the outermost module call containing it but
    not the other endpoint. Edges that collapse onto a single node are dropped.
    """

    chains: Dict[str, List[str]] = {}

    def chain(node_id: str) -> List[str]:
        if node_id not in chains:
            chains[node_id] = _module_chain(resource_map, node_id)
        return chains[node_id]

    collapsed: List[GraphEdge] = []
    for edge in edges:
        source_chain = chain(edge.source)
        target_chain = chain(edge.target)
        if source_chain == target_chain:
            collapsed.append(edge)
            continue

        shared = 0
        for left, right in zip(source_chain, target_chain):
            if left != right:
                break
            shared += 1

        source = source_chain[shared] if len(source_chain) > shared else edge.source
        target = target_chain[shared] if len(target_chain) > shared else edge.target
        if source != target:
            collapsed.append(GraphEdge(source=source, target=target))

    return dedupe_edges(collapsed)


def build_digraph(node_ids: Sequence[str], edges: Iterable[GraphEdge]) -> nx.DiGraph:
    graph = nx.DiGraph()
    graph.add_nodes_from(node_ids)
    graph.add_edges_from((edge.source, edge.target) for edge in edges)
    return graph


def find_cycles(node_ids: Sequence[str], edges: Iterable[GraphEdge]) -> List[Tuple[str, ...]]:
    """Return every elementary dependency cycle.

    Each cycle starts at its member listed first in ``node_ids``, and the
    cycles are sorted by their members in that same order.
    """

    order = {node_id: position for position, node_id in enumerate(node_ids)}
    graph = build_digraph(node_ids, edges)

    def rank(node_id: str) -> Tuple[int, str]:
        return order.get(node_id, len(order)), node_id

    cycles: List[Tuple[str, ...]] = []
    for cycle in nx.simple_cycles(graph):
        start = cycle.index(min(cycle, key=rank))
        cycles.append(tuple(cycle[start:] + cycle[:start]))
    cycles.sort(key=lambda cycle: [rank(node_id) for node_id in cycle])
    return cycles


class GraphBuilder:
    """Build the dependency :class:`Graph` for a plan and its ownership map."""

    def __init__(self, *, collapse_modules: bool = True) -> None:
        self.collapse_modules = collapse_modules

    def build(self, plan: Mapping[str, Any] | None, resource_map: ResourceMap) -> Graph:
        resolver = ScopeResolver(resource_map)
        output_actions = self._output_actions(plan or {})

        nodes: List[GraphNode] = []
        edges: List[GraphEdge] = []
        diagnostics: List[Diagnostic] = []

        for map_node in resource_map.walk():
            if map_node.kind not in GRAPH_KINDS:
                continue
            nodes.append(self._graph_node(map_node, resource_map, output_actions))
            edges.extend(self._edges_for(map_node, resolver, diagnostics))

        unique_edges = dedupe_edges(edges)
        module_edges = collapse_to_modules(unique_edges, resource_map) if self.collapse_modules else ()

        for cycle in find_cycles([node.id for node in nodes], unique_edges):
            diagnostics.append(
                Diagnostic(
                    severity=DiagnosticSeverity.INFO,
                    code="dependency-cycle",
                    summary="Dependency cycle: " + " -> ".join(cycle + (cycle[0],)),
                    subject=cycle[0],
                )
            )
            logger.debug("Dependency cycle detected through %s", ", ".join(cycle))

        logger.debug("Built graph with %d nodes and %d edges", len(nodes), len(unique_edges))
        return Graph(
            nodes=tuple(nodes),
            edges=unique_edges,
            module_edges=module_edges,
            diagnostics=tuple(diagnostics),
        )

    # ------------------------------------------------------------------
    def _graph_node(
        self,
        map_node: MapNode,
        resource_map: ResourceMap,
        output_actions: Mapping[str, ChangeAction],
    ) -> GraphNode:
        parent: Optional[str] = None
        for ancestor in resource_map.ancestors(map_node.id):
            if ancestor.kind in GRAPH_KINDS:
                parent = ancestor.id
                break

        action = map_node.action
        if map_node.kind is NodeKind.OUTPUT and not map_node.module_path:
            action = output_actions.get(map_node.label, action)

        return GraphNode(
            id=map_node.id,
            kind=map_node.kind,
            label=map_node.label,
            parent=parent,
            action=action,
        )

    def _edges_for(
        self,
        map_node: MapNode,
        resolver: ScopeResolver,
        diagnostics: List[Diagnostic],
    ) -> List[GraphEdge]:
        scope = map_node.module_path
        if map_node.kind is NodeKind.VARIABLE:
            scope = map_node.module_path[:-1]

        edges: List[GraphEdge] = []
        reported: Set[Tuple[str, ...]] = set()
        for reference in map_node.references:
            if not is_modeled(reference):
                continue
            target = resolver.resolve(reference, scope)
            if target is None:
                # "aws_vpc.x.id" and "aws_vpc.x" are reported once.
                candidates = tuple(reference_candidates(reference))
                if candidates in reported:
                    continue
                reported.add(candidates)
                diagnostics.append(
                    Diagnostic(
                        severity=DiagnosticSeverity.WARNING,
                        code="unresolved-reference",
                        summary=f"{map_node.id} references unknown {reference}; edge dropped",
                        subject=map_node.id,
                    )
                )
                logger.debug("Dropping unresolved reference %s from %s", reference, map_node.id)
                continue
            if target == map_node.id:
                continue
            edges.append(GraphEdge(source=map_node.id, target=target))
        return edges

    def _output_actions(self, plan: Mapping[str, Any]) -> Dict[str, ChangeAction]:
        actions: Dict[str, ChangeAction] = {}
        for name, change in (plan.get("output_changes") or {}).items():
            actions[name] = normalize_action((change or {}).get("actions", []))
        return actions


__all__ = ["GraphBuilder", "collapse_to_modules", "dedupe_edges", "find_cycles"]
