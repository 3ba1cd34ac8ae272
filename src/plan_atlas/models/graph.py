"""Dependency graph models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .diagnostic import Diagnostic
from .map import NodeKind
from .overview import ChangeAction


@dataclass(frozen=True, slots=True)
class GraphNode:
    """A graph vertex sharing its id with the corresponding map node."""

    id: str
    kind: NodeKind
    label: str
    parent: Optional[str] = None
    action: ChangeAction = ChangeAction.NOOP


@dataclass(frozen=True, slots=True)
class GraphEdge:
    """``source`` depends on ``target``; the target is evaluated first."""

    source: str
    target: str

    @property
    def id(self) -> str:
        return f"{self.source}->{self.target}"


@dataclass(frozen=True, slots=True)
class Graph:
    nodes: Tuple[GraphNode, ...]
    edges: Tuple[GraphEdge, ...]
    module_edges: Tuple[GraphEdge, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()

    def node_ids(self) -> set[str]:
        return {node.id for node in self.nodes}
