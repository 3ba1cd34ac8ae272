"""Hierarchical ownership map of modules, resources and their companions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterator, List, Mapping, Optional, Sequence, Tuple

from .diagnostic import Diagnostic
from .overview import ChangeAction, ResourceOverviewEntry


class NodeKind(str, Enum):
    """Kinds of node that may appear in the map."""

    ROOT = "root-module"
    MODULE_CALL = "module-call"
    RESOURCE = "resource"
    VARIABLE = "variable"
    OUTPUT = "output"
    PROVIDER = "provider"


ROOT_ID = "root"


@dataclass(frozen=True, slots=True)
class MapNode:
    """A node of the ownership tree."""

    id: str
    kind: NodeKind
    label: str
    parent: Optional[str] = None
    children: Tuple[str, ...] = ()
    address: Optional[str] = None
    module_path: Tuple[str, ...] = ()
    entry: Optional[ResourceOverviewEntry] = None
    action: ChangeAction = ChangeAction.NOOP
    orphaned: bool = False
    is_parent: bool = False
    references: Tuple[str, ...] = ()


class ResourceMap:
    """Immutable rooted tree of :class:`MapNode` objects."""

    def __init__(
        self,
        nodes: Sequence[MapNode],
        *,
        address_index: Mapping[str, str],
        diagnostics: Sequence[Diagnostic] = (),
        terraform_version: Optional[str] = None,
        required_providers: Mapping[str, str] | None = None,
    ) -> None:
        self.nodes: Mapping[str, MapNode] = MappingProxyType({node.id: node for node in nodes})
        self.address_index: Mapping[str, str] = MappingProxyType(dict(address_index))
        self.diagnostics: Tuple[Diagnostic, ...] = tuple(diagnostics)
        self.terraform_version = terraform_version
        self.required_providers: Mapping[str, str] = MappingProxyType(
            dict(required_providers or {})
        )

    @property
    def root(self) -> MapNode:
        return self.nodes[ROOT_ID]

    def node(self, node_id: str) -> MapNode:
        return self.nodes[node_id]

    def lookup(self, address: str) -> MapNode | None:
        node_id = self.address_index.get(address)
        return self.nodes[node_id] if node_id else None

    def ancestors(self, node_id: str) -> List[MapNode]:
        """Return the parent chain of ``node_id``, nearest first, ending at the root."""

        chain: List[MapNode] = []
        seen = {node_id}
        parent = self.nodes[node_id].parent
        while parent is not None:
            if parent in seen:
                raise ValueError(f"Parent cycle detected at {parent}")
            seen.add(parent)
            node = self.nodes[parent]
            chain.append(node)
            parent = node.parent
        return chain

    def walk(self) -> Iterator[MapNode]:
        """Yield every node in pre-order, children in declaration order."""

        stack = [ROOT_ID]
        while stack:
            node = self.nodes[stack.pop()]
            yield node
            stack.extend(reversed(node.children))

    def by_kind(self, kind: NodeKind) -> List[MapNode]:
        return [node for node in self.walk() if node.kind is kind]

    def __len__(self) -> int:
        return len(self.nodes)


__all__ = ["MapNode", "NodeKind", "ROOT_ID", "ResourceMap"]
