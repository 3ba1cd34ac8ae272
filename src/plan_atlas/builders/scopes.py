"""Lexical resolution of reference expressions against the ownership map."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence, Tuple

from ..models import MapNode, NodeKind, ResourceMap

IGNORED_NAMESPACES = frozenset({"count", "each", "self", "path", "terraform"})

_INDEX = re.compile(r'\["(?:[^"\\]|\\.)*"\]|\[[^\]]*\]')

Scope = Tuple[str, ...]


def reference_candidates(reference: str) -> List[str]:
    """Return the addressable names a reference may point at, most specific first.

    An empty list means the reference lives in a namespace the map does not
    model (``count.index``, ``each.key``, ``path.module`` ...).
    """

    parts = [part for part in _INDEX.sub("", reference).split(".") if part]
    if not parts or parts[0] in IGNORED_NAMESPACES:
        return []

    head = parts[0]
    if head == "var":
        return [f"var.{parts[1]}"] if len(parts) >= 2 else []
    if head == "module":
        if len(parts) < 2:
            return []
        candidates = [f"module.{parts[1]}.{parts[2]}"] if len(parts) >= 3 else []
        candidates.append(f"module.{parts[1]}")
        return candidates
    if head == "data":
        return [f"data.{parts[1]}.{parts[2]}"] if len(parts) >= 3 else []
    return [f"{parts[0]}.{parts[1]}"] if len(parts) >= 2 else []


def is_modeled(reference: str) -> bool:
    parts = _INDEX.sub("", reference).split(".")
    return bool(parts[0]) and parts[0] not in IGNORED_NAMESPACES


class ScopeResolver:
    """Resolve references with nearest-scope-wins semantics.

    Each module path is a scope holding the names declared directly in that
    module. Child module outputs are visible to the caller as
    ``module.<call>.<output>``.
    """

    def __init__(self, resource_map: ResourceMap) -> None:
        self._scopes: Dict[Scope, Dict[str, str]] = {}
        for node in resource_map.walk():
            self._register(node, resource_map)

    def _register(self, node: MapNode, resource_map: ResourceMap) -> None:
        if node.kind is NodeKind.VARIABLE:
            self._define(node.module_path, f"var.{node.label}", node.id)
        elif node.kind is NodeKind.MODULE_CALL:
            self._define(node.module_path, f"module.{node.label}", node.id)
        elif node.kind is NodeKind.OUTPUT and node.module_path:
            caller = node.module_path[:-1]
            self._define(caller, f"module.{node.module_path[-1]}.{node.label}", node.id)
        elif node.kind is NodeKind.RESOURCE:
            if node.orphaned and node.entry is not None:
                self._define(node.module_path, node.entry.address.declaration, node.id)
            elif resource_map.node(node.parent).kind is not NodeKind.RESOURCE:
                # Instances are reached through their declaration.
                self._define(node.module_path, node.label, node.id)

    def _define(self, scope: Sequence[str], name: str, node_id: str) -> None:
        names = self._scopes.setdefault(tuple(scope), {})
        names.setdefault(name, node_id)

    # ------------------------------------------------------------------
    @staticmethod
    def search_order(scope: Sequence[str]) -> List[Scope]:
        """Scopes consulted for ``scope``: itself first, then each ancestor up to the root."""

        scope = tuple(scope)
        return [scope[:depth] for depth in range(len(scope), -1, -1)]

    def resolve(self, reference: str, scope: Sequence[str]) -> Optional[str]:
        candidates = reference_candidates(reference)
        for current in self.search_order(scope):
            names = self._scopes.get(current)
            if not names:
                continue
            for candidate in candidates:
                if candidate in names:
                    return names[candidate]
        return None


__all__ = ["IGNORED_NAMESPACES", "ScopeResolver", "is_modeled", "reference_candidates"]
