"""Construction of the hierarchical ownership map.

The configuration tree is walked depth-first from the root module. Every
module call, provider, variable, resource and output becomes a node owned by
its module's node, in declaration order. Resource nodes are joined to the
overview through their normalized declaration address.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from ..errors import ModuleCycleError, ReconciliationError
from ..models import (
    ROOT_ID,
    ChangeAction,
    ConfigModule,
    ConfigResource,
    ConfigTree,
    Diagnostic,
    DiagnosticSeverity,
    MapNode,
    NodeKind,
    ResourceMap,
    ResourceOverview,
    ResourceOverviewEntry,
)

logger = logging.getLogger(__name__)


def module_prefix(module_path: Sequence[str]) -> str:
    """Render ``("net", "sub")`` as ``module.net.module.sub``."""

    return ".".join(f"module.{name}" for name in module_path)


def scoped(module_path: Sequence[str], local: str) -> str:
    prefix = module_prefix(module_path)
    return f"{prefix}.{local}" if prefix else local


@dataclass(slots=True)
class _Draft:
    id: str
    kind: NodeKind
    label: str
    parent: Optional[str]
    module_path: Tuple[str, ...] = ()
    address: Optional[str] = None
    entry: Optional[ResourceOverviewEntry] = None
    action: ChangeAction = ChangeAction.NOOP
    orphaned: bool = False
    is_parent: bool = False
    references: Tuple[str, ...] = ()
    children: List[str] = field(default_factory=list)

    def freeze(self) -> MapNode:
        return MapNode(
            id=self.id,
            kind=self.kind,
            label=self.label,
            parent=self.parent,
            children=tuple(self.children),
            address=self.address,
            module_path=self.module_path,
            entry=self.entry,
            action=self.action,
            orphaned=self.orphaned,
            is_parent=self.is_parent,
            references=self.references,
        )


class _MapState:
    """Mutable scratch space for a single build."""

    def __init__(self, overview: ResourceOverview) -> None:
        self.overview = overview
        self.drafts: Dict[str, _Draft] = {}
        self.address_index: Dict[str, str] = {}
        self.claimed: set[str] = set()
        self.diagnostics: List[Diagnostic] = []

    def add(self, draft: _Draft) -> _Draft:
        if draft.id in self.drafts:
            raise ReconciliationError(f"Duplicate declaration for {draft.address or draft.id}")
        self.drafts[draft.id] = draft
        if draft.parent is not None:
            self.drafts[draft.parent].children.append(draft.id)
        return draft


def combined_action(entries: Sequence[ResourceOverviewEntry]) -> ChangeAction:
    """Action shown on a parent node grouping several instances."""

    actions = {entry.action for entry in entries}
    if len(actions) == 1:
        return actions.pop()
    return ChangeAction.UPDATE


class MapBuilder:
    """Build the :class:`ResourceMap` from a configuration tree and an overview."""

    def build(
        self,
        config: ConfigTree,
        overview: ResourceOverview,
        *,
        plan: Mapping[str, Any] | None = None,
    ) -> ResourceMap:
        state = _MapState(overview)
        state.add(_Draft(id=ROOT_ID, kind=NodeKind.ROOT, label="root", parent=None))

        self._visit_module(config.root_module, (), ROOT_ID, {}, frozenset(), state)
        self._attach_orphans(state)

        plan = plan or {}
        return ResourceMap(
            [draft.freeze() for draft in state.drafts.values()],
            address_index=state.address_index,
            diagnostics=state.diagnostics,
            terraform_version=plan.get("terraform_version"),
            required_providers=self._required_providers(plan),
        )

    # ------------------------------------------------------------------
    def _visit_module(
        self,
        module: ConfigModule,
        module_path: Tuple[str, ...],
        parent_id: str,
        arguments: Mapping[str, List[str]],
        active: FrozenSet[int],
        state: _MapState,
    ) -> None:
        if id(module) in active:
            raise ModuleCycleError(
                f"Cyclic module call detected at {module_prefix(module_path)}"
            )
        active = active | {id(module)}

        for provider in module.providers:
            address = scoped(module_path, f"provider.{provider.key.split(':')[-1]}")
            state.add(
                _Draft(
                    id=address,
                    kind=NodeKind.PROVIDER,
                    label=provider.key.split(":")[-1],
                    parent=parent_id,
                    module_path=module_path,
                    address=address,
                    references=tuple(provider.references),
                )
            )

        for variable in module.variables:
            address = scoped(module_path, f"var.{variable.name}")
            state.add(
                _Draft(
                    id=address,
                    kind=NodeKind.VARIABLE,
                    label=variable.name,
                    parent=parent_id,
                    module_path=module_path,
                    address=address,
                    # Evaluated in the calling module's scope.
                    references=tuple(arguments.get(variable.name, ())),
                )
            )

        for resource in module.resources:
            self._add_resource(resource, module_path, parent_id, state)

        for output in module.outputs:
            address = scoped(module_path, f"output.{output.name}")
            state.add(
                _Draft(
                    id=address,
                    kind=NodeKind.OUTPUT,
                    label=output.name,
                    parent=parent_id,
                    module_path=module_path,
                    address=address,
                    references=tuple(_merge(output.references, output.depends_on)),
                )
            )

        for call in module.module_calls:
            call_path = module_path + (call.name,)
            address = module_prefix(call_path)
            node = state.add(
                _Draft(
                    id=address,
                    kind=NodeKind.MODULE_CALL,
                    label=call.name,
                    parent=parent_id,
                    module_path=module_path,
                    address=address,
                    references=tuple(
                        _merge(call.references, call.depends_on, call.count_references)
                    ),
                )
            )
            if call.module is None:
                raise ReconciliationError(f"Module call {address} has no module body")
            self._visit_module(call.module, call_path, node.id, call.arguments, active, state)

        logger.debug("Visited module %s", module_prefix(module_path) or "root")

    def _add_resource(
        self,
        resource: ConfigResource,
        module_path: Tuple[str, ...],
        parent_id: str,
        state: _MapState,
    ) -> None:
        config_address = scoped(module_path, resource.declaration)
        instances = state.overview.instances_of(config_address)
        references = tuple(
            _merge(resource.references, resource.depends_on, resource.count_references)
        )

        single = len(instances) == 1 and instances[0].key == config_address
        entry = instances[0] if single else None
        if single:
            action = instances[0].action
        elif instances:
            action = combined_action(instances)
        else:
            action = ChangeAction.NOOP

        node = state.add(
            _Draft(
                id=config_address,
                kind=NodeKind.RESOURCE,
                label=resource.declaration,
                parent=parent_id,
                module_path=module_path,
                address=config_address,
                entry=entry,
                action=action,
                is_parent=bool(instances) and not single,
                references=references,
            )
        )
        state.address_index[config_address] = node.id

        if single:
            state.claimed.add(config_address)
            return

        for instance in instances:
            # Keyed module instances need the full address to tell siblings apart.
            keyed_module = any(step.key is not None for step in instance.address.module_path)
            label = instance.key if keyed_module else instance.address.label
            # An unkeyed instance grouped with keyed siblings shares the
            # declaration address, so its id gets a suffix.
            child_id = instance.key if instance.key != config_address else f"{instance.key}#instance"
            child = state.add(
                _Draft(
                    id=child_id,
                    kind=NodeKind.RESOURCE,
                    label=label,
                    parent=node.id,
                    module_path=module_path,
                    address=instance.key,
                    entry=instance,
                    action=instance.action,
                )
            )
            state.address_index[instance.key] = child.id
            state.claimed.add(instance.key)

    def _attach_orphans(self, state: _MapState) -> None:
        for key, entry in state.overview.items():
            if key in state.claimed:
                continue

            if entry.action is not ChangeAction.DELETE:
                raise ReconciliationError(
                    f"Planned {entry.action.value} for {key} has no declaration in the configuration"
                )

            node = state.add(
                _Draft(
                    id=key,
                    kind=NodeKind.RESOURCE,
                    label=entry.address.label,
                    parent=ROOT_ID,
                    module_path=entry.module_path,
                    address=key,
                    entry=entry,
                    action=entry.action,
                    orphaned=True,
                )
            )
            state.address_index[key] = node.id
            state.diagnostics.append(
                Diagnostic(
                    severity=DiagnosticSeverity.WARNING,
                    code="orphaned-resource",
                    summary=f"{key} is being destroyed and is no longer declared; attached under root",
                    subject=key,
                )
            )
            logger.debug("Resource %s is planned for deletion without a declaration", key)

    def _required_providers(self, plan: Mapping[str, Any]) -> Dict[str, str]:
        providers: Dict[str, str] = {}
        configuration = plan.get("configuration") or {}
        for key, data in (configuration.get("provider_config") or {}).items():
            data = data or {}
            name = data.get("name") or key
            value = data.get("version_constraint") or data.get("full_name")
            if value and name not in providers:
                providers[name] = value
        return providers


def _merge(*groups: Sequence[str]) -> List[str]:
    merged: List[str] = []
    for group in groups:
        for item in group:
            if item not in merged:
                merged.append(item)
    return merged


__all__ = ["MapBuilder", "combined_action", "module_prefix", "scoped"]
