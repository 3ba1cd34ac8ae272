"""Conversion of planned resource changes into the resource overview."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from ..errors import PlanStructureError
from ..models import (
    ChangeAction,
    Diagnostic,
    DiagnosticSeverity,
    OutputChange,
    ResourceOverview,
    ResourceOverviewEntry,
    parse_address,
)
from ..models.overview import PathStep
from .differ import SENSITIVE_PLACEHOLDER, AttributeDiffer, redact

logger = logging.getLogger(__name__)

_SINGLE_ACTIONS = {
    "no-op": ChangeAction.NOOP,
    "create": ChangeAction.CREATE,
    "read": ChangeAction.READ,
    "update": ChangeAction.UPDATE,
    "delete": ChangeAction.DELETE,
}


def normalize_action(actions: Iterable[str]) -> ChangeAction:
    """Map Terraform's action list onto a single :class:`ChangeAction`."""

    action_list = list(actions or [])
    if not action_list:
        return ChangeAction.NOOP

    if len(action_list) == 1 and action_list[0] in _SINGLE_ACTIONS:
        return _SINGLE_ACTIONS[action_list[0]]
    if len(action_list) == 2 and set(action_list) == {"delete", "create"}:
        return ChangeAction.REPLACE

    raise PlanStructureError(f"Unsupported change actions: {action_list}")


class ResourceOverviewBuilder:
    """Build a :class:`ResourceOverview` from a Terraform JSON plan."""

    def __init__(self, *, sensitive_placeholder: str = SENSITIVE_PLACEHOLDER) -> None:
        self.sensitive_placeholder = sensitive_placeholder
        self._differ = AttributeDiffer(sensitive_placeholder=sensitive_placeholder)

    def build(self, plan: Mapping[str, Any]) -> ResourceOverview:
        """Return the overview for the supplied plan structure."""

        if not isinstance(plan, Mapping):
            raise PlanStructureError("Plan document must be a mapping")

        resource_changes = plan.get("resource_changes", []) or []
        if not isinstance(resource_changes, list):
            raise PlanStructureError("Plan 'resource_changes' must be a list")

        entries: Dict[str, ResourceOverviewEntry] = {}
        deposed: Dict[Tuple[str, str], ResourceOverviewEntry] = {}
        diagnostics: List[Diagnostic] = []
        for change in resource_changes:
            entry = self._build_entry(change)
            if entry.deposed is not None:
                if (entry.key, entry.deposed) in deposed:
                    raise PlanStructureError(
                        f"Duplicate planned change for {entry.key} deposed object {entry.deposed}"
                    )
                deposed[(entry.key, entry.deposed)] = entry
                diagnostics.append(
                    Diagnostic(
                        severity=DiagnosticSeverity.WARNING,
                        code="deposed-object",
                        summary=(
                            f"{entry.key} has a deposed object {entry.deposed} "
                            f"planned for {entry.action.value}"
                        ),
                        subject=entry.key,
                    )
                )
                continue
            if entry.key in entries:
                raise PlanStructureError(f"Duplicate planned change for {entry.key}")
            entries[entry.key] = entry

        outputs = [
            self._build_output(name, change)
            for name, change in (plan.get("output_changes") or {}).items()
        ]

        logger.debug("Built overview with %d resource entries", len(entries))
        return ResourceOverview(
            list(entries.values()),
            output_changes=outputs,
            deposed=list(deposed.values()),
            diagnostics=diagnostics,
        )

    # ------------------------------------------------------------------
    def _build_entry(self, change: Any) -> ResourceOverviewEntry:
        if not isinstance(change, Mapping):
            raise PlanStructureError(f"Resource change must be a mapping: {change!r}")

        address = parse_address(change.get("address", ""))
        if change.get("mode") == "data" and not address.is_data_source:
            raise PlanStructureError(f"Data source change without 'data.' address: {address}")

        details: Mapping[str, Any] = change.get("change") or {}
        action = normalize_action(details.get("actions", []))

        before = details.get("before")
        after = details.get("after")
        diffs = self._differ.diff(
            before if before is not None else {},
            after if after is not None else {},
            before_sensitive=details.get("before_sensitive"),
            after_sensitive=details.get("after_sensitive"),
            after_unknown=details.get("after_unknown"),
        )

        return ResourceOverviewEntry(
            address=address,
            action=action,
            provider_name=change.get("provider_name"),
            diffs=tuple(diffs),
            action_reason=change.get("action_reason"),
            previous_address=change.get("previous_address"),
            replace_paths=self._replace_paths(details.get("replace_paths")),
            deposed=change.get("deposed") or None,
        )

    def _build_output(self, name: str, change: Mapping[str, Any]) -> OutputChange:
        change = change or {}
        action = normalize_action(change.get("actions", []))
        before_marker = change.get("before_sensitive")
        after_marker = change.get("after_sensitive")
        sensitive = before_marker is True or after_marker is True

        return OutputChange(
            name=name,
            action=action,
            before=redact(change.get("before"), before_marker, self.sensitive_placeholder),
            after=redact(change.get("after"), after_marker, self.sensitive_placeholder),
            sensitive=sensitive,
        )

    def _replace_paths(self, raw: Any) -> Tuple[Tuple[PathStep, ...], ...]:
        paths: List[Tuple[PathStep, ...]] = []
        for path in raw or []:
            if isinstance(path, list):
                paths.append(tuple(step for step in path if isinstance(step, (str, int))))
        return tuple(paths)


__all__ = ["ResourceOverviewBuilder", "normalize_action"]
