"""Resource overview models describing per-resource planned changes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from .address import ResourceAddress
from .diagnostic import Diagnostic


class ChangeAction(str, Enum):
    """Enumeration of the planned action for a resource instance."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    REPLACE = "replace"
    NOOP = "no-op"


class DiffKind(str, Enum):
    """Classification of a single attribute difference."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    SENSITIVE = "sensitive-redacted"


PathStep = str | int


def format_path(path: Sequence[PathStep]) -> str:
    """Render an attribute path as ``tags.Name`` or ``ingress[0].port``."""

    text = ""
    for step in path:
        if isinstance(step, int):
            text += f"[{step}]"
        else:
            text += f".{step}" if text else str(step)
    return text


@dataclass(frozen=True, slots=True)
class AttributeDiff:
    """A difference between the before and after value of one attribute."""

    path: Tuple[PathStep, ...]
    before: Any
    after: Any
    kind: DiffKind

    @property
    def path_text(self) -> str:
        return format_path(self.path)


@dataclass(frozen=True, slots=True)
class ResourceOverviewEntry:
    """Change summary for one resource instance."""

    address: ResourceAddress
    action: ChangeAction
    provider_name: Optional[str] = None
    diffs: Tuple[AttributeDiff, ...] = ()
    action_reason: Optional[str] = None
    previous_address: Optional[str] = None
    replace_paths: Tuple[Tuple[PathStep, ...], ...] = ()
    deposed: Optional[str] = None

    @property
    def key(self) -> str:
        return str(self.address)

    @property
    def type(self) -> str:
        return self.address.type

    @property
    def name(self) -> str:
        return self.address.name

    @property
    def module_path(self) -> Tuple[str, ...]:
        return self.address.module_names

    @property
    def is_data_source(self) -> bool:
        """Data sources are read-only and never mutate infrastructure."""

        return self.address.is_data_source


@dataclass(frozen=True, slots=True)
class OutputChange:
    """Change summary for one root module output value."""

    name: str
    action: ChangeAction
    before: Any = None
    after: Any = None
    sensitive: bool = False


class ResourceOverview(Mapping[str, ResourceOverviewEntry]):
    """Read-only mapping of normalized address to :class:`ResourceOverviewEntry`."""

    def __init__(
        self,
        entries: Sequence[ResourceOverviewEntry],
        *,
        output_changes: Sequence[OutputChange] = (),
        deposed: Sequence[ResourceOverviewEntry] = (),
        diagnostics: Sequence[Diagnostic] = (),
    ) -> None:
        self._entries: Mapping[str, ResourceOverviewEntry] = MappingProxyType(
            {entry.key: entry for entry in entries}
        )
        grouped: Dict[str, List[ResourceOverviewEntry]] = {}
        for entry in entries:
            grouped.setdefault(entry.address.config_address, []).append(entry)
        self._instances = {key: tuple(value) for key, value in grouped.items()}
        self.output_changes: Mapping[str, OutputChange] = MappingProxyType(
            {change.name: change for change in output_changes}
        )
        # Deposed objects share the address of the current object and are kept apart.
        self.deposed: Tuple[ResourceOverviewEntry, ...] = tuple(deposed)
        self.diagnostics: Tuple[Diagnostic, ...] = tuple(diagnostics)

    def __getitem__(self, address: str) -> ResourceOverviewEntry:
        return self._entries[address]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def instances_of(self, config_address: str) -> Tuple[ResourceOverviewEntry, ...]:
        """Return every planned instance of the declaration at ``config_address``."""

        return self._instances.get(config_address, ())


__all__ = [
    "AttributeDiff",
    "ChangeAction",
    "DiffKind",
    "OutputChange",
    "PathStep",
    "ResourceOverview",
    "ResourceOverviewEntry",
    "format_path",
]
