"""Structural configuration tree handed over by the configuration ingest."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .diagnostic import Diagnostic, DiagnosticSeverity


@dataclass(slots=True)
class ConfigVariable:
    name: str
    description: Optional[str] = None
    sensitive: bool = False
    default: Any = None


@dataclass(slots=True)
class ConfigOutput:
    name: str
    references: List[str] = field(default_factory=list)
    depends_on: List[str] = field(default_factory=list)
    description: Optional[str] = None
    sensitive: bool = False


@dataclass(slots=True)
class ConfigProvider:
    """A provider configuration block, keyed like ``aws`` or ``aws.east``."""

    key: str
    name: str
    alias: Optional[str] = None
    references: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ConfigResource:
    """A declared ``resource`` or ``data`` block."""

    mode: str
    type: str
    name: str
    provider_config_key: Optional[str] = None
    references: List[str] = field(default_factory=list)
    depends_on: List[str] = field(default_factory=list)
    count_references: List[str] = field(default_factory=list)

    @property
    def declaration(self) -> str:
        prefix = "data." if self.mode == "data" else ""
        return f"{prefix}{self.type}.{self.name}"


@dataclass(slots=True)
class ModuleCall:
    """A ``module`` block together with the module it instantiates."""

    name: str
    source: Optional[str] = None
    module: Optional["ConfigModule"] = None
    arguments: Dict[str, List[str]] = field(default_factory=dict)
    depends_on: List[str] = field(default_factory=list)
    count_references: List[str] = field(default_factory=list)

    @property
    def references(self) -> List[str]:
        collected: List[str] = []
        for refs in self.arguments.values():
            collected.extend(ref for ref in refs if ref not in collected)
        return collected


@dataclass(slots=True)
class ConfigModule:
    """Declarations of one module, each list in declaration order."""

    resources: List[ConfigResource] = field(default_factory=list)
    variables: List[ConfigVariable] = field(default_factory=list)
    outputs: List[ConfigOutput] = field(default_factory=list)
    providers: List[ConfigProvider] = field(default_factory=list)
    module_calls: List[ModuleCall] = field(default_factory=list)


@dataclass(slots=True)
class ConfigTree:
    """Root of the configuration tree plus the parser diagnostics."""

    root_module: ConfigModule
    providers: List[ConfigProvider] = field(default_factory=list)
    diagnostics: Tuple[Diagnostic, ...] = ()

    @property
    def has_errors(self) -> bool:
        return any(item.severity is DiagnosticSeverity.ERROR for item in self.diagnostics)
