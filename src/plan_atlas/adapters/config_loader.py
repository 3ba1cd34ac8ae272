"""Load the structural configuration tree consumed by the map builder."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Mapping, MutableMapping, Optional

from ..errors import ConfigurationError
from ..models import (
    ConfigModule,
    ConfigOutput,
    ConfigProvider,
    ConfigResource,
    ConfigTree,
    ConfigVariable,
    Diagnostic,
    DiagnosticSeverity,
    ModuleCall,
)

try:  # pragma: no cover - import guarded for optional dependency
    import yaml
except ModuleNotFoundError:  # pragma: no cover - handled in loader
    yaml = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)


def collect_references(expression: Any) -> List[str]:
    """Return every reference found in an expression tree, first-seen order."""

    found: List[str] = []
    _collect(expression, found)
    return found


def _collect(expression: Any, found: List[str]) -> None:
    if isinstance(expression, Mapping):
        references = expression.get("references")
        if isinstance(references, list):
            for reference in references:
                if isinstance(reference, str) and reference not in found:
                    found.append(reference)
        for key, value in expression.items():
            if key in {"references", "constant_value"}:
                continue
            _collect(value, found)
    elif isinstance(expression, list):
        for item in expression:
            _collect(item, found)


class ConfigLoader:
    """Build a :class:`ConfigTree` from Terraform's JSON configuration representation.

    The same shape is accepted from the ``configuration`` block of a plan and
    from a standalone document. Standalone documents may also declare shared
    module bodies under ``modules`` keyed by call ``source``.
    """

    def load(self, path: str | Path) -> ConfigTree:
        """Load a standalone configuration document (JSON or YAML)."""

        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration document not found: {path}")

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
            raise ConfigurationError(f"Failed to read configuration document {path}") from exc

        if path.suffix in {".yaml", ".yml"}:
            if yaml is None:
                raise ConfigurationError("PyYAML is required to parse YAML configuration documents")
            try:
                data = yaml.safe_load(content) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Invalid YAML in configuration document {path}") from exc
        else:
            try:
                data = json.loads(content or "{}")
            except json.JSONDecodeError as exc:
                raise ConfigurationError(f"Invalid JSON in configuration document {path}") from exc

        return self.parse(data)

    def from_plan(self, plan: Mapping[str, Any]) -> ConfigTree:
        """Read the ``configuration`` block embedded in a plan."""

        configuration = plan.get("configuration") if isinstance(plan, Mapping) else None
        if not isinstance(configuration, Mapping):
            raise ConfigurationError("Plan does not contain a configuration block")
        return self.parse(configuration)

    # ------------------------------------------------------------------
    def parse(self, data: Any) -> ConfigTree:
        if not isinstance(data, Mapping):
            raise ConfigurationError("Configuration document must be a mapping")

        diagnostics = tuple(self._parse_diagnostics(data.get("diagnostics")))
        errors = [item for item in diagnostics if item.severity is DiagnosticSeverity.ERROR]
        if errors:
            summaries = "; ".join(item.summary for item in errors)
            raise ConfigurationError(f"Configuration has errors: {summaries}")

        root_data = data.get("root_module")
        if not isinstance(root_data, Mapping):
            raise ConfigurationError("Configuration is missing its root module")

        shared: Mapping[str, Any] = data.get("modules") or {}
        built: MutableMapping[str, ConfigModule] = {}
        root = self._parse_module(root_data, shared, built)

        providers = [
            self._parse_provider(key, value)
            for key, value in (data.get("provider_config") or {}).items()
        ]
        self._attach_providers(root, providers, data.get("provider_config") or {})

        for diagnostic in diagnostics:
            logger.warning("Configuration %s: %s", diagnostic.severity.value, diagnostic.summary)

        return ConfigTree(root_module=root, providers=providers, diagnostics=diagnostics)

    # ------------------------------------------------------------------
    def _parse_module(
        self,
        data: Mapping[str, Any],
        shared: Mapping[str, Any],
        built: MutableMapping[str, ConfigModule],
    ) -> ConfigModule:
        module = ConfigModule()

        for resource in data.get("resources", []) or []:
            module.resources.append(self._parse_resource(resource))

        for name, variable in (data.get("variables") or {}).items():
            variable = variable or {}
            module.variables.append(
                ConfigVariable(
                    name=name,
                    description=variable.get("description"),
                    sensitive=bool(variable.get("sensitive", False)),
                    default=variable.get("default"),
                )
            )

        for name, output in (data.get("outputs") or {}).items():
            output = output or {}
            module.outputs.append(
                ConfigOutput(
                    name=name,
                    references=collect_references(output.get("expression")),
                    depends_on=list(output.get("depends_on", []) or []),
                    description=output.get("description"),
                    sensitive=bool(output.get("sensitive", False)),
                )
            )

        for name, call in (data.get("module_calls") or {}).items():
            module.module_calls.append(self._parse_module_call(name, call or {}, shared, built))

        return module

    def _parse_resource(self, data: Mapping[str, Any]) -> ConfigResource:
        mode = data.get("mode", "managed")
        resource_type = data.get("type")
        name = data.get("name")
        if not resource_type or not name:
            raise ConfigurationError(f"Resource declaration without type or name: {dict(data)}")

        return ConfigResource(
            mode=mode,
            type=resource_type,
            name=name,
            provider_config_key=data.get("provider_config_key"),
            references=collect_references(data.get("expressions")),
            depends_on=list(data.get("depends_on", []) or []),
            count_references=collect_references(
                [data.get("count_expression"), data.get("for_each_expression")]
            ),
        )

    def _parse_module_call(
        self,
        name: str,
        data: Mapping[str, Any],
        shared: Mapping[str, Any],
        built: MutableMapping[str, ConfigModule],
    ) -> ModuleCall:
        source = data.get("source")
        call = ModuleCall(
            name=name,
            source=source,
            arguments={
                argument: collect_references(expression)
                for argument, expression in (data.get("expressions") or {}).items()
            },
            depends_on=list(data.get("depends_on", []) or []),
            count_references=collect_references(
                [data.get("count_expression"), data.get("for_each_expression")]
            ),
        )

        inline = data.get("module")
        if isinstance(inline, Mapping):
            call.module = self._parse_module(inline, shared, built)
        elif source and source in shared:
            call.module = self._shared_module(source, shared, built)
        else:
            raise ConfigurationError(f"Module call {name!r} has no module body for source {source!r}")

        return call

    def _shared_module(
        self,
        source: str,
        shared: Mapping[str, Any],
        built: MutableMapping[str, ConfigModule],
    ) -> ConfigModule:
        # Shared bodies are registered before parsing so that self-referencing
        # sources link back to the same object instead of recursing forever.
        if source not in built:
            module = ConfigModule()
            built[source] = module
            parsed = self._parse_module(shared[source] or {}, shared, built)
            module.resources = parsed.resources
            module.variables = parsed.variables
            module.outputs = parsed.outputs
            module.module_calls = parsed.module_calls
        return built[source]

    def _parse_provider(self, key: str, data: Mapping[str, Any]) -> ConfigProvider:
        data = data or {}
        return ConfigProvider(
            key=key,
            name=data.get("name") or key.split(":")[-1].split(".")[0],
            alias=data.get("alias"),
            references=collect_references(data.get("expressions")),
        )

    def _attach_providers(
        self,
        root: ConfigModule,
        providers: Iterable[ConfigProvider],
        raw: Mapping[str, Any],
    ) -> None:
        for provider in providers:
            module_address = (raw.get(provider.key) or {}).get("module_address")
            target = self._module_at(root, module_address)
            if target is None:
                logger.warning(
                    "Provider %s declared in unknown module %s", provider.key, module_address
                )
                continue
            target.providers.append(provider)

    def _module_at(self, root: ConfigModule, module_address: Optional[str]) -> ConfigModule | None:
        module: ConfigModule | None = root
        if not module_address:
            return module

        names = [part for part in module_address.split(".") if part != "module"]
        for name in names:
            if module is None:
                return None
            module = next(
                (call.module for call in module.module_calls if call.name == name),
                None,
            )
        return module

    def _parse_diagnostics(self, raw: Any) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        for item in raw or []:
            if not isinstance(item, Mapping):
                continue
            severity_value = str(item.get("severity", "error")).strip().lower()
            try:
                severity = DiagnosticSeverity(severity_value)
            except ValueError:
                severity = DiagnosticSeverity.ERROR
            summary = str(item.get("summary") or item.get("detail") or "unknown problem")
            position = item.get("pos")
            filename = position.get("filename") if isinstance(position, Mapping) else None
            diagnostics.append(
                Diagnostic(
                    severity=severity,
                    code="config-diagnostic",
                    summary=summary,
                    subject=filename,
                )
            )
        return diagnostics


__all__ = ["ConfigLoader", "collect_references"]
