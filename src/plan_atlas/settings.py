"""Settings file loading for the asset generator."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from .builders.differ import SENSITIVE_PLACEHOLDER

try:  # pragma: no cover - import guarded for optional dependency
    import yaml
except ModuleNotFoundError:  # pragma: no cover - handled in loader
    yaml = None  # type: ignore[assignment]


class SettingsError(RuntimeError):
    """Raised when a settings file cannot be loaded or parsed."""


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True, slots=True)
class Settings:
    """Options controlling a generation run."""

    name: str = "atlas"
    working_dir: Path = Path(".")
    terraform_bin: str = "terraform"
    output_dir: Path = Path("output")
    sensitive_placeholder: str = SENSITIVE_PLACEHOLDER
    collapse_modules: bool = True
    log_level: str = "INFO"

    def merged(self, overrides: Mapping[str, Any]) -> "Settings":
        """Return a copy with every non-``None`` override applied."""

        known = {item.name for item in fields(self)}
        values = {key: value for key, value in overrides.items() if key in known and value is not None}
        return replace(self, **_coerce(values))


_TRUE_VALUES = {"true", "yes", "on", "1"}
_FALSE_VALUES = {"false", "no", "off", "0"}


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise SettingsError(f"Setting {key!r} must be a boolean, got {value!r}")


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    coerced = dict(values)
    for key in ("working_dir", "output_dir"):
        if key in coerced:
            coerced[key] = Path(coerced[key])
    if "collapse_modules" in coerced:
        coerced["collapse_modules"] = _to_bool("collapse_modules", coerced["collapse_modules"])
    if "log_level" in coerced:
        level = str(coerced["log_level"]).strip().upper()
        if level not in _LOG_LEVELS:
            raise SettingsError(f"Unknown log level: {coerced['log_level']}")
        coerced["log_level"] = level
    for key in ("name", "terraform_bin", "sensitive_placeholder"):
        if key in coerced:
            coerced[key] = str(coerced[key])
    return coerced


def load_settings(path: Path | str | None = None, base: Settings | None = None) -> Settings:
    """Load settings from a YAML (or JSON) file layered over ``base``."""

    settings = base or Settings()
    if path is None:
        return settings

    path = Path(path)
    if not path.exists():
        raise SettingsError(f"Settings file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
        raise SettingsError(f"Failed to read settings file {path}") from exc

    if yaml is not None:
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise SettingsError(f"Invalid YAML in settings file {path}") from exc
    else:
        try:
            data = json.loads(content or "{}")
        except json.JSONDecodeError as exc:
            raise SettingsError("PyYAML is required to parse non-JSON settings files") from exc

    if not isinstance(data, Mapping):
        raise SettingsError(f"Settings file must be a mapping: {path}")

    return settings.merged(dict(data))


__all__ = ["Settings", "SettingsError", "load_settings"]
