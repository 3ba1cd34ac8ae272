"""Resource address parsing and normalization.

Addresses are the join key between the planned changes and the configuration
tree, so every component builds them through :func:`parse_address` and renders
them with ``str()``. Both sides therefore agree on index quoting.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..errors import AddressError

InstanceKey = Optional[int | str]

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
_INTEGER = re.compile(r"^-?[0-9]+$")


def format_key(key: InstanceKey) -> str:
    """Render an instance key the way Terraform prints it in addresses."""

    if key is None:
        return ""
    if isinstance(key, bool):
        raise AddressError(f"Boolean instance keys are not supported: {key!r}")
    if isinstance(key, int):
        return f"[{key}]"
    return f"[{json.dumps(key, ensure_ascii=False)}]"


@dataclass(frozen=True, slots=True)
class ModuleStep:
    """One ``module.<name>[<key>]`` hop of a module path."""

    name: str
    key: InstanceKey = None

    def __str__(self) -> str:
        return f"module.{self.name}{format_key(self.key)}"


@dataclass(frozen=True, slots=True)
class ResourceAddress:
    """A parsed, normalized resource instance address."""

    module_path: Tuple[ModuleStep, ...]
    type: str
    name: str
    key: InstanceKey = None
    mode: str = "managed"

    def __str__(self) -> str:
        return ".".join(part for part in (self.module_address, self.local) if part)

    @property
    def is_data_source(self) -> bool:
        return self.mode == "data"

    @property
    def module_address(self) -> str:
        return module_path_text(self.module_path)

    @property
    def declaration(self) -> str:
        """Resource part of the address without its instance key."""

        prefix = "data." if self.is_data_source else ""
        return f"{prefix}{self.type}.{self.name}"

    @property
    def local(self) -> str:
        return f"{self.declaration}{format_key(self.key)}"

    @property
    def label(self) -> str:
        """Final address segment, used as the display label."""

        return self.local

    @property
    def config_address(self) -> str:
        """The declaration address with every instance key stripped."""

        modules = [f"module.{step.name}" for step in self.module_path]
        return ".".join([*modules, self.declaration])

    @property
    def module_names(self) -> Tuple[str, ...]:
        return tuple(step.name for step in self.module_path)

    @property
    def is_instance(self) -> bool:
        """``True`` when the resource or any enclosing module carries a key."""

        return self.key is not None or any(step.key is not None for step in self.module_path)


def module_path_text(module_path: Tuple[ModuleStep, ...] | List[ModuleStep]) -> str:
    return ".".join(str(step) for step in module_path)


# ----------------------------------------------------------------------
def _tokenize(text: str) -> List[Tuple[str, InstanceKey]]:
    """Split an address into ``(identifier, key)`` segments.

    Dots inside an index are not separators.
    """

    segments: List[Tuple[str, InstanceKey]] = []
    position = 0
    length = len(text)

    while True:
        start = position
        while position < length and text[position] not in ".[":
            position += 1
        identifier = text[start:position]
        if not _IDENTIFIER.match(identifier):
            raise AddressError(f"Invalid segment {identifier!r} in address {text!r}")

        key: InstanceKey = None
        if position < length and text[position] == "[":
            key, position = _read_key(text, position)

        segments.append((identifier, key))

        if position == length:
            return segments
        if text[position] != ".":
            raise AddressError(f"Unexpected character {text[position]!r} in address {text!r}")
        position += 1
        if position == length:
            raise AddressError(f"Address ends with a separator: {text!r}")


def _read_key(text: str, position: int) -> Tuple[InstanceKey, int]:
    # position points at "["
    cursor = position + 1
    if cursor < len(text) and text[cursor] == '"':
        cursor += 1
        escaped = False
        while cursor < len(text):
            char = text[cursor]
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                break
            cursor += 1
        else:
            raise AddressError(f"Unterminated string key in address {text!r}")

        literal = text[position + 1 : cursor + 1]
        try:
            key: InstanceKey = json.loads(literal)
        except json.JSONDecodeError as exc:
            raise AddressError(f"Invalid string key {literal} in address {text!r}") from exc
        cursor += 1
        if cursor >= len(text) or text[cursor] != "]":
            raise AddressError(f"Unterminated index in address {text!r}")
        return key, cursor + 1

    closing = text.find("]", cursor)
    if closing == -1:
        raise AddressError(f"Unterminated index in address {text!r}")
    raw = text[cursor:closing].strip()
    if not _INTEGER.match(raw):
        raise AddressError(f"Invalid index [{raw}] in address {text!r}")
    return int(raw), closing + 1


def _module_steps(
    segments: List[Tuple[str, InstanceKey]], text: str
) -> Tuple[Tuple[ModuleStep, ...], int]:
    steps: List[ModuleStep] = []
    cursor = 0
    while cursor < len(segments) and segments[cursor][0] == "module":
        if segments[cursor][1] is not None:
            raise AddressError(f"Index on 'module' keyword in address {text!r}")
        if cursor + 1 >= len(segments):
            raise AddressError(f"Module call name missing in address {text!r}")
        name, key = segments[cursor + 1]
        steps.append(ModuleStep(name=name, key=key))
        cursor += 2
    return tuple(steps), cursor


def parse_address(text: str) -> ResourceAddress:
    """Parse ``text`` into a :class:`ResourceAddress`.

    Raises :class:`AddressError` for malformed input.
    """

    if not isinstance(text, str) or not text.strip():
        raise AddressError(f"Resource address must be a non-empty string: {text!r}")

    segments = _tokenize(text.strip())
    module_path, cursor = _module_steps(segments, text)
    remainder = segments[cursor:]

    mode = "managed"
    if remainder and remainder[0][0] == "data" and len(remainder) == 3:
        if remainder[0][1] is not None:
            raise AddressError(f"Index on 'data' keyword in address {text!r}")
        mode = "data"
        remainder = remainder[1:]

    if len(remainder) != 2:
        raise AddressError(f"Expected '<type>.<name>' after module path in address {text!r}")

    (resource_type, type_key), (name, key) = remainder
    if type_key is not None:
        raise AddressError(f"Index on resource type in address {text!r}")

    return ResourceAddress(
        module_path=module_path,
        type=resource_type,
        name=name,
        key=key,
        mode=mode,
    )


def parse_module_address(text: str | None) -> Tuple[ModuleStep, ...]:
    """Parse a bare module prefix such as ``module.a.module.b["x"]``."""

    if not text:
        return ()

    segments = _tokenize(text.strip())
    module_path, cursor = _module_steps(segments, text)
    if cursor != len(segments):
        raise AddressError(f"Invalid module address {text!r}")
    return module_path


__all__ = [
    "InstanceKey",
    "ModuleStep",
    "ResourceAddress",
    "format_key",
    "module_path_text",
    "parse_address",
    "parse_module_address",
]
