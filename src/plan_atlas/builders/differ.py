"""Recursive attribute diffing of before/after value trees."""

from __future__ import annotations

from typing import Any, List, Mapping, Tuple

from ..models import AttributeDiff, DiffKind
from ..models.overview import PathStep

SENSITIVE_PLACEHOLDER = "(sensitive value)"
UNKNOWN_PLACEHOLDER = "(known after apply)"


class _Missing:
    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return "<missing>"


MISSING: Any = _Missing()


def _child(marker: Any, step: PathStep) -> Any:
    """Descend into a sensitivity or unknown marker tree."""

    if marker is True:
        return True
    if isinstance(marker, Mapping) and isinstance(step, str):
        return marker.get(step)
    if isinstance(marker, list) and isinstance(step, int) and 0 <= step < len(marker):
        return marker[step]
    return None


def redact(value: Any, marker: Any, placeholder: str = SENSITIVE_PLACEHOLDER) -> Any:
    """Return ``value`` with every part flagged by ``marker`` replaced by ``placeholder``."""

    if value is MISSING or value is None:
        return None
    if marker is True:
        return placeholder
    if isinstance(value, Mapping):
        return {key: redact(item, _child(marker, key), placeholder) for key, item in value.items()}
    if isinstance(value, list):
        return [redact(item, _child(marker, index), placeholder) for index, item in enumerate(value)]
    return value


def _contains_true(marker: Any) -> bool:
    if marker is True:
        return True
    if isinstance(marker, Mapping):
        return any(_contains_true(item) for item in marker.values())
    if isinstance(marker, list):
        return any(_contains_true(item) for item in marker)
    return False


class AttributeDiffer:
    """Compare two value trees and report only the paths that differ."""

    def __init__(
        self,
        *,
        sensitive_placeholder: str = SENSITIVE_PLACEHOLDER,
        unknown_placeholder: str = UNKNOWN_PLACEHOLDER,
    ) -> None:
        self.sensitive_placeholder = sensitive_placeholder
        self.unknown_placeholder = unknown_placeholder

    def diff(
        self,
        before: Any,
        after: Any,
        *,
        before_sensitive: Any = None,
        after_sensitive: Any = None,
        after_unknown: Any = None,
    ) -> List[AttributeDiff]:
        diffs: List[AttributeDiff] = []
        self._compare((), before, after, before_sensitive, after_sensitive, after_unknown, diffs)
        return diffs

    # ------------------------------------------------------------------
    def _compare(
        self,
        path: Tuple[PathStep, ...],
        before: Any,
        after: Any,
        before_marker: Any,
        after_marker: Any,
        unknown_marker: Any,
        diffs: List[AttributeDiff],
    ) -> None:
        sensitive = before_marker is True or after_marker is True

        if unknown_marker is True:
            kind = DiffKind.ADDED if before is MISSING or before is None else DiffKind.CHANGED
            if sensitive:
                kind = DiffKind.SENSITIVE
            diffs.append(
                AttributeDiff(
                    path=path,
                    before=self._redact(before, before_marker),
                    after=self.unknown_placeholder,
                    kind=kind,
                )
            )
            return

        if before is MISSING and after is MISSING:
            return

        if sensitive:
            if before != after:
                diffs.append(
                    AttributeDiff(
                        path=path,
                        before=None if before is MISSING else self.sensitive_placeholder,
                        after=None if after is MISSING else self.sensitive_placeholder,
                        kind=DiffKind.SENSITIVE,
                    )
                )
            return

        if before is MISSING:
            diffs.append(self._whole(path, before, after, before_marker, after_marker, DiffKind.ADDED))
            return
        if after is MISSING:
            diffs.append(self._whole(path, before, after, before_marker, after_marker, DiffKind.REMOVED))
            return

        if isinstance(before, Mapping) and isinstance(after, Mapping):
            keys = list(after)
            keys.extend(key for key in before if key not in after)
            if isinstance(unknown_marker, Mapping):
                keys.extend(key for key in unknown_marker if key not in keys)
            for key in keys:
                self._compare(
                    path + (key,),
                    before.get(key, MISSING),
                    after.get(key, MISSING),
                    _child(before_marker, key),
                    _child(after_marker, key),
                    _child(unknown_marker, key),
                    diffs,
                )
            return

        if (
            isinstance(before, list)
            and isinstance(after, list)
            and len(before) == len(after)
        ):
            for index, (old, new) in enumerate(zip(before, after)):
                self._compare(
                    path + (index,),
                    old,
                    new,
                    _child(before_marker, index),
                    _child(after_marker, index),
                    _child(unknown_marker, index),
                    diffs,
                )
            return

        if before != after or _contains_true(unknown_marker):
            diffs.append(self._whole(path, before, after, before_marker, after_marker, DiffKind.CHANGED))

    def _whole(
        self,
        path: Tuple[PathStep, ...],
        before: Any,
        after: Any,
        before_marker: Any,
        after_marker: Any,
        kind: DiffKind,
    ) -> AttributeDiff:
        if _contains_true(before_marker) or _contains_true(after_marker):
            # Part of the value is sensitive; the entry is reported redacted.
            kind = DiffKind.SENSITIVE
        return AttributeDiff(
            path=path,
            before=self._redact(before, before_marker),
            after=self._redact(after, after_marker),
            kind=kind,
        )

    def _redact(self, value: Any, marker: Any) -> Any:
        return redact(value, marker, self.sensitive_placeholder)


def diff_values(
    before: Any,
    after: Any,
    *,
    before_sensitive: Any = None,
    after_sensitive: Any = None,
    after_unknown: Any = None,
    placeholder: str = SENSITIVE_PLACEHOLDER,
) -> List[AttributeDiff]:
    """Convenience wrapper around :class:`AttributeDiffer`."""

    return AttributeDiffer(sensitive_placeholder=placeholder).diff(
        before,
        after,
        before_sensitive=before_sensitive,
        after_sensitive=after_sensitive,
        after_unknown=after_unknown,
    )


__all__ = [
    "AttributeDiffer",
    "MISSING",
    "SENSITIVE_PLACEHOLDER",
    "UNKNOWN_PLACEHOLDER",
    "diff_values",
    "redact",
]
