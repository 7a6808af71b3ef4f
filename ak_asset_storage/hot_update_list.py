"""Parsing of the hot update list published for each resource version."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .errors import ApplicationError


@dataclass(frozen=True)
class ABInfo:
    """One asset bundle entry of a hot update list."""

    ab_size: int
    hash: str
    md5: str
    name: str
    total_size: int

    def url(self) -> str:
        """Return the download file name of this bundle."""
        path = self.name.replace("/", "_").replace("#", "__")
        left, sep, _ = path.rpartition(".")
        return f"{left}.dat" if sep else path


def _field(obj: dict[str, Any], key: str, kind: type) -> Any:
    if key not in obj:
        raise ApplicationError(f"Invalid JSON in hot update list: missing field `{key}`")
    value = obj[key]
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ApplicationError(
                f"Invalid JSON in hot update list: `{key}` must be a non-negative integer"
            )
    elif not isinstance(value, kind):
        raise ApplicationError(
            f"Invalid JSON in hot update list: `{key}` must be a {kind.__name__}"
        )
    return value


def _parse_ab_info(obj: Any) -> ABInfo:
    if not isinstance(obj, dict):
        raise ApplicationError("Invalid JSON in hot update list: abInfos entry must be an object")
    return ABInfo(
        ab_size=_field(obj, "abSize", int),
        hash=_field(obj, "hash", str),
        md5=_field(obj, "md5", str),
        name=_field(obj, "name", str),
        total_size=_field(obj, "totalSize", int),
    )


@dataclass(frozen=True)
class HotUpdateList:
    """A validated hot update list together with its original JSON text."""

    ab_infos: tuple[ABInfo, ...]
    raw: str = field(repr=False)

    @classmethod
    def from_json(cls, text: str) -> HotUpdateList:
        """Parse and validate a hot update list, keeping the raw text."""
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, TypeError) as exc:
            raise ApplicationError(f"Invalid JSON in hot update list: {exc}") from exc
        if not isinstance(data, dict):
            raise ApplicationError("Invalid JSON in hot update list: expected an object")
        infos = _field(data, "abInfos", list)
        return cls(ab_infos=tuple(_parse_ab_info(item) for item in infos), raw=text)

    def __str__(self) -> str:
        return self.raw