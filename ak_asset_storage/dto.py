"""Data transfer objects returned by queries and the web API."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .errors import ApplicationError


def _rfc3339(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


@dataclass(frozen=True)
class AssetEntry:
    """A file or directory below the asset base path."""

    name: str
    path: str
    size: int
    create_at: str
    modified_at: str
    is_dir: bool

    @classmethod
    def from_path(cls, target_path: str | os.PathLike[str], base_path: str | os.PathLike[str]) -> AssetEntry:
        """Describe ``target_path``, with its path relative to ``base_path``."""
        target = Path(target_path)
        base = Path(base_path)
        try:
            meta = target.stat()
        except OSError as exc:
            raise ApplicationError(f"Failed to retrieve metadata: {exc}") from exc
        name = target.name
        if not name or name == "..":
            raise ApplicationError("Failed to convert file name to string")
        try:
            relative = target.relative_to(base)
        except ValueError as exc:
            raise ApplicationError("Failed to strip base path") from exc
        created = getattr(meta, "st_birthtime", None)
        if created is None:
            created = meta.st_ctime
        return cls(
            name=name,
            path="" if relative == Path(".") else str(relative),
            size=meta.st_size,
            create_at=_rfc3339(created),
            modified_at=_rfc3339(meta.st_mtime),
            is_dir=target.is_dir(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "create_at": self.create_at,
            "modified_at": self.modified_at,
            "is_dir": self.is_dir,
        }


@dataclass(frozen=True)
class AssetDirInfo:
    """A directory and its direct children."""

    dir: AssetEntry
    children: list[AssetEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dir": self.dir.to_dict(),
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class BundleDetailsDto:
    """A bundle joined with its file and version."""

    id: int
    path: str
    file_id: int
    file_hash: str
    file_size: int
    version_id: int
    version_res: str
    version_client: str
    version_is_ready: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "fileId": self.file_id,
            "fileHash": self.file_hash,
            "fileSize": self.file_size,
            "versionId": self.version_id,
            "versionRes": self.version_res,
            "versionClient": self.version_client,
            "versionIsReady": self.version_is_ready,
        }


@dataclass(frozen=True)
class BundleFilterDto:
    """Optional filters for a bundle query; ``None`` means no filter."""

    path: str | None = None
    hash: str | None = None
    file: int | None = None
    version: int | None = None


@dataclass(frozen=True)
class VersionDto:
    """Summary of a stored version."""

    id: int
    client_version: str
    res_version: str
    is_ready: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "clientVersion": self.client_version,
            "resVersion": self.res_version,
            "isReady": self.is_ready,
        }


@dataclass(frozen=True)
class VersionDetailDto:
    """A stored version with its raw hot update list."""

    id: int
    client_version: str
    res_version: str
    is_ready: bool
    hot_update_list: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "clientVersion": self.client_version,
            "resVersion": self.res_version,
            "isReady": self.is_ready,
            "hotUpdateList": self.hot_update_list,
        }


@dataclass(frozen=True)
class RemoteVersion:
    """The version pair currently announced by the remote server."""

    client_version: str
    res_version: str