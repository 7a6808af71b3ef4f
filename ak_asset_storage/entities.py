"""Core entities: versions, stored files and the bundles linking them."""

from __future__ import annotations

from dataclasses import dataclass

from .hot_update_list import HotUpdateList

LARGE_FILE_THRESHOLD = 5 * 1024 * 1024


@dataclass
class Bundle:
    """A file as it appears at a path within a specific version."""

    path: str
    version_id: int
    file_id: int
    id: int | None = None


@dataclass
class File:
    """A physical file stored once, identified by its content hash."""

    hash: str
    size: int
    id: int | None = None

    def is_large(self) -> bool:
        """Whether the file is larger than 5 MiB."""
        return self.size > LARGE_FILE_THRESHOLD


@dataclass
class Version:
    """A game client version together with its resource hot update list."""

    res: str
    client: str
    is_ready: bool
    hot_update_list: HotUpdateList
    id: int | None = None

    @classmethod
    def from_raw(
        cls,
        res: str,
        client: str,
        is_ready: bool,
        hot_update_list: str,
        id: int | None = None,
    ) -> Version:
        """Build a version from the raw JSON text of its hot update list."""
        return cls(
            res=res,
            client=client,
            is_ready=is_ready,
            hot_update_list=HotUpdateList.from_json(hot_update_list),
            id=id,
        )