"""Download of the bundles of pending versions into content-addressed storage."""

from __future__ import annotations

import asyncio
import hashlib
import io
import logging
import zipfile
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from .entities import Bundle, File, Version
from .errors import ApplicationError
from .hot_update_list import ABInfo
from .ports import AkApiClient, NotificationService, StorageService

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_MAX_FILE_SIZE = 2**31 - 1


def calc_sha256(data: bytes) -> str:
    """Hash the contents of a zip archive, ignoring its metadata.

    Archives with identical entries but different timestamps hash the same:
    entry contents are concatenated in name order and hashed together.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, OSError) as exc:
        raise ApplicationError(f"Failed to create zip archive: {exc}") from exc
    digest = hashlib.sha256()
    with archive:
        for name in sorted(archive.namelist()):
            try:
                digest.update(archive.read(name))
            except (zipfile.BadZipFile, OSError, KeyError, RuntimeError) as exc:
                raise ApplicationError(f"Failed to read zip file: {exc}") from exc
    return digest.hexdigest()


async def _for_each_bounded(
    items: Iterable[_T], func: Callable[[_T], Awaitable[Any]], limit: int
) -> None:
    """Await ``func`` on every item, at most ``limit`` at once (0: no limit).

    Stops at the first failure, cancelling the rest, and raises it.
    """
    semaphore = asyncio.Semaphore(limit) if limit > 0 else None

    async def guarded(item: _T) -> None:
        if semaphore is None:
            await func(item)
            return
        async with semaphore:
            await func(item)

    tasks = [asyncio.ensure_future(guarded(item)) for item in items]
    if not tasks:
        return
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
    for task in tasks:
        if task in done and not task.cancelled() and task.exception() is not None:
            raise task.exception()  # type: ignore[misc]


class AssetDownloadService:
    """Downloads every bundle of a version, deduplicating files by content."""

    def __init__(
        self,
        repo: Any,
        ak_client: AkApiClient,
        notification: NotificationService,
        storage: StorageService,
        concurrent: int = 5,
    ) -> None:
        self._repo = repo
        self._ak_client = ak_client
        self._notification = notification
        self._storage = storage
        self._concurrent = concurrent

    async def perform_download(self) -> bool:
        """Sync the oldest unready version; return whether there was one."""
        try:
            return await self._sync_oldest_version()
        except Exception as exc:
            logger.error("download failed: %r", exc)
            raise

    async def manual_download(self, version_id: int | None = None) -> None:
        """Sync the given version, or the oldest unready one."""
        if version_id is not None:
            await self._sync_specific_version(version_id)
        else:
            await self._sync_oldest_version()

    async def _sync_oldest_version(self) -> bool:
        version = await self._repo.get_oldest_unready_version()
        if version is None:
            logger.info("no pending version to sync")
            return False
        logger.info("start sync %s-%s", version.res, version.client)
        await self._sync_version(version)
        return True

    async def _sync_specific_version(self, version_id: int) -> None:
        version = await self._repo.get_version_by_id(version_id)
        if version is None:
            raise ApplicationError(f"Version not found: {version_id}")
        logger.info("start sync specific version %s-%s", version.res, version.client)
        await self._sync_version(version)

    async def _sync_version(self, version: Version) -> None:
        if version.id is None:
            raise ApplicationError("Version ID is missing")
        version_id = version.id

        async def handle(info: ABInfo) -> None:
            await self._skip_or_download(info, version_id, version.res)

        await _for_each_bounded(version.hot_update_list.ab_infos, handle, self._concurrent)
        await self._repo.mark_version_ready(version_id)
        logger.info("sync version %s finished", version.res)
        await self._notification.notify_download_finished(version.client, version.res)

    async def _skip_or_download(self, info: ABInfo, version_id: int, res_version: str) -> None:
        existing = await self._repo.get_bundle_by_version_and_path(version_id, info.name)
        if existing is not None:
            logger.info("%s is already downloaded, skip", info.name)
            return
        file_id = await self._sync_file(res_version, info.url())
        await self._repo.create_bundle(
            Bundle(path=info.name, version_id=version_id, file_id=file_id)
        )
        logger.info("%s sync finished", info.name)

    async def _sync_file(self, res_version: str, path: str) -> int:
        data = await self._ak_client.download_file(res_version, path)
        sha = calc_sha256(data)

        existing = await self._repo.get_file_by_hash(sha)
        if existing is not None:
            logger.debug("file %s already exists, skip", path)
            if existing.id is None:
                raise ApplicationError("File ID is missing")
            return existing.id

        await self._storage.upload(f"/{sha[:2]}/{sha[2:4]}/{sha[4:]}", data)
        if len(data) > _MAX_FILE_SIZE:
            raise ApplicationError("Failed to convert file size to i32")
        file_id = await self._repo.create_file(File(hash=sha, size=len(data)))
        logger.debug("sync file %s finished", path)
        return file_id