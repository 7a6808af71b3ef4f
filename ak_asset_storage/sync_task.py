"""Periodic task that checks for new versions and downloads their assets."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .errors import AppError
from .ports import ScheduledTask

logger = logging.getLogger(__name__)

RETRY_DELAY = 60.0


class SyncTask(ScheduledTask):
    """Combines version checking with a background download loop.

    A download loop is started on creation and again whenever a poll finds a
    new version while no loop is running. The loop keeps syncing pending
    versions until none is left, waiting ``retry_delay`` seconds after a
    failed attempt.
    """

    def __init__(
        self,
        version_check_service: Any,
        download_service: Any,
        poll_interval: float,
        *,
        retry_delay: float = RETRY_DELAY,
    ) -> None:
        self._version_check_service = version_check_service
        self._download_service = download_service
        self._poll_interval = poll_interval
        self._retry_delay = retry_delay
        self._download_task: asyncio.Task[None] | None = None
        self._download_task = self._start_download_task()

    def _start_download_task(self) -> asyncio.Task[None]:
        return asyncio.get_running_loop().create_task(self._download_loop())

    async def _download_loop(self) -> None:
        try:
            while True:
                try:
                    has_more = await self._download_service.perform_download()
                except AppError as exc:
                    logger.error("Download failed: %r", exc)
                    await asyncio.sleep(self._retry_delay)
                    continue
                if not has_more:
                    logger.info("No more versions to download, exiting loop")
                    break
                logger.info("Continuing download for more versions")
        finally:
            if self._download_task is asyncio.current_task():
                self._download_task = None

    async def perform_poll(self) -> None:
        """Check for a new version and start downloading if one was found."""
        try:
            has_update = await self._version_check_service.perform_check()
        except Exception as exc:
            logger.error("Version check failed: %r", exc)
            raise
        if not has_update:
            return
        logger.info("New version detected, starting download...")
        if self._download_task is not None and not self._download_task.done():
            logger.info("Download task is already running")
        else:
            self._download_task = self._start_download_task()

    async def run(self) -> None:
        try:
            await self.perform_poll()
        except Exception as exc:
            logger.error("Version poll failed: %r", exc)
            raise
        logger.info("Version poll completed successfully")

    def interval(self) -> float:
        return self._poll_interval

    def on_error(self, error: AppError) -> None:
        logger.error("Version poll task failed: %r", error)

    def stop(self) -> None:
        task, self._download_task = self._download_task, None
        if task is not None:
            logger.info("Stopping download task")
            task.cancel()