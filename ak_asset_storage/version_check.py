"""Detection of new remote versions and registration of them for download."""

from __future__ import annotations

import logging

from .dto import RemoteVersion
from .entities import Version
from .errors import AppError
from .hot_update_list import HotUpdateList
from .ports import AkApiClient, DockerService, GithubService, NotificationService, VersionRepository

logger = logging.getLogger(__name__)


class VersionCheckService:
    """Compares the remote version with stored ones and records new versions."""

    def __init__(
        self,
        version_repo: VersionRepository,
        ak_client: AkApiClient,
        notification: NotificationService,
        docker_service: DockerService | None = None,
        github_service: GithubService | None = None,
    ) -> None:
        self._version_repo = version_repo
        self._ak_client = ak_client
        self._notification = notification
        self._docker_service = docker_service
        self._github_service = github_service

    async def perform_check(self) -> bool:
        """Run one check; return whether a new version was recorded."""
        try:
            remote = await self._ak_client.get_version()
            logger.info("remote version %s %s", remote.client_version, remote.res_version)
            return await self.check_and_save(remote)
        except Exception as exc:
            logger.error("check failed: %r", exc)
            raise

    async def check_and_save(self, remote: RemoteVersion) -> bool:
        """Record ``remote`` if it is unknown; return whether it was recorded."""
        if await self._version_repo.is_client_and_res_exist(
            remote.client_version, remote.res_version
        ):
            logger.info("no change, skip")
            return False

        prev = await self._version_repo.get_latest_version()
        await self._notification.notify_update(
            prev.client if prev is not None else "",
            prev.res if prev is not None else "",
            remote.client_version,
            remote.res_version,
        )

        hot_update_list = await self._ak_client.get_hot_update_list(remote.res_version)
        version = Version(
            res=remote.res_version,
            client=remote.client_version,
            is_ready=False,
            hot_update_list=HotUpdateList.from_json(hot_update_list),
        )
        await self._version_repo.create_version(version)
        logger.info("new version created and ready for download")

        if self._github_service is not None:
            logger.info("Attempting to dispatch GitHub workflow for new version")
            try:
                await self._github_service.dispatch_workflow()
            except AppError as exc:
                logger.error("Failed to dispatch GitHub workflow: %s", exc)
            else:
                logger.info("GitHub workflow dispatched successfully")

        if self._docker_service is not None and prev is not None:
            logger.info("Attempting to launch Docker container for new version")
            try:
                name = await self._docker_service.launch_container(
                    remote.client_version, remote.res_version, prev.client, prev.res
                )
            except AppError as exc:
                logger.error("Failed to launch Docker container: %s", exc)
            else:
                logger.info("Docker container launched successfully: %s", name)

        return True