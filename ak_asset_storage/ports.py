"""Abstract interfaces the application services depend on."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .dto import (
    AssetDirInfo,
    AssetEntry,
    BundleDetailsDto,
    BundleFilterDto,
    RemoteVersion,
    VersionDetailDto,
    VersionDto,
)
from .entities import Bundle, File, Version
from .errors import AppError

logger = logging.getLogger(__name__)


class AkApiClient(ABC):
    """Access to the remote game resource server."""

    @abstractmethod
    async def get_version(self) -> RemoteVersion: ...

    @abstractmethod
    async def get_hot_update_list(self, res_version: str) -> str: ...

    @abstractmethod
    async def download_file(self, res_version: str, path: str) -> bytes: ...


class StorageService(ABC):
    """Object storage for downloaded files."""

    @abstractmethod
    async def upload(self, path: str, data: bytes) -> None: ...


class NotificationService(ABC):
    """Sends notices about new versions and finished downloads."""

    @abstractmethod
    async def notify_update(
        self, old_client: str, old_res: str, new_client: str, new_res: str
    ) -> None: ...

    @abstractmethod
    async def notify_download_finished(self, client_version: str, res_version: str) -> None: ...


class TorappuAssetService(ABC):
    """Browsing of the unpacked asset tree."""

    @abstractmethod
    async def list_asset(self, path: str) -> AssetDirInfo: ...

    @abstractmethod
    async def search_assets_by_path(self, path: str) -> list[AssetEntry]: ...


class DockerService(ABC):
    """Launches the processing container for a new version."""

    @abstractmethod
    async def launch_container(
        self,
        client_version: str,
        res_version: str,
        prev_client_version: str,
        prev_res_version: str,
    ) -> str: ...


class GithubService(ABC):
    """Triggers a workflow run."""

    @abstractmethod
    async def dispatch_workflow(self) -> None: ...


class Repository(ABC):
    """Database lifecycle operations."""

    @abstractmethod
    async def health_check(self) -> bool: ...

    @abstractmethod
    async def migrate(self) -> None: ...


class VersionRepository(ABC):
    """Storage of versions."""

    @abstractmethod
    async def create_version(self, version: Version) -> int: ...

    @abstractmethod
    async def get_version_by_id(self, id: int) -> Version | None: ...

    @abstractmethod
    async def get_latest_version(self) -> Version | None: ...

    @abstractmethod
    async def is_client_and_res_exist(self, client: str, res: str) -> bool: ...

    @abstractmethod
    async def get_oldest_unready_version(self) -> Version | None: ...

    @abstractmethod
    async def mark_version_ready(self, id: int) -> None: ...

    @abstractmethod
    async def query_versions(self) -> list[VersionDto]: ...

    @abstractmethod
    async def query_version_detail_by_id(self, id: int) -> VersionDetailDto | None: ...


class FileRepository(ABC):
    """Storage of content-addressed files."""

    @abstractmethod
    async def create_file(self, file: File) -> int: ...

    @abstractmethod
    async def get_file_by_hash(self, hash: str) -> File | None: ...


class BundleRepository(ABC):
    """Storage of bundles and bundle queries."""

    @abstractmethod
    async def create_bundle(self, bundle: Bundle) -> int: ...

    @abstractmethod
    async def get_bundle_by_version_and_path(self, version_id: int, path: str) -> Bundle | None: ...

    @abstractmethod
    async def query_bundle_by_id_with_details(self, id: int) -> BundleDetailsDto | None: ...

    @abstractmethod
    async def query_bundles_with_details(self, query: BundleFilterDto) -> list[BundleDetailsDto]: ...

    @abstractmethod
    async def query_bundles_by_version_id(self, version_id: int) -> list[BundleDetailsDto]: ...


class ItemDemandRepository(ABC):
    """Storage of item demand documents."""

    @abstractmethod
    async def query_usage_by_item_name(self, item_name: str) -> str | None: ...

    @abstractmethod
    async def replace_all_demands(self, demands: list[tuple[str, str]]) -> None: ...


class ScheduledTask(ABC):
    """A task run periodically by a scheduler."""

    @abstractmethod
    async def run(self) -> None:
        """Execute the task once."""

    @abstractmethod
    def interval(self) -> float:
        """Seconds between executions."""

    def on_error(self, error: AppError) -> None:
        """Handle a failed run; logs the error by default."""
        logger.error("Task execution failed: %r", error)

    def stop(self) -> None:
        """Release anything the task started; nothing by default."""

    def should_continue(self) -> bool:
        """Whether the scheduler should keep running the task."""
        return True