"""Relational storage of versions, files, bundles and item demands."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    delete,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.engine import Engine, Row
from sqlalchemy.exc import SQLAlchemyError

from .dto import BundleDetailsDto, BundleFilterDto, VersionDetailDto, VersionDto
from .entities import Bundle, File, Version
from .errors import DatabaseError, ExternalServiceError
from .ports import (
    BundleRepository,
    FileRepository,
    ItemDemandRepository,
    Repository,
    VersionRepository,
)

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

metadata = MetaData()

versions_table = Table(
    "versions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("res", String, nullable=False),
    Column("client", String, nullable=False),
    Column("is_ready", Boolean, nullable=False, default=False),
    Column("hot_update_list", Text, nullable=False),
)

files_table = Table(
    "files",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("hash", String, nullable=False, index=True),
    Column("size", Integer, nullable=False),
)

bundles_table = Table(
    "bundles",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("path", String, nullable=False),
    Column("version", Integer, ForeignKey("versions.id"), nullable=False),
    Column("file", Integer, ForeignKey("files.id"), nullable=False),
)

item_demands_table = Table(
    "item_demands",
    metadata,
    Column("name", String, primary_key=True),
    Column("usage", Text, nullable=False),
)

_VERSION_COLUMNS = (
    versions_table.c.id,
    versions_table.c.res,
    versions_table.c.client,
    versions_table.c.is_ready,
    versions_table.c.hot_update_list,
)

_BUNDLE_DETAILS = select(
    bundles_table.c.id.label("id"),
    bundles_table.c.path.label("path"),
    bundles_table.c.file.label("file_id"),
    bundles_table.c.version.label("version_id"),
    files_table.c.hash.label("file_hash"),
    files_table.c.size.label("file_size"),
    versions_table.c.client.label("version_client"),
    versions_table.c.res.label("version_res"),
    versions_table.c.is_ready.label("version_is_ready"),
).select_from(
    bundles_table.join(files_table, bundles_table.c.file == files_table.c.id).join(
        versions_table, bundles_table.c.version == versions_table.c.id
    )
)


def _version_from_row(row: Row[Any]) -> Version:
    return Version.from_raw(
        row.res, row.client, bool(row.is_ready), row.hot_update_list, id=row.id
    )


def _details_from_row(row: Row[Any]) -> BundleDetailsDto:
    values = dict(row._mapping)
    values["version_is_ready"] = bool(values["version_is_ready"])
    return BundleDetailsDto(**values)


def _guarded(message: str, func: Callable[[], _T]) -> _T:
    try:
        return func()
    except SQLAlchemyError as exc:
        raise DatabaseError(message, exc) from exc


class SqlRepository(
    Repository, VersionRepository, FileRepository, BundleRepository, ItemDemandRepository
):
    """All repositories backed by one SQLAlchemy engine.

    Database calls run in a worker thread so they do not block the event loop.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    async def _run(self, message: str, func: Callable[[], _T]) -> _T:
        return await asyncio.to_thread(_guarded, message, func)

    # Repository

    async def health_check(self) -> bool:
        def check() -> bool:
            try:
                with self.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
            except SQLAlchemyError:
                return False
            return True

        return await asyncio.to_thread(check)

    async def migrate(self) -> None:
        logger.info("Running database migrations")

        def create() -> None:
            try:
                metadata.create_all(self.engine)
            except SQLAlchemyError as exc:
                raise ExternalServiceError(f"Database migration error:\n{exc}") from exc

        await asyncio.to_thread(create)
        logger.info("Database migrations completed")

    # VersionRepository

    async def create_version(self, version: Version) -> int:
        def create() -> int:
            with self.engine.begin() as conn:
                result = conn.execute(
                    insert(versions_table).values(
                        res=version.res,
                        client=version.client,
                        is_ready=version.is_ready,
                        hot_update_list=version.hot_update_list.raw,
                    )
                )
                return int(result.inserted_primary_key[0])

        return await self._run("Failed to create version", create)

    async def _fetch_version(self, message: str, statement: Any) -> Version | None:
        def fetch() -> Row[Any] | None:
            with self.engine.connect() as conn:
                return conn.execute(statement).first()

        row = await self._run(message, fetch)
        return None if row is None else _version_from_row(row)

    async def get_version_by_id(self, id: int) -> Version | None:
        statement = select(*_VERSION_COLUMNS).where(versions_table.c.id == id)
        return await self._fetch_version("Failed to get version by id", statement)

    async def get_latest_version(self) -> Version | None:
        statement = select(*_VERSION_COLUMNS).order_by(versions_table.c.id.desc()).limit(1)
        return await self._fetch_version("Failed to get latest version", statement)

    async def is_client_and_res_exist(self, client: str, res: str) -> bool:
        statement = select(versions_table.c.id).where(
            versions_table.c.client == client, versions_table.c.res == res
        )

        def fetch() -> bool:
            with self.engine.connect() as conn:
                return conn.execute(statement).first() is not None

        return await self._run("Failed to get version by client and res", fetch)

    async def get_oldest_unready_version(self) -> Version | None:
        statement = (
            select(*_VERSION_COLUMNS)
            .where(versions_table.c.is_ready.is_(False))
            .order_by(versions_table.c.id.asc())
            .limit(1)
        )
        return await self._fetch_version("Failed to get unready version", statement)

    async def mark_version_ready(self, id: int) -> None:
        def mark() -> None:
            with self.engine.begin() as conn:
                conn.execute(
                    update(versions_table).where(versions_table.c.id == id).values(is_ready=True)
                )

        await self._run("Failed to mark version as ready", mark)

    async def query_versions(self) -> list[VersionDto]:
        statement = select(
            versions_table.c.id,
            versions_table.c.client,
            versions_table.c.res,
            versions_table.c.is_ready,
        ).order_by(versions_table.c.id.asc())

        def fetch() -> list[VersionDto]:
            with self.engine.connect() as conn:
                return [
                    VersionDto(
                        id=row.id,
                        client_version=row.client,
                        res_version=row.res,
                        is_ready=bool(row.is_ready),
                    )
                    for row in conn.execute(statement)
                ]

        return await self._run("Failed to query versions", fetch)

    async def query_version_detail_by_id(self, id: int) -> VersionDetailDto | None:
        statement = select(*_VERSION_COLUMNS).where(versions_table.c.id == id)

        def fetch() -> VersionDetailDto | None:
            with self.engine.connect() as conn:
                row = conn.execute(statement).first()
            if row is None:
                return None
            return VersionDetailDto(
                id=row.id,
                client_version=row.client,
                res_version=row.res,
                is_ready=bool(row.is_ready),
                hot_update_list=row.hot_update_list,
            )

        return await self._run("Failed to query version by id", fetch)

    # FileRepository

    async def create_file(self, file: File) -> int:
        def create() -> int:
            with self.engine.begin() as conn:
                result = conn.execute(insert(files_table).values(hash=file.hash, size=file.size))
                return int(result.inserted_primary_key[0])

        return await self._run("Failed to create file", create)

    async def get_file_by_hash(self, hash: str) -> File | None:
        statement = select(files_table.c.id, files_table.c.hash, files_table.c.size).where(
            files_table.c.hash == hash
        )

        def fetch() -> File | None:
            with self.engine.connect() as conn:
                row = conn.execute(statement).first()
            return None if row is None else File(hash=row.hash, size=row.size, id=row.id)

        return await self._run("Failed to get file by hash", fetch)

    # BundleRepository

    async def create_bundle(self, bundle: Bundle) -> int:
        def create() -> int:
            with self.engine.begin() as conn:
                result = conn.execute(
                    insert(bundles_table).values(
                        path=bundle.path, version=bundle.version_id, file=bundle.file_id
                    )
                )
                return int(result.inserted_primary_key[0])

        return await self._run("Failed to create bundle", create)

    async def get_bundle_by_version_and_path(self, version_id: int, path: str) -> Bundle | None:
        statement = select(
            bundles_table.c.id,
            bundles_table.c.path,
            bundles_table.c.version,
            bundles_table.c.file,
        ).where(bundles_table.c.version == version_id, bundles_table.c.path == path)

        def fetch() -> Bundle | None:
            with self.engine.connect() as conn:
                row = conn.execute(statement).first()
            if row is None:
                return None
            return Bundle(path=row.path, version_id=row.version, file_id=row.file, id=row.id)

        return await self._run("Failed to get bundle by version and path", fetch)

    async def _fetch_details(self, message: str, statement: Any) -> list[BundleDetailsDto]:
        def fetch() -> list[BundleDetailsDto]:
            with self.engine.connect() as conn:
                return [_details_from_row(row) for row in conn.execute(statement)]

        return await self._run(message, fetch)

    async def query_bundle_by_id_with_details(self, id: int) -> BundleDetailsDto | None:
        rows = await self._fetch_details(
            "Failed to get bundle by id with details",
            _BUNDLE_DETAILS.where(bundles_table.c.id == id),
        )
        return rows[0] if rows else None

    async def query_bundles_with_details(self, query: BundleFilterDto) -> list[BundleDetailsDto]:
        statement = _BUNDLE_DETAILS
        if query.path is not None:
            statement = statement.where(bundles_table.c.path.like(f"%{query.path}%"))
        if query.hash is not None:
            statement = statement.where(files_table.c.hash == query.hash)
        if query.file is not None:
            statement = statement.where(bundles_table.c.file == query.file)
        if query.version is not None:
            statement = statement.where(bundles_table.c.version == query.version)
        return await self._fetch_details("Failed to list bundles with details", statement)

    async def query_bundles_by_version_id(self, version_id: int) -> list[BundleDetailsDto]:
        return await self._fetch_details(
            "Failed to query bundles by version id",
            _BUNDLE_DETAILS.where(bundles_table.c.version == version_id),
        )

    # ItemDemandRepository

    async def query_usage_by_item_name(self, item_name: str) -> str | None:
        statement = select(item_demands_table.c.usage).where(
            item_demands_table.c.name == item_name
        )

        def fetch() -> str | None:
            with self.engine.connect() as conn:
                return conn.execute(statement).scalar_one_or_none()

        return await self._run("Failed to query item demand", fetch)

    async def replace_all_demands(self, demands: list[tuple[str, str]]) -> None:
        def replace() -> None:
            conn = _guarded("Failed to start transaction", self.engine.connect)
            with conn:
                transaction = _guarded("Failed to start transaction", conn.begin)
                _guarded(
                    "Failed to delete existing item demands",
                    lambda: conn.execute(delete(item_demands_table)),
                )
                for name, usage in demands:
                    _guarded(
                        f"Failed to insert item demand for {name}",
                        lambda name=name, usage=usage: conn.execute(
                            insert(item_demands_table).values(name=name, usage=usage)
                        ),
                    )
                _guarded("Failed to commit transaction", transaction.commit)

        await asyncio.to_thread(replace)