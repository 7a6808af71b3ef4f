# ak-asset-storage

A library for keeping every published version of a game's resource bundles.
It records each client/resource version together with its hot-update list,
downloads the listed asset bundles, deduplicates them by content hash and
stores each distinct content once. A Starlette application exposes versions,
bundles, item demand data and a browsable asset tree over HTTP.

## Installing

```
pip install .
pip install ".[test]"   # pytest, pytest-asyncio and httpx for the test suite
```

## Modules

- `ak_asset_storage.errors` — `AppError` and its subclasses
  `ApplicationError`, `ExternalServiceError` and `DatabaseError` (an
  `ExternalServiceError` carrying a `message` and the underlying `source`).
- `ak_asset_storage.hot_update_list` — `HotUpdateList.from_json(text)` parses
  and validates a hot-update list into a tuple of `ABInfo` records and keeps
  the original text in `raw`. Invalid JSON or missing/ill-typed fields raise
  `ApplicationError`. `ABInfo.url()` gives the download name of a bundle:
  `ui/skin/2018#sale.ab` becomes `ui_skin_2018__sale.dat`.
- `ak_asset_storage.entities` — `Version`, `File` and `Bundle` dataclasses.
  `Version.from_raw(...)` builds a version from raw hot-update JSON;
  `File.is_large()` is true above 5 MiB.
- `ak_asset_storage.dto` — `VersionDto`, `VersionDetailDto`,
  `BundleDetailsDto`, `AssetEntry` (`AssetEntry.from_path(target, base)`
  describes a file or directory relative to a base path) and `AssetDirInfo`,
  each with `to_dict()` giving the JSON shape the API returns; plus
  `BundleFilterDto` and `RemoteVersion`.
- `ak_asset_storage.ports` — abstract base classes: `AkApiClient`,
  `StorageService`, `NotificationService`, `TorappuAssetService`,
  `DockerService`, `GithubService`, `Repository`, `VersionRepository`,
  `FileRepository`, `BundleRepository`, `ItemDemandRepository` and
  `ScheduledTask`.
- `ak_asset_storage.version_check` — `VersionCheckService.perform_check()`
  fetches the remote version and passes it to `check_and_save(remote)`, which
  returns `False` if that client/resource pair is already stored; otherwise it
  sends an update notice (with empty old versions when nothing is stored yet),
  fetches and saves the hot-update list as a new unready version, dispatches a
  GitHub workflow if a `GithubService` was given, launches a container if a
  `DockerService` was given and a previous version exists, and returns `True`.
  Failures of the GitHub and Docker calls are logged, not raised.
- `ak_asset_storage.asset_download` — `AssetDownloadService.perform_download()`
  syncs the oldest unready version and returns whether there was one;
  `manual_download(version_id=None)` syncs a given version or the oldest
  unready one. Bundles already recorded for the version are skipped; the rest
  are downloaded with at most `concurrent` (default 5) at once. Each download
  is hashed with `calc_sha256(data)` — the SHA-256 of the zip entries'
  contents concatenated in name order, so archive timestamps do not matter.
  New content is uploaded under `/ab/cd/<rest of hash>`; known content reuses
  the existing file record. The version is then marked ready and a
  download-finished notice is sent.
- `ak_asset_storage.sync_task` — `SyncTask`, a `ScheduledTask` that starts a
  background download loop on creation (it must be created inside a running
  event loop) and on every poll that finds a new version while no loop is
  running. The loop retries after `retry_delay` seconds (default 60) when a
  download fails. `stop()` cancels the loop.
- `ak_asset_storage.scheduler` — `SimpleScheduler(task)` with `start()`,
  `stop()`, `is_running()` and `task()`. It runs the task every
  `task.interval()` seconds, skipping missed ticks, and hands failures to
  `task.on_error`. Starting twice raises `ApplicationError`.
- `ak_asset_storage.shutdown` — `await wait_for_shutdown_signal()` returns the
  signal once Ctrl+C or, outside Windows, SIGTERM arrives.
- `ak_asset_storage.persistence` — `SqlRepository(engine)` implements every
  repository interface on a SQLAlchemy `Engine`, running queries in a worker
  thread. `migrate()` creates the `versions`, `files`, `bundles` and
  `item_demands` tables. Database failures raise `DatabaseError`.
- `ak_asset_storage.web_errors` — `WebError` and its subclasses
  `InternalError` (500), `NotFound` (404), `ServiceUnavailable` (503),
  `Unauthorized` (401) and `BadRequest` (400); `from_app_error(error)` maps
  external-service errors to 503 and all others to 500;
  `error_response(error)` renders `{"detail": "..."}` with the error's status.
- `ak_asset_storage.web` — `AppState(repository, torappu, token,
  asset_base_path, static_dir=None)` and `build_app(state)`, which returns a
  Starlette application with gzip compression.

## Example

```python
from sqlalchemy import create_engine

from ak_asset_storage.asset_download import calc_sha256
from ak_asset_storage.hot_update_list import HotUpdateList
from ak_asset_storage.persistence import SqlRepository

hot_update = HotUpdateList.from_json(raw_json_text)
for info in hot_update.ab_infos:
    print(info.name, "->", info.url())

digest = calc_sha256(zip_bytes)  # hash of the archive's contents

repository = SqlRepository(create_engine("sqlite:///assets.db"))
```

## HTTP API

All API routes live under `/api/v1`:

| Method | Path                          | Purpose                                      |
|--------|-------------------------------|----------------------------------------------|
| GET    | `/_ping`                      | liveness, always `{"ok": true}`              |
| GET    | `/_health`                    | database reachability                        |
| GET    | `/version`                    | all versions, oldest first                   |
| GET    | `/version/{id}`               | one version with its hot-update list         |
| GET    | `/version/{id}/files`         | bundles of a version                         |
| GET    | `/bundle/{id}`                | one bundle with file and version details     |
| GET    | `/bundle`                     | filter by `path` (substring), `hash`, `file`, `version` |
| GET    | `/files/` and `/files/{path}` | list an asset directory                      |
| GET    | `/files?path=...`             | search assets by path                        |
| GET    | `/item/{item_name}/demand`    | stored demand JSON for an item               |
| POST   | `/item/demand`                | replace all demands; needs the `torappu-auth` header equal to `AppState.token` |
| GET    | `/openapi.json`               | a short OpenAPI description of these routes  |

Files below `asset_base_path/raw` are served under `/assets` and files below
`asset_base_path/gamedata` under `/gamedata`; plain-text files are sent with
`charset=utf-8`. Any other path is looked up in `static_dir`, falling back to
its `index.html`, and answers `404` when neither exists.

## What the package does not include

- No command-line program and no server launcher: `build_app` returns an ASGI
  application, and hosting it is left to an ASGI server of your choice.
- No configuration file loading or logging/error-reporting setup.
- No concrete implementations of `AkApiClient`, `StorageService`,
  `NotificationService`, `TorappuAssetService`, `DockerService` or
  `GithubService`; supply your own subclasses of the classes in
  `ak_asset_storage.ports`.