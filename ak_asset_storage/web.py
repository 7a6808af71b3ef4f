"""HTTP interface: the JSON API, asset file serving and the front-end pages."""

from __future__ import annotations

import json
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles
from starlette.types import Message, Receive, Scope, Send

from .dto import BundleFilterDto
from .errors import AppError
from .ports import TorappuAssetService
from .web_errors import (
    BadRequest,
    NotFound,
    Unauthorized,
    WebError,
    error_response,
    from_app_error,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
INDEX_HTML = "index.html"
AUTH_HEADER = "torappu-auth"
_PLAIN_TEXT_UTF8 = b"text/plain; charset=utf-8"
_API_VERSION = "0.12.2"

_TAGS = [
    {"name": "version", "description": "Version management endpoints"},
    {"name": "bundle", "description": "Bundle management endpoints"},
    {"name": "item", "description": "Item demand endpoints"},
    {"name": "health", "description": "Health check endpoints"},
    {"name": "fs", "description": "File system endpoints"},
]

# (path, method, tag, summary)
_API_OPERATIONS = [
    ("/_ping", "get", None, "Liveness probe"),
    ("/_health", "get", None, "Database health"),
    ("/files", "get", "files", "Search assets by path"),
    ("/files/{path}", "get", "files", "List a directory"),
    ("/version", "get", "version", "List versions"),
    ("/version/{id}", "get", "version", "Get a version"),
    ("/version/{id}/files", "get", "version", "List the bundles of a version"),
    ("/bundle/{id}", "get", "bundle", "Get a bundle"),
    ("/bundle", "get", "bundle", "Filter bundles"),
    ("/item/{item_name}/demand", "get", "item", "Get the demand of an item"),
    ("/item/demand", "post", "item", "Replace all item demands"),
]


@dataclass
class AppState:
    """Everything the handlers need."""

    repository: Any
    torappu: TorappuAssetService
    token: str
    asset_base_path: Path
    static_dir: Path | None = None


def _state(request: Request) -> AppState:
    return request.app.state.ak


def _plain(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


def _json(value: Any) -> JSONResponse:
    return JSONResponse(_plain(value))


def _int_path_param(request: Request, name: str) -> int:
    raw = request.path_params[name]
    try:
        return int(raw)
    except ValueError:
        raise BadRequest(f"Invalid path parameter `{name}`: cannot parse `{raw}`") from None


def _optional_int_query(request: Request, name: str) -> int | None:
    raw = request.query_params.get(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        raise BadRequest(f"Invalid query parameter `{name}`: cannot parse `{raw}`") from None


# Health


async def ping(request: Request) -> JSONResponse:
    return JSONResponse({"ok": True})


async def health(request: Request) -> JSONResponse:
    ok = await _state(request).repository.health_check()
    return JSONResponse({"ok": bool(ok)})


# Assets


async def search_assets_by_path(request: Request) -> JSONResponse:
    path = request.query_params.get("path")
    if path is None:
        raise BadRequest("Failed to deserialize query string: missing field `path`")
    return _json(await _state(request).torappu.search_assets_by_path(path))


async def list_asset(request: Request) -> JSONResponse:
    path = request.path_params.get("path", "")
    return _json(await _state(request).torappu.list_asset(path))


# Versions


async def list_version(request: Request) -> JSONResponse:
    return _json(await _state(request).repository.query_versions())


async def get_version(request: Request) -> JSONResponse:
    version_id = _int_path_param(request, "id")
    detail = await _state(request).repository.query_version_detail_by_id(version_id)
    if detail is None:
        raise NotFound()
    return _json(detail)


async def get_files_by_version(request: Request) -> JSONResponse:
    version_id = _int_path_param(request, "id")
    return _json(await _state(request).repository.query_bundles_by_version_id(version_id))


# Bundles


async def get_bundle(request: Request) -> JSONResponse:
    bundle_id = _int_path_param(request, "id")
    details = await _state(request).repository.query_bundle_by_id_with_details(bundle_id)
    if details is None:
        raise NotFound()
    return _json(details)


async def filter_bundles(request: Request) -> JSONResponse:
    query = BundleFilterDto(
        path=request.query_params.get("path"),
        hash=request.query_params.get("hash"),
        file=_optional_int_query(request, "file"),
        version=_optional_int_query(request, "version"),
    )
    return _json(await _state(request).repository.query_bundles_with_details(query))


# Item demands


async def get_item_demand(request: Request) -> Response:
    item_name = request.path_params["item_name"]
    usage = await _state(request).repository.query_usage_by_item_name(item_name)
    if usage is None:
        raise NotFound()
    return Response(usage, media_type="application/json")


async def update_item_demands(request: Request) -> Response:
    state = _state(request)
    try:
        body = await request.json()
    except ValueError as exc:
        raise BadRequest(f"Invalid JSON body: {exc}") from exc
    if not isinstance(body, dict):
        raise BadRequest("Invalid JSON body: expected an object")

    auth = request.headers.get(AUTH_HEADER)
    if auth is None:
        raise Unauthorized("Missing torappu-auth header")
    if auth != state.token:
        raise Unauthorized("Invalid authentication token")

    try:
        demands = [
            (key, json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False))
            for key, value in body.items()
        ]
    except ValueError as exc:
        raise BadRequest(f"Invalid JSON value: {exc}") from exc

    await state.repository.replace_all_demands(demands)
    return Response(status_code=200)


# API description


def _openapi_document() -> dict[str, Any]:
    paths: dict[str, dict[str, Any]] = {}
    for path, method, tag, summary in _API_OPERATIONS:
        operation: dict[str, Any] = {"summary": summary, "responses": {"200": {"description": "OK"}}}
        if tag is not None:
            operation["tags"] = [tag]
        paths.setdefault(f"{API_PREFIX}{path}", {})[method] = operation
    return {
        "openapi": "3.1.0",
        "info": {"title": "ak-asset-storage", "version": _API_VERSION},
        "tags": _TAGS,
        "paths": paths,
    }


async def openapi_json(request: Request) -> JSONResponse:
    return JSONResponse(_openapi_document())


# Front-end pages


def _read_asset(root: Path | None, relative: str) -> bytes | None:
    if root is None:
        return None
    base = root.resolve()
    candidate = (base / relative).resolve()
    if not candidate.is_relative_to(base) or not candidate.is_file():
        return None
    return candidate.read_bytes()


def _not_found() -> Response:
    return PlainTextResponse("404", status_code=404)


def _index_html(state: AppState) -> Response:
    content = _read_asset(state.static_dir, INDEX_HTML)
    if content is None:
        return _not_found()
    return HTMLResponse(content)


async def static_handler(request: Request) -> Response:
    state = _state(request)
    path = request.url.path.lstrip("/")
    if not path or path == INDEX_HTML:
        return _index_html(state)

    content = _read_asset(state.static_dir, path)
    if content is not None:
        mime = mimetypes.guess_type(path)[0] or "application/octet-stream"
        return Response(content, headers={"content-type": mime})

    index = _read_asset(state.static_dir, INDEX_HTML)
    if index is None:
        return _not_found()
    return Response(index, headers={"content-type": "text/html; charset=utf-8"})


# File serving


class _ServeDir:
    """Serves files below a directory, with UTF-8 declared for plain text."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._files = StaticFiles(directory=directory, html=True, check_dir=False)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self._files(scope, receive, send)
            return
        if not self._directory.is_dir():
            await _not_found()(scope, receive, send)
            return

        async def send_with_charset(message: Message) -> None:
            if message["type"] == "http.response.start":
                headers = [
                    (
                        key,
                        _PLAIN_TEXT_UTF8
                        if key.lower() == b"content-type" and value.startswith(b"text/plain")
                        else value,
                    )
                    for key, value in message.get("headers", [])
                ]
                message = {**message, "headers": headers}
            await send(message)

        await self._files(scope, receive, send_with_charset)


async def _on_web_error(request: Request, exc: Exception) -> Response:
    assert isinstance(exc, WebError)
    return error_response(exc)


async def _on_app_error(request: Request, exc: Exception) -> Response:
    assert isinstance(exc, AppError)
    return error_response(from_app_error(exc))


def build_app(state: AppState) -> Starlette:
    """Assemble the web application around ``state``."""
    api_routes = [
        Route("/_ping", ping),
        Route("/_health", health),
        Route("/files", search_assets_by_path),
        Route("/files/{path:path}", list_asset),
        Route("/version", list_version),
        Route("/version/{id}", get_version),
        Route("/version/{id}/files", get_files_by_version),
        Route("/bundle/{id}", get_bundle),
        Route("/bundle", filter_bundles),
        Route("/item/{item_name}/demand", get_item_demand),
        Route("/item/demand", update_item_demands, methods=["POST"]),
        Route("/openapi.json", openapi_json),
    ]
    base = Path(state.asset_base_path)
    app = Starlette(
        routes=[
            Mount(API_PREFIX, routes=api_routes),
            Mount("/assets", app=_ServeDir(base / "raw")),
            Mount("/gamedata", app=_ServeDir(base / "gamedata")),
            Route("/{path:path}", static_handler),
        ],
        middleware=[Middleware(GZipMiddleware)],
        exception_handlers={WebError: _on_web_error, AppError: _on_app_error},
    )
    app.state.ak = state
    return app