[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ak-asset-storage"
version = "0.12.2"
description = "Tracks game resource versions, deduplicates downloaded bundles by content hash and serves them over HTTP"
requires-python = ">=3.10"
keywords = [
    "assets",
    "storage",
    "hot-update",
    "version-tracking",
    "deduplication",
    "asgi",
    "starlette",
    "sqlalchemy",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "sqlalchemy>=2.0",
    "starlette>=0.27",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pytest-asyncio>=0.23",
    "httpx>=0.25",
]

[tool.hatch.build.targets.wheel]
packages = ["ak_asset_storage"]

[tool.hatch.build.targets.sdist]
include = [
    "ak_asset_storage",
    "tests",
    "pyproject.toml",
]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
disallow_untyped_defs = true

[tool.coverage.run]
source = ["ak_asset_storage"]
branch = true
