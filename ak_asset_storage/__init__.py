"""Version tracking, content-deduplicated storage and an HTTP API for game asset bundles."""

__version__ = "0.12.2"