from __future__ import annotations


class ConfigError(RuntimeError):
    """Raised when configuration is missing or invalid."""


class SiteError(RuntimeError):
    """Raised when the site content manifest is missing or invalid."""


class StorageError(RuntimeError):
    """Raised when reading or writing the webmention cache fails."""


class WebmentionAPIError(RuntimeError):
    """Raised when a webmention.io request cannot be built."""
