from __future__ import annotations

from .cache import WebmentionCache
from .config import config_sha256, load_config
from .config_schema import AppConfig
from .errors import ConfigError, SiteError, StorageError, WebmentionAPIError
from .gather import GatherResult, gather_webmentions
from .mention import MentionRecord
from .process import MentionProcessor
from .site import ContentItem, SiteManifest, load_site_manifest
from .targets import webmention_target_urls

__all__ = [
    "AppConfig",
    "ConfigError",
    "ContentItem",
    "GatherResult",
    "MentionProcessor",
    "MentionRecord",
    "SiteError",
    "SiteManifest",
    "StorageError",
    "WebmentionAPIError",
    "WebmentionCache",
    "config_sha256",
    "gather_webmentions",
    "load_config",
    "load_site_manifest",
    "webmention_target_urls",
]
