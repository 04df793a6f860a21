from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence

from .cache import WebmentionCache
from .config import cache_path, config_sha256
from .config_schema import AppConfig
from .process import MentionProcessor
from .render import MarkdownRenderer, Renderer
from .run_log import RunLogger
from .site import SiteManifest
from .targets import webmention_target_urls
from .throttle import ThrottlePolicy
from .webmention_io import build_api_params

ThrottleFn = Callable[[datetime, Any, str | None], bool]


class MentionFetcher(Protocol):
    def get_mentions(self, params: Sequence[tuple[str, str]]) -> Mapping[str, Any] | None: ...

    def fetch_html(self, url: str) -> bytes | str | None: ...


@dataclass(frozen=True)
class GatherResult:
    status: str
    items: int
    throttled: int
    fetched: int
    mentions_added: int
    cache_path: Path | None
    cache: WebmentionCache | None


def _log(logger: RunLogger | None, level: str, event: str, **data: Any) -> None:
    if logger is not None:
        logger.log(level, event, **data)


def gather_webmentions(
    config: AppConfig,
    site: SiteManifest,
    *,
    client: MentionFetcher,
    cache_file: str | Path | None = None,
    renderer: Renderer | None = None,
    throttle: ThrottleFn | None = None,
    logger: RunLogger | None = None,
    now: datetime | None = None,
    clock: Callable[[], float] = time.time,
) -> GatherResult:
    """
    One pass over every eligible post (and page, if enabled).

    The cache is read once before the first lookup and written once after
    the last one. Paused lookups leave the cache untouched.
    """
    wm = config.webmentions

    if wm.pause_lookups:
        _log(logger, "INFO", "lookups_paused")
        return GatherResult(
            status="paused",
            items=0,
            throttled=0,
            fetched=0,
            mentions_added=0,
            cache_path=None,
            cache=None,
        )

    path = Path(cache_file) if cache_file is not None else cache_path(config)
    items = site.eligible_items(include_pages=wm.pages)

    _log(
        logger,
        "INFO",
        "gather_started",
        cache_path=str(path),
        items=len(items),
        include_pages=wm.pages,
        config_sha256=config_sha256(config),
    )

    cache = WebmentionCache.load(path)

    render = renderer or MarkdownRenderer()
    should_throttle = throttle or ThrottlePolicy(wm.throttle_lookups)
    current = now or datetime.now(timezone.utc)

    throttled = 0
    fetched = 0
    added = 0

    for item in items:
        page_url = item.url
        item_log = logger.bind(page=page_url) if logger is not None else None
        last = cache.get_last_record(page_url)

        # Undated items (most pages) are always looked up.
        if item.date is not None and last is not None:
            if should_throttle(current, item.date, last.verified_date):
                throttled += 1
                _log(item_log, "DEBUG", "item_throttled", last_verified=last.verified_date)
                continue

        since_id = last.raw_id if last is not None else None
        targets = webmention_target_urls(
            config.site.url,
            page_url,
            redirect_from=item.redirect_from,
            legacy_domains=wm.legacy_domains,
        )

        response = client.get_mentions(build_api_params(targets, since_id))
        fetched += 1

        processor = MentionProcessor(
            fetch_html=client.fetch_html,
            renderer=render,
            fallback_id=wm.fallback_id,
            logger=item_log,
            clock=clock,
        )
        before = cache.records_for(page_url)
        merged = processor.process(before, response)
        cache.set_records(page_url, merged)

        new_count = len(merged) - len(before)
        added += new_count
        _log(
            item_log,
            "DEBUG",
            "item_gathered",
            targets=targets,
            since_id=since_id,
            new_mentions=new_count,
        )

    cache.persist(path)

    _log(
        logger,
        "INFO",
        "gather_completed",
        cache_path=str(path),
        items=len(items),
        throttled=throttled,
        fetched=fetched,
        mentions_added=added,
    )

    return GatherResult(
        status="completed",
        items=len(items),
        throttled=throttled,
        fetched=fetched,
        mentions_added=added,
        cache_path=path,
        cache=cache,
    )
