from __future__ import annotations

import hashlib
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Mapping
from urllib.parse import urlsplit

from dateutil import parser as date_parser

from .mention import MENTION_TYPES, MentionRecord, MentionSource
from .render import Renderer, markdownify
from .run_log import RunLogger

NO_TITLE = "No title available"

_TITLE_RE = re.compile(r"<title>(.*)</title>")
_H1_RE = re.compile(r"<h1>(.*)</h1>")
_INLINE_TAG_RE = re.compile(r"</?[^>]+?>")

_GOOGLEPLUS_TYPES = (
    ("/like/", "like"),
    ("/repost/", "repost"),
    ("/comment/", "reply"),
)

# Types whose own content beats the activity summary.
_CONTENT_TYPES = ("post", "reply", "link")

FallbackId = Literal["url_hash", "timestamp"]
HtmlFetcher = Callable[[str], bytes | str | None]


def classify_source(url: str) -> MentionSource:
    if "twitter.com/" in url:
        return "twitter"
    if "/googleplus/" in url:
        return "googleplus"
    return "generic"


def fallback_mention_id(
    url: str,
    *,
    strategy: FallbackId = "url_hash",
    clock: Callable[[], float] = time.time,
) -> str:
    """
    Id for entries the API sent without one.

    "timestamp" is the current wall-clock second, so two id-less entries in
    the same second collide. "url_hash" is stable across runs.
    """
    if strategy == "timestamp":
        return str(int(clock()))
    digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
    return f"url-{digest[:16]}"


def _last_path_segment(url: str) -> str:
    segments = [seg for seg in urlsplit(url).path.split("/") if seg]
    return segments[-1] if segments else ""


def api_mention_id(link: Mapping[str, Any], url: str, source: MentionSource) -> str | None:
    """The id a mention is keyed by, or None when a fallback is needed."""
    if source == "twitter" and "#favorited-by" not in url:
        tweet_id = _last_path_segment(url)
        if tweet_id:
            return tweet_id

    value = link.get("id")
    if value:
        return str(value)
    return None


def parse_pubdate(link: Mapping[str, Any], data: Mapping[str, Any]) -> datetime | None:
    """
    Publication time from `data.published_ts`, else `verified_date`.

    Raises ValueError when the chosen field is present but unusable.
    """
    published_ts = data.get("published_ts")
    if published_ts is not None and published_ts != "":
        try:
            return datetime.fromtimestamp(float(published_ts), tz=timezone.utc)
        except (TypeError, OverflowError, OSError) as e:
            raise ValueError(f"bad published_ts {published_ts!r}: {e}") from e

    verified = link.get("verified_date")
    if verified:
        try:
            return date_parser.parse(str(verified))
        except OverflowError as e:
            raise ValueError(f"bad verified_date {verified!r}: {e}") from e
    return None


def infer_type(activity_type: Any, url: str, source: MentionSource) -> str:
    if activity_type:
        return str(activity_type)
    if source == "googleplus":
        for fragment, mention_type in _GOOGLEPLUS_TYPES:
            if fragment in url:
                return mention_type
        return "link"
    return "post"


def repair_encoding(source: bytes | str) -> str:
    """Decode fetched HTML, replacing any invalid byte sequences."""
    if isinstance(source, str):
        return source
    try:
        return source.decode("utf-8")
    except UnicodeDecodeError:
        return source.decode("utf-8", errors="replace")


def extract_title(html: str) -> str:
    match = _TITLE_RE.search(html) or _H1_RE.search(html)
    title = match.group(1).strip() if match else NO_TITLE
    return _INLINE_TAG_RE.sub("", title)


class MentionProcessor:
    """
    Turns a webmention.io response into records and merges them into a page's set.

    Entries arrive newest first and are merged oldest first. A record whose id
    is already known is never replaced.
    """

    def __init__(
        self,
        *,
        fetch_html: HtmlFetcher,
        renderer: Renderer,
        fallback_id: FallbackId = "url_hash",
        logger: RunLogger | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._fetch_html = fetch_html
        self._renderer = renderer
        self._fallback_id = fallback_id
        self._logger = logger
        self._clock = clock

    def process(
        self,
        existing: Mapping[str, MentionRecord],
        response: Any,
    ) -> dict[str, MentionRecord]:
        merged = dict(existing)

        links = response.get("links") if isinstance(response, Mapping) else None
        if not isinstance(links, list):
            return merged

        for link in reversed(links):
            if not isinstance(link, Mapping):
                self._debug("mention_skipped", reason="not_a_mapping")
                continue

            record = self._record_from_link(link, merged)
            if record is not None:
                merged[record.id] = record

        return merged

    def _record_from_link(
        self,
        link: Mapping[str, Any],
        seen: Mapping[str, MentionRecord],
    ) -> MentionRecord | None:
        data = link.get("data") or {}
        activity = link.get("activity") or {}

        url = str(data.get("url") or link.get("source") or "").strip()
        if not url:
            self._debug("mention_skipped", reason="missing_url", link_id=link.get("id"))
            return None

        source = classify_source(url)
        mention_id = api_mention_id(link, url, source)
        if mention_id is None:
            mention_id = fallback_mention_id(url, strategy=self._fallback_id, clock=self._clock)

        if mention_id in seen:
            return None

        try:
            pubdate = parse_pubdate(link, data)
        except ValueError as e:
            self._debug("pubdate_dropped", url=url, error=str(e))
            pubdate = None

        mention_type = infer_type(activity.get("type"), url, source)
        if mention_type not in MENTION_TYPES:
            self._debug("mention_type_coerced", url=url, activity_type=mention_type)
            mention_type = "link"

        title = None
        if mention_type == "post":
            html = self._fetch_html(url)
            if not html:
                self._debug("mention_dropped", url=url, reason="title_fetch_failed")
                return None
            title = markdownify(self._renderer, extract_title(repair_encoding(html)))

        content = activity.get("sentence_html")
        if mention_type in _CONTENT_TYPES and data.get("content"):
            content = data["content"]

        return MentionRecord(
            id=mention_id,
            url=url,
            source=source,
            pubdate=pubdate,
            type=mention_type,
            title=title,
            content=markdownify(self._renderer, content),
            author=data.get("author"),
            raw=dict(link),
        )

    def _debug(self, event: str, *, url: str | None = None, **data: Any) -> None:
        if self._logger is not None:
            self._logger.debug(event, url=url, **data)
