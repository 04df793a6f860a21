from __future__ import annotations

import json
import traceback
import uuid
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, TextIO

LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}

_MESSAGE_LIMIT = 2000
_TRACEBACK_LIMIT = 12000


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _truncate(text: str, *, limit: int) -> str:
    s = str(text or "")
    if len(s) <= limit:
        return s
    return s[: max(0, limit - 1)] + "…"


def _level_name(level: str) -> str:
    name = (level or "").strip().upper() or "INFO"
    if name == "WARNING":
        name = "WARN"
    if name not in LEVELS:
        raise ValueError(f"unknown log level: {level!r}")
    return name


class _JsonlSink:
    """Append-only JSONL file shared by a logger and everything bound from it."""

    def __init__(self, path: Path, *, overwrite: bool) -> None:
        self.path = path
        self._overwrite = overwrite
        self._fp: TextIO | None = None
        self._lock = Lock()
        self._opened = False
        self.counts: Counter[str] = Counter()

    def open(self) -> None:
        with self._lock:
            if self._fp is not None:
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Reopening after close appends so a run never truncates its own log.
            mode = "w" if self._overwrite and not self._opened else "a"
            self._fp = self.path.open(mode, encoding="utf-8", newline="\n")
            self._opened = True

    def write(self, level: str, record: dict[str, Any]) -> None:
        self.open()
        line = json.dumps(
            record,
            ensure_ascii=False,
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )
        with self._lock:
            if self._fp is None:
                return
            self._fp.write(line + "\n")
            self._fp.flush()
            self.counts[level] += 1

    def close(self) -> None:
        with self._lock:
            if self._fp is None:
                return
            try:
                self._fp.flush()
            finally:
                self._fp.close()
            self._fp = None


class RunLogger:
    """
    JSONL run log for webmention gathering.

    One JSON object per line with ts, level, event and session_id, plus the
    page URL and any bound context. Records below `min_level` are dropped, so
    per-mention diagnostics only appear when running at DEBUG.

    `bind()` returns a logger writing to the same file with extra context
    (for example the page being gathered) merged into every record.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        overwrite: bool = True,
        min_level: str = "INFO",
        session_id: str | None = None,
    ) -> None:
        self._sink = _JsonlSink(Path(path), overwrite=bool(overwrite))
        self._min_level = LEVELS[_level_name(min_level)]
        self._session_id = (session_id or "").strip() or uuid.uuid4().hex
        self._context: dict[str, Any] = {}

    @classmethod
    def open(
        cls,
        path: str | Path,
        *,
        overwrite: bool = True,
        min_level: str = "INFO",
        session_id: str | None = None,
    ) -> "RunLogger":
        logger = cls(path, overwrite=overwrite, min_level=min_level, session_id=session_id)
        logger._sink.open()
        return logger

    def close(self) -> None:
        self._sink.close()

    def __enter__(self) -> "RunLogger":
        self._sink.open()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    @property
    def path(self) -> Path:
        return self._sink.path

    @property
    def session_id(self) -> str:
        return self._session_id

    def level_counts(self) -> dict[str, int]:
        """How many records were written per level, across bound loggers too."""
        return {name: int(self._sink.counts.get(name, 0)) for name in LEVELS}

    def bind(self, **context: Any) -> "RunLogger":
        child = object.__new__(RunLogger)
        child._sink = self._sink
        child._min_level = self._min_level
        child._session_id = self._session_id
        child._context = {**self._context, **context}
        return child

    def is_enabled_for(self, level: str) -> bool:
        return LEVELS[_level_name(level)] >= self._min_level

    def debug(self, event: str, *, url: str | None = None, **data: Any) -> None:
        self.log("DEBUG", event, url=url, **data)

    def info(self, event: str, *, url: str | None = None, **data: Any) -> None:
        self.log("INFO", event, url=url, **data)

    def warning(self, event: str, *, url: str | None = None, **data: Any) -> None:
        self.log("WARN", event, url=url, **data)

    def error(self, event: str, *, url: str | None = None, **data: Any) -> None:
        self.log("ERROR", event, url=url, **data)

    def exception(
        self,
        event: str,
        *,
        exc: BaseException,
        url: str | None = None,
        **data: Any,
    ) -> None:
        formatted = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        err = {
            "type": type(exc).__name__,
            "message": _truncate(str(exc), limit=_MESSAGE_LIMIT),
            "traceback": _truncate(formatted, limit=_TRACEBACK_LIMIT),
        }
        self.log("ERROR", event, url=url, error=err, **data)

    def log(self, level: str, event: str, *, url: str | None = None, **data: Any) -> None:
        name = _level_name(level)
        if LEVELS[name] < self._min_level:
            return

        record: dict[str, Any] = {
            "ts": _utc_now_iso(),
            "level": name,
            "event": (event or "").strip() or "event",
            "session_id": self._session_id,
        }
        if self._context:
            record["context"] = dict(self._context)

        u = (url or "").strip()
        if u:
            record["url"] = u

        if data:
            record["data"] = data

        self._sink.write(name, record)
