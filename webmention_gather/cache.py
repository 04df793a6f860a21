from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml
from pydantic import ValidationError

from .errors import StorageError
from .mention import MentionRecord

PageRecords = dict[str, MentionRecord]


def _key_order(key: str) -> tuple[int, int, str]:
    # ASCII all-digit ids (webmention.io and tweet ids) compare as numbers.
    if key.isascii() and key.isdigit():
        return (0, int(key), key)
    return (1, 0, key)


def last_key(keys: Iterable[str]) -> str | None:
    ordered = sorted(keys, key=_key_order)
    return ordered[-1] if ordered else None


def _page_from_yaml(page_url: str, value: Any, path: Path) -> PageRecords:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise StorageError(f"Cache entry for {page_url!r} in {path} must be a mapping")

    records: PageRecords = {}
    for key, item in value.items():
        try:
            record = MentionRecord.model_validate(item)
        except ValidationError as e:
            raise StorageError(
                f"Invalid cached webmention {key!r} for {page_url!r} in {path}: {e}"
            ) from e
        records[str(key)] = record
    return records


class WebmentionCache:
    """
    Every known mention, keyed by page URL and then mention id.

    Loaded once at the start of a run, changed in memory, written once at the end.
    """

    def __init__(self, pages: Mapping[str, Mapping[str, MentionRecord]] | None = None) -> None:
        self._pages: dict[str, PageRecords] = {
            url: dict(records) for url, records in (pages or {}).items()
        }

    @classmethod
    def load(cls, path: str | Path) -> "WebmentionCache":
        """
        Read the cache file. A missing file yields an empty cache.

        Raises StorageError when the file cannot be read or is not a valid cache.
        """
        p = Path(path)
        if not p.exists():
            return cls()

        try:
            with p.open("r", encoding="utf-8") as fp:
                data = yaml.safe_load(fp)
        except OSError as e:
            raise StorageError(f"Failed to read webmention cache: {p}: {e}") from e
        except yaml.YAMLError as e:
            raise StorageError(f"Failed to parse webmention cache {p}: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise StorageError(f"Top-level YAML in webmention cache {p} must be a mapping")

        return cls({str(url): _page_from_yaml(str(url), value, p) for url, value in data.items()})

    def persist(self, path: str | Path) -> Path:
        """
        Write the whole cache to `path`.

        The data goes to a temporary file in the same directory which then
        replaces the target, so an interrupted write leaves the old cache intact.
        """
        p = Path(path)
        tmp_name: str | None = None
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=str(p.parent),
                prefix=f".{p.name}.",
                suffix=".tmp",
                delete=False,
            ) as fp:
                tmp_name = fp.name
                yaml.safe_dump(
                    self.to_dict(),
                    fp,
                    allow_unicode=True,
                    default_flow_style=False,
                    sort_keys=False,
                )
                fp.flush()
                os.fsync(fp.fileno())
            os.replace(tmp_name, p)
            tmp_name = None
        except (OSError, yaml.YAMLError) as e:
            raise StorageError(f"Failed to write webmention cache: {p}: {e}") from e
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
        return p

    def pages(self) -> list[str]:
        return list(self._pages)

    def records_for(self, page_url: str) -> PageRecords:
        return dict(self._pages.get(page_url, {}))

    def set_records(self, page_url: str, records: Mapping[str, MentionRecord]) -> None:
        self._pages[page_url] = dict(records)

    def get_last_record(self, page_url: str) -> MentionRecord | None:
        records = self._pages.get(page_url)
        if not records:
            return None
        key = last_key(records)
        return records[key] if key is not None else None

    def to_dict(self) -> dict[str, dict[str, dict[str, Any]]]:
        return {
            url: {key: record.model_dump(mode="json") for key, record in records.items()}
            for url, records in self._pages.items()
        }

    def __len__(self) -> int:
        return len(self._pages)
