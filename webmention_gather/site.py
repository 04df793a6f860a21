from __future__ import annotations

import datetime as dt
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import read_yaml_mapping, validate_model
from .errors import SiteError


class ContentItem(BaseModel):
    """A published post or page, as enumerated by the host build."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    url: str
    date: dt.datetime | dt.date | None = None
    redirect_from: str | list[str] | None = None
    title: str | None = None

    @field_validator("url")
    @classmethod
    def _url_must_be_path(cls, v: str) -> str:
        path = (v or "").strip()
        if not path:
            raise ValueError("must be a non-empty page path")
        return path


class SiteManifest(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    posts: list[ContentItem] = Field(default_factory=list)
    pages: list[ContentItem] = Field(default_factory=list)

    def eligible_items(self, *, include_pages: bool = False) -> list[ContentItem]:
        items = list(self.posts)
        if include_pages:
            items.extend(self.pages)
        return items


def load_site_manifest(path: str | Path) -> SiteManifest:
    """
    Load the YAML list of posts and pages whose mentions should be gathered.

    Raises SiteError on a missing, unreadable or invalid manifest.
    """
    data = read_yaml_mapping(path, what="site manifest", error=SiteError)
    return validate_model(SiteManifest, data, what=f"site manifest in {path}", error=SiteError)
