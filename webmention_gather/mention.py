from __future__ import annotations

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

MentionSource = Literal["twitter", "googleplus", "generic"]
MentionType = Literal["post", "reply", "repost", "like", "link"]

MENTION_TYPES: tuple[str, ...] = ("post", "reply", "repost", "like", "link")


class MentionRecord(BaseModel):
    """One normalized webmention of a page."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str
    url: str
    source: MentionSource = "generic"
    pubdate: dt.datetime | None = None
    type: MentionType
    title: str | None = None
    content: str = ""
    author: Any | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @property
    def raw_id(self) -> str | None:
        """The API's own id, which doubles as the since_id cursor."""
        value = self.raw.get("id")
        if value is None or value == "":
            return None
        return str(value)

    @property
    def verified_date(self) -> str | None:
        value = self.raw.get("verified_date")
        if value is None:
            return None
        return str(value)
