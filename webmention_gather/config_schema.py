from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .throttle import TIMEFRAMES, parse_frequency

# webmention.io honors a large perPage, which stands in for pagination.
UNPAGINATED_PAGE_SIZE = 9999

PositiveInt = Annotated[int, Field(ge=1)]


def _strip_base_url(value: str) -> str:
    url = (value or "").strip().rstrip("/")
    if not url:
        raise ValueError("must be a non-empty URL")
    if "://" not in url:
        raise ValueError("must be an absolute URL including the scheme")
    return url


class SiteConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    url: str

    @field_validator("url")
    @classmethod
    def _url_must_be_absolute(cls, v: str) -> str:
        return _strip_base_url(v)


class ApiConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = "https://webmention.io/api"
    endpoint: str = "mentions"
    per_page: PositiveInt = UNPAGINATED_PAGE_SIZE
    timeout_seconds: float = Field(30.0, gt=0)
    max_redirects: PositiveInt = 5
    user_agent: str = "webmention-gather/0.1"

    @field_validator("base_url")
    @classmethod
    def _base_url_must_be_absolute(cls, v: str) -> str:
        return _strip_base_url(v)

    @field_validator("endpoint")
    @classmethod
    def _endpoint_must_be_set(cls, v: str) -> str:
        endpoint = (v or "").strip().strip("/")
        if not endpoint:
            raise ValueError("must be a non-empty endpoint name")
        return endpoint


class WebmentionsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    pause_lookups: bool = False
    pages: bool = False
    legacy_domains: list[str] = Field(default_factory=list)
    cache_file: str = ".cache/webmention_io_incoming.yml"
    fallback_id: Literal["url_hash", "timestamp"] = "url_hash"
    throttle_lookups: dict[str, str] = Field(default_factory=dict)
    api: ApiConfig = Field(default_factory=ApiConfig)

    @field_validator("legacy_domains")
    @classmethod
    def _normalize_legacy_domains(cls, v: list[str]) -> list[str]:
        out: list[str] = []
        for item in v:
            domain = (item or "").strip().rstrip("/")
            if domain:
                out.append(domain)
        return out

    @field_validator("throttle_lookups")
    @classmethod
    def _throttle_lookups_must_parse(cls, v: dict[str, str]) -> dict[str, str]:
        for key, frequency in v.items():
            if key not in TIMEFRAMES:
                allowed = ", ".join(TIMEFRAMES)
                raise ValueError(f"unknown timeframe {key!r} (expected one of: {allowed})")
            parse_frequency(frequency)
        return v


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    site: SiteConfig
    webmentions: WebmentionsConfig = Field(default_factory=WebmentionsConfig)
