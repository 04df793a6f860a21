from __future__ import annotations

from typing import Any, Sequence

import httpx

from .config_schema import ApiConfig
from .errors import WebmentionAPIError
from .retry import OnRetryFn, RetryConfig, RetryEvent, SleepFn, call_with_retries
from .run_log import RunLogger

ApiParams = list[tuple[str, str]]

_DEFAULT_HTTP_RETRY = RetryConfig(
    max_attempts=3,
    base_delay_seconds=1.0,
    max_delay_seconds=15.0,
    jitter_ratio=0.25,
    retry_after_cap_seconds=60.0,
)


def build_api_params(targets: Sequence[str], since_id: str | None = None) -> ApiParams:
    """One target[] entry per URL, plus since_id when continuing from a known mention."""
    params: ApiParams = [("target[]", url) for url in targets]
    if since_id:
        params.append(("since_id", str(since_id)))
    return params


class WebmentionIOClient:
    """
    Blocking webmention.io API client that also fetches mention source pages.

    Failures never raise: after retries they are logged and reported as None,
    which the pipeline treats as "nothing new".
    """

    def __init__(
        self,
        api: ApiConfig,
        *,
        client: httpx.Client | None = None,
        retry: RetryConfig | None = None,
        on_retry: OnRetryFn | None = None,
        sleep_fn: SleepFn | None = None,
        logger: RunLogger | None = None,
    ) -> None:
        self._api = api
        self._retry = retry or _DEFAULT_HTTP_RETRY
        self._on_retry = on_retry or self._log_retry
        self._sleep_fn = sleep_fn
        self._logger = logger

        self._owns_client = client is None
        if client is not None:
            self._client = client
        else:
            self._client = httpx.Client(
                headers={"User-Agent": api.user_agent},
                timeout=api.timeout_seconds,
                follow_redirects=True,
                max_redirects=api.max_redirects,
            )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "WebmentionIOClient":
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.close()

    @property
    def endpoint_url(self) -> str:
        return f"{self._api.base_url}/{self._api.endpoint}"

    def get_mentions(self, params: Sequence[tuple[str, str]]) -> dict[str, Any] | None:
        """
        Query the mentions endpoint for the given target[]/since_id params.

        The page size is fixed to api.per_page so one request returns everything.
        """
        query = list(params)
        if not any(key == "target[]" for key, _ in query):
            raise WebmentionAPIError("At least one target[] parameter is required")
        query.append(("perPage", str(self._api.per_page)))

        url = self.endpoint_url

        def _do_get() -> httpx.Response:
            response = self._client.get(
                url,
                params=query,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            return response

        try:
            response = call_with_retries(
                _do_get,
                cfg=self._retry,
                operation=f"webmention_io.{self._api.endpoint}",
                on_retry=self._on_retry,
                sleep_fn=self._sleep_fn,
                context_url=url,
            )
        except httpx.HTTPError as e:
            self._warn("mentions_fetch_failed", url=url, error=str(e), error_type=type(e).__name__)
            return None

        try:
            payload = response.json()
        except ValueError as e:
            self._warn("mentions_response_invalid", url=url, error=str(e))
            return None

        if not isinstance(payload, dict):
            self._warn("mentions_response_invalid", url=url, error="expected a JSON object")
            return None
        return payload

    def fetch_html(self, url: str) -> bytes | None:
        """Raw body of a mention's source page, or None if it cannot be fetched."""

        def _do_get() -> httpx.Response:
            response = self._client.get(url)
            response.raise_for_status()
            return response

        try:
            response = call_with_retries(
                _do_get,
                cfg=self._retry,
                operation="mention_source.get",
                on_retry=self._on_retry,
                sleep_fn=self._sleep_fn,
                context_url=url,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            if self._logger is not None:
                self._logger.debug(
                    "source_fetch_failed",
                    url=url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
            return None

        return response.content or None

    def _warn(self, event: str, *, url: str, **data: Any) -> None:
        if self._logger is not None:
            self._logger.warning(event, url=url, **data)

    def _log_retry(self, event: RetryEvent) -> None:
        if self._logger is None:
            return
        self._logger.debug(
            "http_retry",
            url=event.context_url,
            operation=event.operation,
            attempt=event.failure_attempt,
            max_attempts=event.max_attempts,
            delay_seconds=round(event.delay_seconds, 3),
            reason=event.reason,
            error_type=event.error_type,
        )
