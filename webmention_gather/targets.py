from __future__ import annotations

from typing import Sequence


def _aliases(redirect_from: str | Sequence[str] | None) -> list[str]:
    if redirect_from is None:
        return []
    if isinstance(redirect_from, str):
        return [redirect_from]
    return [alias for alias in redirect_from if isinstance(alias, str)]


def webmention_target_urls(
    base_url: str,
    page_url: str,
    *,
    redirect_from: str | Sequence[str] | None = None,
    legacy_domains: Sequence[str] = (),
) -> list[str]:
    """
    Every absolute URL a page may have been mentioned under.

    Order: the canonical URL, then one per redirect alias, then the canonical
    path on each legacy domain. Duplicates are kept.
    """
    base = base_url.rstrip("/")
    canonical = f"{base}{page_url}"

    targets = [canonical]
    for alias in _aliases(redirect_from):
        targets.append(f"{base}{alias}")
    for domain in legacy_domains:
        targets.append(canonical.replace(base, domain.rstrip("/"), 1))

    return targets
