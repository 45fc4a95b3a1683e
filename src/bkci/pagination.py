"""Pagination state derived from Buildkite response headers.

Buildkite may send explicit ``x-page``/``x-per-page``/``x-next-page``/``x-prev-page``
headers, an RFC 8288 ``link`` header, or both. Each output field has its own
fallback chain; they are resolved independently.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qs, urlsplit

import httpx

_LINK_SEGMENT_RE = re.compile(r'<([^>]+)>\s*;\s*rel="([a-z]+)"', re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")

LINK_RELATIONS = ("next", "prev", "first", "last")


def parse_int(value: str | None) -> int | None:
    """Leading-integer parse; anything unparseable is absent, never zero."""
    if value is None:
        return None
    match = _LEADING_INT_RE.match(value)
    if not match:
        return None
    return int(match.group(1))


def parse_link_relations(link_header: str | None) -> dict:
    relations = {name: None for name in LINK_RELATIONS}
    if link_header is None or not link_header.strip():
        return relations

    for segment in link_header.split(","):
        match = _LINK_SEGMENT_RE.search(segment)
        if not match:
            continue
        href, relation = match.group(1), match.group(2).lower()
        if relation not in relations:
            continue
        try:
            url = urlsplit(href.strip())
        except ValueError:
            continue
        # Relative or scheme-less targets are not usable URLs.
        if not url.scheme or not url.netloc:
            continue
        relations[relation] = url
    return relations


def _query_int(url, key: str) -> int | None:
    if url is None:
        return None
    values = parse_qs(url.query).get(key)
    if not values:
        return None
    return parse_int(values[0])


def _current_page(
    *,
    from_header: int | None,
    requested_page: int | None,
    next_page: int | None,
    prev_page: int | None,
    first_page: int | None,
) -> int | None:
    if from_header is not None:
        return from_header
    if requested_page is not None:
        return requested_page
    if prev_page is not None:
        return prev_page + 1
    if next_page is not None and next_page > 1:
        return next_page - 1
    if first_page is not None:
        return first_page
    if next_page is not None:
        return 1
    return None


def _per_page(*, from_header: int | None, requested_per_page: int | None, links: dict) -> int | None:
    if from_header is not None:
        return from_header
    if requested_per_page is not None:
        return requested_per_page
    for relation in ("next", "prev", "first", "last"):
        value = _query_int(links[relation], "per_page")
        if value is not None:
            return value
    return None


def _first_not_none(*values):
    for value in values:
        if value is not None:
            return value
    return None


def parse_pagination(
    headers,
    requested_page: int | None = None,
    requested_per_page: int | None = None,
) -> dict:
    if not isinstance(headers, httpx.Headers):
        headers = httpx.Headers(headers or {})

    links = parse_link_relations(headers.get("link"))

    next_page = _first_not_none(parse_int(headers.get("x-next-page")), _query_int(links["next"], "page"))
    prev_page = _first_not_none(parse_int(headers.get("x-prev-page")), _query_int(links["prev"], "page"))

    page = _current_page(
        from_header=parse_int(headers.get("x-page")),
        requested_page=requested_page,
        next_page=next_page,
        prev_page=prev_page,
        first_page=_query_int(links["first"], "page"),
    )
    per_page = _per_page(
        from_header=parse_int(headers.get("x-per-page")),
        requested_per_page=requested_per_page,
        links=links,
    )

    return {
        "page": page,
        "perPage": per_page,
        "nextPage": next_page,
        "prevPage": prev_page,
        "hasMore": next_page is not None,
    }
