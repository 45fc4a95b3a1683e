"""Buildkite REST API client."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging

import httpx

from .errors import HttpError, NetworkError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.buildkite.com"


@dataclass(frozen=True)
class JsonResponse:
    status: int
    headers: httpx.Headers
    request_id: str | None
    data: object


@dataclass(frozen=True)
class BinaryResponse:
    status: int
    headers: httpx.Headers
    request_id: str | None
    content: bytes


def _request_id(headers: httpx.Headers) -> str | None:
    return headers.get("x-request-id") or headers.get("request-id")


def _parse_body(text: str) -> object:
    trimmed = text.strip()
    if not trimmed:
        return None
    try:
        return json.loads(trimmed)
    except json.JSONDecodeError:
        return {"raw": text}


def _error_from_response(resp: httpx.Response, path: str) -> HttpError:
    body = _parse_body(resp.text)
    message = "buildkite api request failed"
    code = None
    if isinstance(body, dict):
        for key in ("message", "error"):
            candidate = body.get(key)
            if isinstance(candidate, str) and candidate.strip():
                message = candidate
                break
        if isinstance(body.get("code"), str):
            code = body["code"]
    return HttpError(
        message,
        status=resp.status_code,
        code=code,
        request_id=_request_id(resp.headers),
        details={"path": path, "response": body},
    )


class BuildkiteClient:
    """Thin async wrapper around the Buildkite REST API."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"authorization": f"Bearer {token}"},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def _send(self, method: str, path: str, query: dict | None, headers: dict) -> httpx.Response:
        # Strip None params
        params = {k: v for k, v in (query or {}).items() if v is not None}
        logger.debug("%s %s params=%s", method, path, params)
        try:
            resp = await self._client.request(method, path, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("%s %s timed out", method, path)
            raise NetworkError("request timed out", details={"path": path}) from exc
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkError(str(exc) or "network request failed", details={"path": path}) from exc

        if resp.is_error:
            logger.warning("%s %s returned HTTP %d", method, path, resp.status_code)
            raise _error_from_response(resp, path)
        return resp

    async def request_json(self, path: str, query: dict | None = None, method: str = "GET") -> JsonResponse:
        resp = await self._send(method, path, query, {"accept": "application/json"})
        return JsonResponse(
            status=resp.status_code,
            headers=resp.headers,
            request_id=_request_id(resp.headers),
            data=_parse_body(resp.text),
        )

    async def request_binary(self, path: str, query: dict | None = None) -> BinaryResponse:
        resp = await self._send("GET", path, query, {})
        return BinaryResponse(
            status=resp.status_code,
            headers=resp.headers,
            request_id=_request_id(resp.headers),
            content=resp.content,
        )

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()
