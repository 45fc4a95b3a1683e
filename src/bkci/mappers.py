"""Tolerant mapping from loosely typed API JSON to fixed-shape records.

Each entity kind has a whitelist of output fields. A field reads from the
first source key present in the input, so the upstream snake_case key and
the record's own camelCase key both work and mapping is idempotent. Values of
the wrong type become ``None``; the mapper never raises.
"""

from __future__ import annotations

from collections.abc import Mapping
import math

# (output field, kind, source keys in priority order, nested entity kind)
_FIELDS = {
    "pipeline": [
        ("slug", "str", ("slug",), None),
    ],
    "user": [
        ("name", "str", ("name",), None),
        ("email", "str", ("email",), None),
    ],
    "build": [
        ("number", "num", ("number",), None),
        ("state", "str", ("state",), None),
        ("branch", "str", ("branch",), None),
        ("message", "str", ("message",), None),
        ("commit", "str", ("commit",), None),
        ("pipeline", "record", ("pipeline",), "pipeline"),
        ("createdAt", "str", ("created_at", "createdAt"), None),
        ("startedAt", "str", ("started_at", "startedAt"), None),
        ("finishedAt", "str", ("finished_at", "finishedAt"), None),
        ("webUrl", "str", ("web_url", "webUrl"), None),
    ],
    "job": [
        ("id", "str", ("id",), None),
        ("type", "str", ("type",), None),
        ("name", "str", ("name",), None),
        ("stepKey", "str", ("step_key", "stepKey"), None),
        ("state", "str", ("state",), None),
        ("exitStatus", "num", ("exit_status", "exitStatus"), None),
        ("webUrl", "str", ("web_url", "webUrl"), None),
    ],
    "artifact": [
        ("id", "str", ("id",), None),
        ("jobId", "str", ("job_id", "jobId"), None),
        ("path", "str", ("path",), None),
        ("downloadUrl", "str", ("download_url", "downloadUrl"), None),
        ("fileSize", "num", ("file_size", "fileSize"), None),
        ("sha1sum", "str", ("sha1sum",), None),
    ],
    "annotation": [
        ("id", "str", ("id",), None),
        ("context", "str", ("context",), None),
        ("style", "str", ("style",), None),
        ("body", "str", ("body_html", "body_text", "body"), None),
        ("createdAt", "str", ("created_at", "createdAt"), None),
        ("updatedAt", "str", ("updated_at", "updatedAt"), None),
    ],
    "token": [
        ("uuid", "str", ("uuid",), None),
        ("description", "str", ("description",), None),
        ("createdAt", "str", ("created_at", "createdAt"), None),
        ("scopes", "str_list", ("scopes",), None),
        ("user", "record", ("user",), "user"),
    ],
}

ENTITY_KINDS = tuple(_FIELDS)


def as_string(value: object) -> str | None:
    return value if isinstance(value, str) else None


def as_number(value: object) -> int | float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def as_string_list(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _convert(kind: str, value: object, nested: str | None):
    if kind == "str":
        return as_string(value)
    if kind == "num":
        return as_number(value)
    if kind == "str_list":
        return as_string_list(value)
    if kind == "record":
        return map_record(value, nested) if isinstance(value, Mapping) else None
    raise ValueError(f"unknown field kind: {kind}")


def _empty(kind: str):
    return [] if kind == "str_list" else None


def map_record(value: object, entity: str) -> dict:
    """Map one JSON node into the ``entity`` record shape."""
    fields = _FIELDS[entity]
    if not isinstance(value, Mapping):
        return {name: _empty(kind) for name, kind, _, _ in fields}

    record = {}
    for name, kind, sources, nested in fields:
        result = _empty(kind)
        for source in sources:
            if source not in value:
                continue
            result = _convert(kind, value[source], nested)
            # The first source that yields a usable value wins.
            if result is not None and result != []:
                break
        record[name] = result
    return record


def map_records(value: object, entity: str) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [map_record(item, entity) for item in value]
