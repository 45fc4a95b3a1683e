"""Success/failure framing around a command result."""

from __future__ import annotations

import json

API_VERSION = "v1"


def success_envelope(command: str, request: dict, summary: dict, pagination: dict | None, data: object) -> dict:
    return {
        "ok": True,
        "apiVersion": API_VERSION,
        "command": command,
        "request": request,
        "summary": summary,
        "pagination": pagination,
        "data": data,
        "error": None,
    }


def failure_envelope(command: str, request: dict, error: dict) -> dict:
    return {
        "ok": False,
        "apiVersion": API_VERSION,
        "command": command,
        "request": request,
        "summary": {},
        "pagination": None,
        "data": None,
        "error": error,
    }


def format_json(data: dict) -> str:
    return json.dumps(data, indent=2)
