"""Job log sanitizing and bounding."""

from __future__ import annotations

from dataclasses import dataclass
import re

_CSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
_OSC_RE = re.compile(r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")
# Buildkite timestamps lines with APC blocks: ESC _ bk;t=... BEL
_APC_RE = re.compile(r"\x1b_[^\x07\x1b]*(?:\x07|\x1b\\)")


@dataclass(frozen=True)
class LogTransformResult:
    content: str
    line_count: int
    truncated: bool


def strip_ansi_and_control_sequences(value: str) -> str:
    value = _CSI_RE.sub("", value)
    value = _OSC_RE.sub("", value)
    value = _APC_RE.sub("", value)
    return value.replace("\r", "")


def tail_lines(value: str, count: int) -> str:
    if count < 1:
        return value
    lines = value.split("\n")
    if len(lines) <= count:
        return value
    return "\n".join(lines[-count:])


def truncate_to_max_bytes(value: str, max_bytes: int) -> tuple[str, bool]:
    """Drop the front half of the text until it fits ``max_bytes``.

    Tail-biased on purpose: the end of a CI log is where the failure is.
    Slicing is by code point, so the result always encodes cleanly.
    """
    if max_bytes < 1:
        return value, False
    if len(value.encode("utf-8")) <= max_bytes:
        return value, False

    content = value
    while content and len(content.encode("utf-8")) > max_bytes:
        # A lone multi-byte character halves to itself; drop it instead.
        content = content[max(1, len(content) // 2) :]
    return content, True


def count_lines(content: str) -> int:
    if content == "":
        return 0
    return content.count("\n") + 1


def transform_log_content(
    raw_content: str,
    *,
    max_bytes: int | None = None,
    tail_line_count: int | None = None,
    strip_ansi: bool = False,
) -> LogTransformResult:
    content = strip_ansi_and_control_sequences(raw_content) if strip_ansi else raw_content

    if tail_line_count is not None:
        content = tail_lines(content, tail_line_count)

    truncated = False
    if max_bytes is not None:
        content, truncated = truncate_to_max_bytes(content, max_bytes)

    return LogTransformResult(content=content, line_count=count_lines(content), truncated=truncated)
