"""Restricted glob matching for artifact paths.

Only two wildcards exist: ``*`` matches within one path segment and ``**``
matches across ``/``. Everything else in the pattern is literal.
"""

from __future__ import annotations

import re

_DOUBLE_STAR = re.escape("**")
_SINGLE_STAR = re.escape("*")


def glob_to_regex(glob: str) -> re.Pattern:
    escaped = re.escape(glob)
    parts = [part.replace(_SINGLE_STAR, "[^/]*") for part in escaped.split(_DOUBLE_STAR)]
    return re.compile(r"\A" + ".*".join(parts) + r"\Z", re.DOTALL)
