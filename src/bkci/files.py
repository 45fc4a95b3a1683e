"""Local filesystem writes for downloaded artifacts."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def write_artifact_to_disk(output_dir: str, artifact_path: str, content: bytes) -> str:
    """Write ``content`` under ``output_dir`` and return the absolute path."""
    root = Path(output_dir).resolve()
    target = (root / artifact_path).resolve()
    if target != root and root not in target.parents:
        raise ValueError(f"artifact path escapes output directory: {artifact_path}")

    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    logger.debug("wrote %d bytes to %s", len(content), target)
    return str(target)
