"""Resolve artifact selectors (explicit ids and/or a glob) against a listing."""

from __future__ import annotations

from dataclasses import dataclass, field

from .glob_match import glob_to_regex

REASON_NOT_FOUND = "artifact not found"
REASON_NO_GLOB_MATCH = "no artifacts matched glob"


@dataclass
class ArtifactSelection:
    selected: list[dict] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)


def _artifact_id(artifact: dict) -> str | None:
    value = artifact.get("id")
    return value if isinstance(value, str) else None


def select_artifacts(
    artifacts: list[dict],
    artifact_ids: list[str],
    glob: str | None = None,
) -> ArtifactSelection:
    """Pick artifacts by id (request order) then by glob (listing order).

    Selection is keyed by artifact id, so an artifact picked twice is
    downloaded once.
    """
    by_id = {}
    for artifact in artifacts:
        artifact_id = _artifact_id(artifact)
        if artifact_id is not None:
            by_id[artifact_id] = artifact

    failures = []
    selected_by_id = {}
    for artifact_id in artifact_ids:
        candidate = by_id.get(artifact_id)
        if candidate is None:
            failures.append({"artifactId": artifact_id, "reason": REASON_NOT_FOUND})
            continue
        selected_by_id[artifact_id] = candidate

    if glob is not None:
        matcher = glob_to_regex(glob)
        for artifact in artifacts:
            artifact_id = _artifact_id(artifact)
            if artifact_id is None:
                continue
            path = artifact.get("path")
            if matcher.match(path if isinstance(path, str) else ""):
                selected_by_id[artifact_id] = artifact

        if not artifact_ids and not selected_by_id:
            failures.append({"artifactId": "glob", "reason": REASON_NO_GLOB_MATCH})

    return ArtifactSelection(selected=list(selected_by_id.values()), failures=failures)
