"""Execute one bkci command against an injected Buildkite transport."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Protocol

from .client import BinaryResponse, JsonResponse
from .commands import Command
from .errors import BuildkiteError, MissingScopeError
from .files import write_artifact_to_disk
from .logs import transform_log_content
from .mappers import as_string, map_record, map_records
from .pagination import parse_pagination
from .selection import select_artifacts

logger = logging.getLogger(__name__)

REQUIRED_SCOPES = ("read_builds", "read_build_logs", "read_artifacts")
RETRY_SCOPES = ("write_builds",)

REASON_MISSING_IDS = "artifact id or job id missing"


class Transport(Protocol):
    async def request_json(self, path: str, query: dict | None = None, method: str = "GET") -> JsonResponse: ...

    async def request_binary(self, path: str, query: dict | None = None) -> BinaryResponse: ...


@dataclass
class CommandResult:
    request: dict
    summary: dict
    pagination: dict | None
    data: object


def _build_path(args) -> str:
    return f"/v2/organizations/{args.org}/pipelines/{args.pipeline}/builds/{args.build_number}"


def _builds_list_path(args) -> str:
    if args.pipeline is not None:
        return f"/v2/organizations/{args.org}/pipelines/{args.pipeline}/builds"
    return f"/v2/organizations/{args.org}/builds"


def _artifacts_list_path(args) -> str:
    if args.job_id is not None:
        return f"{_build_path(args)}/jobs/{args.job_id}/artifacts"
    return f"{_build_path(args)}/artifacts"


def _tally_states(records: list[dict], seed: dict | None = None) -> dict:
    states = dict(seed or {})
    for record in records:
        state = record.get("state") if isinstance(record.get("state"), str) else "unknown"
        states[state] = states.get(state, 0) + 1
    return states


def failed_job_ids(jobs: list[dict]) -> list[str]:
    return [job["id"] for job in jobs if job.get("state") == "failed" and isinstance(job.get("id"), str)]


def _missing_scopes(granted: list[str], required) -> list[str]:
    return [scope for scope in required if scope not in granted]


def _extract_log_content(data: object) -> str:
    if isinstance(data, str):
        return data
    if isinstance(data, dict) and isinstance(data.get("content"), str):
        return data["content"]
    return json.dumps(data, indent=2)


async def _auth_status(command: Command, client: Transport, request: dict) -> CommandResult:
    response = await client.request_json("/v2/access-token")
    if command.raw:
        return CommandResult(request, {}, None, response.data)

    token = map_record(response.data, "token")
    user = token.pop("user")
    missing = _missing_scopes(token["scopes"], REQUIRED_SCOPES)
    return CommandResult(
        request=request,
        summary={
            "requiredScopes": list(REQUIRED_SCOPES),
            "grantedScopes": len(token["scopes"]),
            "missingScopes": missing,
            "ready": not missing,
        },
        pagination=None,
        data={
            "token": token,
            "user": user,
            "requiredScopes": list(REQUIRED_SCOPES),
            "missingScopes": missing,
        },
    )


async def _builds_list(command: Command, client: Transport, request: dict) -> CommandResult:
    args = command.args
    response = await client.request_json(
        _builds_list_path(args),
        query={
            "branch": args.branch,
            "state": args.state,
            "page": args.page,
            "per_page": args.per_page,
        },
    )
    pagination = parse_pagination(response.headers, args.page, args.per_page)
    if command.raw:
        return CommandResult(request, {}, pagination, response.data)

    builds = map_records(response.data, "build")
    return CommandResult(
        request=request,
        summary={"count": len(builds), "states": _tally_states(builds)},
        pagination=pagination,
        data=builds,
    )


async def _builds_get(command: Command, client: Transport, request: dict) -> CommandResult:
    response = await client.request_json(_build_path(command.args))
    if command.raw:
        return CommandResult(request, {}, None, response.data)

    build = response.data if isinstance(response.data, dict) else {}
    jobs = map_records(build.get("jobs"), "job")
    return CommandResult(
        request=request,
        summary={
            "jobCounts": _tally_states(jobs, seed={"passed": 0, "failed": 0, "running": 0, "blocked": 0}),
            "failedJobIds": failed_job_ids(jobs),
        },
        pagination=None,
        data={"build": map_record(build, "build"), "jobs": jobs},
    )


async def _jobs_log_get(command: Command, client: Transport, request: dict) -> CommandResult:
    args = command.args
    response = await client.request_json(f"{_build_path(args)}/jobs/{args.job_id}/log")
    if command.raw:
        return CommandResult(request, {}, None, response.data)

    log = transform_log_content(
        _extract_log_content(response.data),
        max_bytes=args.max_bytes,
        tail_line_count=args.tail_lines,
        strip_ansi=True,
    )
    return CommandResult(
        request=request,
        summary={"lineCount": log.line_count, "truncated": log.truncated},
        pagination=None,
        data={
            "jobId": args.job_id,
            "encoding": "utf-8",
            "lineCount": log.line_count,
            "truncated": log.truncated,
            "content": log.content,
        },
    )


async def _jobs_retry(command: Command, client: Transport, request: dict) -> CommandResult:
    args = command.args
    token_response = await client.request_json("/v2/access-token")
    granted = map_record(token_response.data, "token")["scopes"]
    missing = _missing_scopes(granted, RETRY_SCOPES)
    if missing:
        raise MissingScopeError(missing, action="jobs retry")

    response = await client.request_json(f"{_build_path(args)}/jobs/{args.job_id}/retry", method="PUT")
    if command.raw:
        return CommandResult(request, {}, None, response.data)

    job = map_record(response.data, "job")
    return CommandResult(
        request=request,
        summary={"retried": True, "jobId": job["id"], "state": job["state"]},
        pagination=None,
        data=job,
    )


async def _artifacts_list(command: Command, client: Transport, request: dict) -> CommandResult:
    response = await client.request_json(_artifacts_list_path(command.args))
    if command.raw:
        return CommandResult(request, {}, None, response.data)

    artifacts = map_records(response.data, "artifact")
    total_bytes = sum(a["fileSize"] for a in artifacts if a["fileSize"] is not None)
    return CommandResult(
        request=request,
        summary={"count": len(artifacts), "totalBytes": total_bytes},
        pagination=None,
        data=artifacts,
    )


async def _artifacts_download(command: Command, client: Transport, request: dict, writer) -> CommandResult:
    args = command.args
    listing = await client.request_json(_artifacts_list_path(args))
    artifacts = map_records(listing.data, "artifact")
    selection = select_artifacts(artifacts, list(args.artifact_ids), args.glob)

    files = []
    failures = list(selection.failures)
    for artifact in selection.selected:
        artifact_id = as_string(artifact.get("id"))
        job_id = as_string(artifact.get("jobId"))
        if artifact_id is None or job_id is None:
            failures.append({"artifactId": artifact_id or "unknown", "reason": REASON_MISSING_IDS})
            continue

        try:
            download = await client.request_binary(
                f"{_build_path(args)}/jobs/{job_id}/artifacts/{artifact_id}/download"
            )
            local_path = writer(args.output_dir, artifact.get("path") or f"{artifact_id}.bin", download.content)
        except (BuildkiteError, OSError, ValueError) as exc:
            logger.warning("artifact %s failed: %s", artifact_id, exc)
            failures.append({"artifactId": artifact_id, "reason": str(exc)})
            continue

        files.append(
            {
                "artifactId": artifact_id,
                "path": local_path,
                "bytes": len(download.content),
                "sha1sum": as_string(artifact.get("sha1sum")),
            }
        )

    if command.raw:
        return CommandResult(request, {}, None, {"artifacts": listing.data, "files": files, "failures": failures})

    return CommandResult(
        request=request,
        summary={
            "downloaded": len(files),
            "failed": len(failures),
            "totalBytes": sum(f["bytes"] for f in files),
        },
        pagination=None,
        data={"files": files, "failures": failures},
    )


async def _annotations_list(command: Command, client: Transport, request: dict) -> CommandResult:
    response = await client.request_json(f"{_build_path(command.args)}/annotations")
    if command.raw:
        return CommandResult(request, {}, None, response.data)

    annotations = map_records(response.data, "annotation")
    return CommandResult(request=request, summary={"count": len(annotations)}, pagination=None, data=annotations)


_HANDLERS = {
    "auth.status": _auth_status,
    "builds.list": _builds_list,
    "builds.get": _builds_get,
    "jobs.log.get": _jobs_log_get,
    "jobs.retry": _jobs_retry,
    "artifacts.list": _artifacts_list,
    "annotations.list": _annotations_list,
}


async def execute_command(command: Command, client: Transport, *, writer=write_artifact_to_disk) -> CommandResult:
    request = command.request_record()
    logger.debug("executing %s raw=%s", command.name, command.raw)
    if command.name == "artifacts.download":
        return await _artifacts_download(command, client, request, writer)

    handler = _HANDLERS.get(command.name)
    if handler is None:
        raise ValueError(f"unsupported command for execute_command: {command.name}")
    return await handler(command, client, request)
