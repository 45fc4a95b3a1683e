"""bkci: Buildkite CI data from the terminal, one JSON envelope per command."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
import httpx

from .client import DEFAULT_BASE_URL, BuildkiteClient
from .commands import (
    AnnotationsListArgs,
    ArtifactsDownloadArgs,
    ArtifactsListArgs,
    AuthSetupArgs,
    AuthStatusArgs,
    BuildsGetArgs,
    BuildsListArgs,
    Command,
    JobsLogGetArgs,
    JobsRetryArgs,
)
from .config import auth_config_path, read_config, resolve_setting, resolve_token, write_auth_config
from .dispatcher import execute_command
from .envelope import failure_envelope, format_json, success_envelope
from .errors import BuildkiteError, ConfigError, to_api_error

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0
_DEFAULT_OUTPUT_DIR = "./.bk-artifacts"

_EXIT_CODES = {
    "validation_error": 2,
    "auth_error": 10,
    "permission_error": 10,
    "rate_limited": 11,
    "not_found": 12,
    "network_error": 13,
    "server_error": 15,
    "internal_error": 16,
}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _normalize(ctx, param, value):
    """Trim option values; blank means unset."""
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def _required(ctx, param, value):
    normalized = _normalize(ctx, param, value)
    if normalized is None:
        raise click.BadParameter("value cannot be blank", ctx=ctx, param=param)
    return normalized


def _parse_csv_ids(raw_value: str) -> list[str]:
    return [item.strip() for item in raw_value.split(",") if item.strip()]


def _resolve_timeout(flag_value, file_config: dict) -> float:
    raw_timeout = resolve_setting(flag_value, "BKCI_TIMEOUT", file_config.get("timeout"), _DEFAULT_TIMEOUT)
    try:
        timeout = float(raw_timeout)
    except (TypeError, ValueError) as exc:
        raise click.BadParameter(f"timeout must be a number, got: {raw_timeout}") from exc
    if timeout <= 0 or timeout > 300:
        raise click.BadParameter("timeout must be > 0 and <= 300 seconds")
    return timeout


def _emit(payload: dict) -> None:
    click.echo(format_json(payload))


def _exit_with_error(command_name: str, request: dict, err: BaseException) -> None:
    error = to_api_error(err)
    _emit(failure_envelope(command_name, request, error))
    sys.exit(_EXIT_CODES[error["type"]])


async def _execute(command: Command, token: str, base_url: str, timeout: float):
    async with BuildkiteClient(token, base_url, timeout=timeout) as client:
        return await execute_command(command, client)


def _run(ctx: click.Context, command: Command) -> None:
    request = command.request_record()
    try:
        config_path = auth_config_path()
        file_config = read_config(config_path)
        base_url = resolve_setting(ctx.obj.get("base_url"), "BKCI_BASE_URL", file_config.get("base_url"), DEFAULT_BASE_URL)
        timeout = _resolve_timeout(ctx.obj.get("timeout"), file_config)
        token = resolve_token(config_path=config_path)
        logger.debug("%s via %s (timeout=%ss)", command.name, base_url, timeout)
        result = asyncio.run(_execute(command, token, base_url, timeout))
    except (BuildkiteError, httpx.HTTPError, click.ClickException) as e:
        _exit_with_error(command.name, request, e)
        return
    except Exception as e:
        logger.debug("unexpected failure in %s", command.name, exc_info=True)
        _exit_with_error(command.name, request, e)
        return

    _emit(success_envelope(command.name, result.request, result.summary, result.pagination, result.data))


def _is_raw(ctx: click.Context, raw: bool) -> bool:
    return bool(raw or ctx.obj.get("raw"))


_raw_option = click.option("--raw", is_flag=True, default=False, help="Return upstream JSON without normalization.")
_org_option = click.option("--org", required=True, callback=_required, help="Organization slug.")
_pipeline_option = click.option("--pipeline", required=True, callback=_required, help="Pipeline slug.")
_build_option = click.option("--build", "build_number", required=True, type=click.IntRange(min=1), help="Build number.")


@click.group()
@click.option("--raw", is_flag=True, default=False, help="Return upstream JSON without normalization.")
@click.option("--base-url", default=None, help="API base URL (or set BKCI_BASE_URL)")
@click.option("--timeout", default=None, type=float, help="HTTP request timeout in seconds.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Debug logging on stderr.")
@click.pass_context
def main(ctx, raw: bool, base_url: str | None, timeout: float | None, verbose: bool):
    """Query Buildkite builds, jobs, logs, and artifacts as JSON."""
    ctx.ensure_object(dict)
    verbose_setting = resolve_setting(True if verbose else None, "BKCI_VERBOSE", None, False)
    verbose = verbose_setting is True or str(verbose_setting).lower() in {"1", "true", "yes", "on"}
    _configure_logging(verbose)
    ctx.obj["raw"] = raw
    ctx.obj["base_url"] = base_url
    ctx.obj["timeout"] = timeout


# ---------------------------------------------------------------------------
# auth
# ---------------------------------------------------------------------------


@main.group()
def auth():
    """Manage the stored API token."""


@auth.command(name="setup")
@click.option("--token", default=None, callback=_normalize, help="API token; prompted for when omitted.")
def auth_setup(token):
    """Store an API token in the local auth file."""
    command = Command("auth.setup", AuthSetupArgs(token=token))
    request = command.request_record()
    source = "argument"
    try:
        if token is None:
            if not sys.stdin.isatty():
                raise ConfigError("no token provided. pass --token in non-interactive environments")
            token = click.prompt("Buildkite token", hide_input=True, err=True)
            source = "prompt"
        path = write_auth_config(token, auth_config_path())
    except (ConfigError, OSError) as e:
        _exit_with_error(command.name, request, e)
        return
    except Exception as e:
        logger.debug("unexpected failure in %s", command.name, exc_info=True)
        _exit_with_error(command.name, request, e)
        return

    _emit(success_envelope(command.name, request, {"configured": True, "source": source}, None, {"path": str(path)}))


@auth.command(name="status")
@_raw_option
@click.pass_context
def auth_status(ctx, raw):
    """Show token details and whether the required scopes are granted."""
    _run(ctx, Command("auth.status", AuthStatusArgs(), raw=_is_raw(ctx, raw)))


# ---------------------------------------------------------------------------
# builds
# ---------------------------------------------------------------------------


@main.group()
def builds():
    """Inspect builds."""


@builds.command(name="list")
@_org_option
@click.option("--pipeline", default=None, callback=_normalize, help="Limit to one pipeline.")
@click.option("--branch", default=None, callback=_normalize)
@click.option("--state", default=None, callback=_normalize)
@click.option("--page", default=None, type=click.IntRange(min=1))
@click.option("--per-page", default=None, type=click.IntRange(min=1))
@_raw_option
@click.pass_context
def builds_list(ctx, org, pipeline, branch, state, page, per_page, raw):
    """List builds for an organization or pipeline."""
    args = BuildsListArgs(org=org, pipeline=pipeline, branch=branch, state=state, page=page, per_page=per_page)
    _run(ctx, Command("builds.list", args, raw=_is_raw(ctx, raw)))


@builds.command(name="get")
@_org_option
@_pipeline_option
@_build_option
@_raw_option
@click.pass_context
def builds_get(ctx, org, pipeline, build_number, raw):
    """Get one build with its jobs."""
    args = BuildsGetArgs(org=org, pipeline=pipeline, build_number=build_number)
    _run(ctx, Command("builds.get", args, raw=_is_raw(ctx, raw)))


# ---------------------------------------------------------------------------
# jobs
# ---------------------------------------------------------------------------


@main.group()
def jobs():
    """Inspect and retry jobs."""


@jobs.group(name="log")
def jobs_log():
    """Job logs."""


@jobs_log.command(name="get")
@_org_option
@_pipeline_option
@_build_option
@click.option("--job", "job_id", required=True, callback=_required, help="Job id.")
@click.option("--max-bytes", default=None, type=click.IntRange(min=1), help="Keep at most N bytes from the end.")
@click.option("--tail-lines", default=None, type=click.IntRange(min=1), help="Keep only the last N lines.")
@_raw_option
@click.pass_context
def jobs_log_get(ctx, org, pipeline, build_number, job_id, max_bytes, tail_lines, raw):
    """Fetch a job log with control sequences stripped."""
    args = JobsLogGetArgs(
        org=org,
        pipeline=pipeline,
        build_number=build_number,
        job_id=job_id,
        max_bytes=max_bytes,
        tail_lines=tail_lines,
    )
    _run(ctx, Command("jobs.log.get", args, raw=_is_raw(ctx, raw)))


@jobs.command(name="retry")
@_org_option
@_pipeline_option
@_build_option
@click.option("--job", "job_id", required=True, callback=_required, help="Job id.")
@_raw_option
@click.pass_context
def jobs_retry(ctx, org, pipeline, build_number, job_id, raw):
    """Retry a job (requires the write_builds scope)."""
    args = JobsRetryArgs(org=org, pipeline=pipeline, build_number=build_number, job_id=job_id)
    _run(ctx, Command("jobs.retry", args, raw=_is_raw(ctx, raw)))


# ---------------------------------------------------------------------------
# artifacts
# ---------------------------------------------------------------------------


@main.group()
def artifacts():
    """List and download build artifacts."""


@artifacts.command(name="list")
@_org_option
@_pipeline_option
@_build_option
@click.option("--job", "job_id", default=None, callback=_normalize, help="Limit to one job.")
@_raw_option
@click.pass_context
def artifacts_list(ctx, org, pipeline, build_number, job_id, raw):
    """List artifacts for a build or job."""
    args = ArtifactsListArgs(org=org, pipeline=pipeline, build_number=build_number, job_id=job_id)
    _run(ctx, Command("artifacts.list", args, raw=_is_raw(ctx, raw)))


@artifacts.command(name="download")
@_org_option
@_pipeline_option
@_build_option
@click.option("--job", "job_id", default=None, callback=_normalize, help="Limit to one job.")
@click.option("--artifact-id", "artifact_id", multiple=True, help="Artifact id (repeatable).")
@click.option("--artifact-ids", default=None, help="Comma-separated artifact ids.")
@click.option("--glob", default=None, callback=_normalize, help="Path glob; * stays within a segment, ** crosses.")
@click.option("--out", "output_dir", default=_DEFAULT_OUTPUT_DIR, callback=_required, show_default=True)
@_raw_option
@click.pass_context
def artifacts_download(ctx, org, pipeline, build_number, job_id, artifact_id, artifact_ids, glob, output_dir, raw):
    """Download artifacts selected by id and/or glob."""
    ids = [value.strip() for value in artifact_id if value.strip()]
    if artifact_ids:
        ids.extend(_parse_csv_ids(artifact_ids))

    args = ArtifactsDownloadArgs(
        org=org,
        pipeline=pipeline,
        build_number=build_number,
        job_id=job_id,
        artifact_ids=tuple(ids),
        glob=glob,
        output_dir=output_dir,
    )
    command = Command("artifacts.download", args, raw=_is_raw(ctx, raw))
    if not ids and glob is None:
        _exit_with_error(
            command.name,
            command.request_record(),
            click.UsageError("specify --artifact-id/--artifact-ids or --glob for artifacts download"),
        )
        return
    _run(ctx, command)


# ---------------------------------------------------------------------------
# annotations
# ---------------------------------------------------------------------------


@main.group()
def annotations():
    """Build annotations."""


@annotations.command(name="list")
@_org_option
@_pipeline_option
@_build_option
@_raw_option
@click.pass_context
def annotations_list(ctx, org, pipeline, build_number, raw):
    """List annotations on a build."""
    args = AnnotationsListArgs(org=org, pipeline=pipeline, build_number=build_number)
    _run(ctx, Command("annotations.list", args, raw=_is_raw(ctx, raw)))


if __name__ == "__main__":
    main()
