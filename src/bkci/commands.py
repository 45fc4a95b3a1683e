"""Typed argument records for each bkci command kind."""

from __future__ import annotations

from dataclasses import dataclass, field, fields


@dataclass(frozen=True)
class AuthSetupArgs:
    token: str | None = None


@dataclass(frozen=True)
class AuthStatusArgs:
    pass


@dataclass(frozen=True)
class BuildsListArgs:
    org: str
    pipeline: str | None = None
    branch: str | None = None
    state: str | None = None
    page: int | None = None
    per_page: int | None = None


@dataclass(frozen=True)
class BuildsGetArgs:
    org: str
    pipeline: str
    build_number: int


@dataclass(frozen=True)
class JobsLogGetArgs:
    org: str
    pipeline: str
    build_number: int
    job_id: str
    max_bytes: int | None = None
    tail_lines: int | None = None


@dataclass(frozen=True)
class JobsRetryArgs:
    org: str
    pipeline: str
    build_number: int
    job_id: str


@dataclass(frozen=True)
class ArtifactsListArgs:
    org: str
    pipeline: str
    build_number: int
    job_id: str | None = None


@dataclass(frozen=True)
class ArtifactsDownloadArgs:
    org: str
    pipeline: str
    build_number: int
    job_id: str | None = None
    artifact_ids: tuple[str, ...] = ()
    glob: str | None = None
    output_dir: str = "./.bk-artifacts"


@dataclass(frozen=True)
class AnnotationsListArgs:
    org: str
    pipeline: str
    build_number: int


COMMAND_ARGS = {
    "auth.setup": AuthSetupArgs,
    "auth.status": AuthStatusArgs,
    "builds.list": BuildsListArgs,
    "builds.get": BuildsGetArgs,
    "jobs.log.get": JobsLogGetArgs,
    "jobs.retry": JobsRetryArgs,
    "artifacts.list": ArtifactsListArgs,
    "artifacts.download": ArtifactsDownloadArgs,
    "annotations.list": AnnotationsListArgs,
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class Command:
    name: str
    args: object = field(default_factory=AuthStatusArgs)
    raw: bool = False

    def request_record(self) -> dict:
        """Args as a camelCase dict; secrets are reduced to a presence flag."""
        if isinstance(self.args, AuthSetupArgs):
            return {"tokenProvided": self.args.token is not None}
        record = {}
        for f in fields(self.args):
            value = getattr(self.args, f.name)
            record[_camel(f.name)] = list(value) if isinstance(value, tuple) else value
        return record
