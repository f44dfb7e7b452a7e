from __future__ import annotations

import base64
import shlex
import subprocess
import uuid
from collections.abc import Mapping
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from . import log
from .cli_shared import DEFAULT_PAGE_DELAY_SECONDS, OpError, RemoteCallError
from .credential_context import CredentialContext
from .paginate import client_error_payload, fetch_all, projection


def open_session(ctx: CredentialContext) -> Any:
    try:
        return boto3.session.Session(profile_name=ctx.profile, region_name=ctx.region)
    except BotoCoreError as e:
        raise RemoteCallError(f"cannot open session for profile {ctx.profile!r}: {e}", payload=str(e)) from e


def _client(session: Any, service: str) -> Any:
    try:
        return session.client(service)
    except BotoCoreError as e:
        raise RemoteCallError(f"cannot create {service} client: {e}", payload=str(e)) from e


def _call(client: Any, op: str, **kwargs: Any) -> dict[str, Any]:
    log.debug(f"{op} {kwargs}")
    try:
        return getattr(client, op)(**kwargs)
    except (ClientError, BotoCoreError) as e:
        raise RemoteCallError(f"{op} failed: {e}", payload=client_error_payload(e)) from e


def _paged(client: Any, op: str, token_param: str = "nextToken", **kwargs: Any):
    def call(token: str | None) -> Mapping[str, Any]:
        params = dict(kwargs)
        if token is not None:
            params[token_param] = token
        log.debug(f"{op} {params}")
        return getattr(client, op)(**params)

    return call


def list_log_groups(session: Any, *, prefix: str | None = None, delay: float = DEFAULT_PAGE_DELAY_SECONDS) -> list[dict[str, Any]]:
    kwargs: dict[str, Any] = {}
    if prefix:
        kwargs["logGroupNamePrefix"] = prefix
    return fetch_all(
        _paged(_client(session, "logs"), "describe_log_groups", **kwargs),
        projection("logGroups", ("logGroupName", "arn")),
        delay_seconds=delay,
        label="describe-log-groups",
    )


def list_log_streams(session: Any, *, group: str, delay: float = DEFAULT_PAGE_DELAY_SECONDS) -> list[dict[str, Any]]:
    return fetch_all(
        _paged(
            _client(session, "logs"),
            "describe_log_streams",
            logGroupName=group,
            orderBy="LastEventTime",
            descending=True,
        ),
        projection("logStreams", ("logStreamName", "lastEventTimestamp")),
        delay_seconds=delay,
        label="describe-log-streams",
    )


def list_log_events(
    session: Any,
    *,
    group: str,
    stream: str,
    start_time_ms: int | None = None,
    delay: float = DEFAULT_PAGE_DELAY_SECONDS,
) -> list[dict[str, Any]]:
    kwargs: dict[str, Any] = {"logGroupName": group, "logStreamNames": [stream]}
    if start_time_ms is not None:
        kwargs["startTime"] = int(start_time_ms)
    return fetch_all(
        _paged(_client(session, "logs"), "filter_log_events", **kwargs),
        projection("events", ("timestamp", "message")),
        delay_seconds=delay,
        label="filter-log-events",
    )


def list_clusters(session: Any, *, delay: float = DEFAULT_PAGE_DELAY_SECONDS) -> list[str]:
    return fetch_all(
        _paged(_client(session, "eks"), "list_clusters"),
        projection("clusters"),
        delay_seconds=delay,
        label="eks list-clusters",
    )


def list_image_pipelines(session: Any, *, delay: float = DEFAULT_PAGE_DELAY_SECONDS) -> list[dict[str, Any]]:
    return fetch_all(
        _paged(_client(session, "imagebuilder"), "list_image_pipelines"),
        projection("imagePipelineList", ("name", "arn")),
        delay_seconds=delay,
        label="imagebuilder list-image-pipelines",
    )


def list_pipeline_builds(session: Any, *, pipeline_arn: str, delay: float = DEFAULT_PAGE_DELAY_SECONDS) -> list[dict[str, Any]]:
    """Builds of one pipeline, newest first."""
    records = fetch_all(
        _paged(
            _client(session, "imagebuilder"),
            "list_image_pipeline_images",
            imagePipelineArn=pipeline_arn,
        ),
        projection("imageSummaryList", ("arn", "dateCreated", "status.status", "buildType")),
        delay_seconds=delay,
        label="imagebuilder list-image-pipeline-images",
    )
    return sorted(records, key=lambda r: str(r.get("dateCreated") or ""), reverse=True)


def start_pipeline_execution(session: Any, *, pipeline_arn: str) -> dict[str, Any]:
    return _call(
        _client(session, "imagebuilder"),
        "start_image_pipeline_execution",
        imagePipelineArn=pipeline_arn,
        clientToken=str(uuid.uuid4()),
    )


def get_image_pipeline(session: Any, *, pipeline_arn: str) -> dict[str, Any]:
    resp = _call(_client(session, "imagebuilder"), "get_image_pipeline", imagePipelineArn=pipeline_arn)
    return resp.get("imagePipeline") or {}


def get_image(session: Any, *, image_arn: str) -> dict[str, Any]:
    resp = _call(_client(session, "imagebuilder"), "get_image", imageBuildVersionArn=image_arn)
    return resp.get("image") or {}


def caller_identity(session: Any) -> dict[str, Any]:
    resp = _call(_client(session, "sts"), "get_caller_identity")
    return {k: v for k, v in resp.items() if k != "ResponseMetadata"}


def ecr_authorization(session: Any) -> tuple[str, str, str]:
    resp = _call(_client(session, "ecr"), "get_authorization_token")
    data = resp.get("authorizationData") or []
    if not data:
        raise OpError("ecr get-authorization-token returned no authorization data")
    first = data[0]
    try:
        decoded = base64.b64decode(str(first.get("authorizationToken") or "")).decode("utf-8")
    except (ValueError, UnicodeDecodeError) as e:
        raise OpError(f"invalid ECR authorization token: {e}") from e
    username, sep, password = decoded.partition(":")
    if not sep or not password:
        raise OpError("invalid ECR authorization token: expected user:password")
    endpoint = str(first.get("proxyEndpoint") or "").strip()
    if not endpoint:
        raise OpError("ecr get-authorization-token returned no proxy endpoint")
    return username, password, endpoint


def run_command(argv: list[str], *, input_text: str | None = None, label: str | None = None) -> None:
    """Run an external command attached to the terminal; non-zero exit raises."""
    log.debug(f"running: {shlex.join(argv)}")
    try:
        proc = subprocess.run(argv, input=input_text, text=True, check=False)
    except OSError as e:
        raise OpError(f"cannot run {argv[0]}: {e}") from e
    if proc.returncode != 0:
        what = label or shlex.join(argv[:3])
        raise RemoteCallError(f"{what} failed (exit status {proc.returncode})", payload=proc.returncode)


def run_aws(args: list[str], ctx: CredentialContext, *, label: str | None = None) -> None:
    run_command(
        ["aws", *args, "--profile", ctx.profile, "--region", ctx.region],
        label=label or f"aws {' '.join(args[:2])}",
    )
