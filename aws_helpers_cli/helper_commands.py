from __future__ import annotations

import argparse
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from . import aws_config, log, remote
from .cli_shared import (
    AWS_PROFILE,
    EmptyResultError,
    GlobalOpts,
    UsageError,
    _env_or_none,
    _print_json,
    _print_lines,
)
from .credential_context import CredentialContext, resolve_context, resolve_sso_session
from .selector import select_one, select_record
from .sso_gate import ensure_valid_login, run_sso_login

IMAGEBUILDER_ACTIONS = ("builds", "start", "describe")


def _context(args: argparse.Namespace, g: GlobalOpts) -> CredentialContext:
    return resolve_context(
        profile=getattr(args, "profile", None),
        region=getattr(args, "region", None),
        sso_session=getattr(args, "session", None),
        caps=g.caps,
        config_path=g.config_path,
    )


def _logged_in_session(args: argparse.Namespace, g: GlobalOpts) -> tuple[CredentialContext, Any]:
    ctx = _context(args, g)
    ensure_valid_login(ctx, caps=g.caps)
    return ctx, remote.open_session(ctx)


def _format_timestamp_ms(raw: Any) -> str:
    try:
        ms = int(raw)
    except (TypeError, ValueError):
        return "-"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat(timespec="milliseconds")


def _stream_label(rec: dict[str, Any]) -> str:
    return str(rec.get("logStreamName") or "")


def _event_line(event: dict[str, Any]) -> str:
    message = str(event.get("message") or "").rstrip("\n")
    return f"{_format_timestamp_ms(event.get('timestamp'))} {message}"


def cmd_cw(args: argparse.Namespace, g: GlobalOpts) -> int:
    ctx, session = _logged_in_session(args, g)

    group = (args.log_group or "").strip()
    if not group:
        groups = remote.list_log_groups(session, delay=g.page_delay)
        if not groups:
            raise EmptyResultError(f"no log groups found for {ctx.profile} in region {ctx.region}")
        group = str(
            select_record(
                groups,
                label=lambda r: str(r.get("logGroupName") or ""),
                title="\U0001F4DA Log groups",
                caps=g.caps,
            )["logGroupName"]
        )
    log.info(f"Log group: {group}")

    stream = (args.log_stream or "").strip()
    if not stream:
        streams = remote.list_log_streams(session, group=group, delay=g.page_delay)
        if not streams:
            raise EmptyResultError(f"no log streams found in log group {group}")
        chosen = select_record(
            streams,
            label=_stream_label,
            title="\U0001F4C3 Log streams",
            caps=g.caps,
            header="newest first",
            preview_records=True,
        )
        stream = _stream_label(dict(chosen))
    log.info(f"Log stream: {stream}")

    start_time_ms = None
    if args.since is not None:
        if args.since <= 0:
            raise UsageError("--since must be a positive number of minutes")
        start_time_ms = int((time.time() - args.since * 60) * 1000)

    events = remote.list_log_events(
        session,
        group=group,
        stream=stream,
        start_time_ms=start_time_ms,
        delay=g.page_delay,
    )
    lines = [_event_line(e) for e in events]
    if args.outfile:
        out = Path(args.outfile).expanduser()
        try:
            out.parent.mkdir(parents=True, exist_ok=True)
            out.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        except OSError as e:
            raise UsageError(f"cannot write {out}: {e.strerror or e}") from e
        log.ok(f"Wrote {len(lines)} event(s) to {out}")
    else:
        _print_lines(lines)
        if not lines:
            log.warn(f"No events in {group}/{stream}")
    return 0


def cmd_ecr_login(args: argparse.Namespace, g: GlobalOpts) -> int:
    _ctx, session = _logged_in_session(args, g)
    if shutil.which("docker") is None:
        raise UsageError("missing dependency: docker is required for ecr login")
    username, password, endpoint = remote.ecr_authorization(session)
    remote.run_command(
        ["docker", "login", "--username", username, "--password-stdin", endpoint],
        input_text=password,
        label="docker login",
    )
    log.ok(f"Logged in to {endpoint}")
    return 0


def cmd_eks_update(args: argparse.Namespace, g: GlobalOpts) -> int:
    ctx, session = _logged_in_session(args, g)

    cluster = (args.cluster or "").strip()
    if not cluster:
        clusters = remote.list_clusters(session, delay=g.page_delay)
        if not clusters:
            raise EmptyResultError(f"no clusters found for {ctx.profile} in region {ctx.region}")
        cluster = select_one(clusters, title="☸ Clusters", caps=g.caps)

    remote.run_aws(["eks", "update-kubeconfig", "--name", cluster], ctx)
    log.ok(f"Updated kubeconfig for cluster {cluster}")
    return 0


def _resolve_pipeline(session: Any, wanted: str, g: GlobalOpts) -> dict[str, Any]:
    pipelines = remote.list_image_pipelines(session, delay=g.page_delay)
    if wanted:
        for p in pipelines:
            if wanted in (p.get("name"), p.get("arn")):
                return p
        raise UsageError(f"image pipeline not found: {wanted}")
    if not pipelines:
        raise EmptyResultError("no image pipelines found")
    return dict(
        select_record(
            pipelines,
            label=lambda r: str(r.get("name") or ""),
            title="\U0001F3ED Image pipelines",
            caps=g.caps,
        )
    )


def _build_label(rec: dict[str, Any]) -> str:
    return "  ".join(
        str(rec.get(k) or "-") for k in ("dateCreated", "status", "buildType", "arn")
    )


def cmd_imagebuilder(args: argparse.Namespace, g: GlobalOpts) -> int:
    action = (args.action or "").strip()
    if action and action not in IMAGEBUILDER_ACTIONS:
        raise UsageError(f"invalid action {action!r} (expected one of: {', '.join(IMAGEBUILDER_ACTIONS)})")
    build_arn = (getattr(args, "build", None) or "").strip()
    if build_arn:
        if action not in ("", "builds"):
            raise UsageError(f"a build ARN only applies to the builds action, not {action!r}")
        action = "builds"

    _ctx, session = _logged_in_session(args, g)
    pipeline = _resolve_pipeline(session, (args.pipeline or "").strip(), g)
    arn = str(pipeline.get("arn") or "")
    log.info(f"Image pipeline: {pipeline.get('name')}")

    if not action:
        action = select_one(list(IMAGEBUILDER_ACTIONS), title="⚙ Action", caps=g.caps)

    if action == "start":
        resp = remote.start_pipeline_execution(session, pipeline_arn=arn)
        version_arn = str(resp.get("imageBuildVersionArn") or "")
        log.ok(f"Started pipeline execution: {version_arn}")
        _print_lines([version_arn])
        return 0

    if action == "describe":
        _print_json(remote.get_image_pipeline(session, pipeline_arn=arn), pretty=g.pretty)
        return 0

    if build_arn:
        _print_json(remote.get_image(session, image_arn=build_arn), pretty=g.pretty)
        return 0

    builds = remote.list_pipeline_builds(session, pipeline_arn=arn, delay=g.page_delay)
    if not builds:
        raise EmptyResultError(f"no builds found for image pipeline {pipeline.get('name')}")
    build = select_record(
        builds,
        label=_build_label,
        title="\U0001F528 Pipeline builds",
        caps=g.caps,
        header="date  status  type  arn (newest first)",
        preview_records=True,
    )
    _print_json(remote.get_image(session, image_arn=str(build.get("arn") or "")), pretty=g.pretty)
    return 0


def cmd_profiles(args: argparse.Namespace, g: GlobalOpts) -> int:
    del args
    _print_lines(aws_config.profile_names(g.config_path))
    return 0


def cmd_sessions(args: argparse.Namespace, g: GlobalOpts) -> int:
    del args
    _print_lines(aws_config.sso_session_names(g.config_path))
    return 0


def cmd_sso_login(args: argparse.Namespace, g: GlobalOpts) -> int:
    """Validate a profile login, or log in to an SSO session directly."""
    profile = (args.profile or "").strip() or _env_or_none(AWS_PROFILE)
    if profile and not (args.session or "").strip():
        identity = ensure_valid_login(_context(args, g), caps=g.caps)
        _print_json(identity, pretty=g.pretty)
        return 0

    session = resolve_sso_session(args.session, caps=g.caps, config_path=g.config_path)
    run_sso_login(["aws", "sso", "login", "--sso-session", session])
    log.ok(f"Logged in to SSO session {session}")
    return 0
