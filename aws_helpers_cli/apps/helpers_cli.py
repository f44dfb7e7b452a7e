from __future__ import annotations

import argparse
import os
import sys
from typing import Any

import click
import typer
from dotenv import load_dotenv

from .. import __version__
from .. import log
from ..aws_config import config_file_path
from ..cli_shared import (
    AWS_CONFIG_FILE,
    AWS_PROFILE,
    AWS_REGION,
    AWS_SSO_SESSION_NAME,
    GlobalOpts,
    HelperError,
    _env_or_none,
    _page_delay_from_env,
)
from ..helper_commands import (
    IMAGEBUILDER_ACTIONS,
    cmd_cw,
    cmd_ecr_login,
    cmd_eks_update,
    cmd_imagebuilder,
    cmd_profiles,
    cmd_sessions,
    cmd_sso_login,
)
from ..selector import detect_capabilities

_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

# Newer typer raises from its bundled click copy instead of the click package.
_TYPER_CLICK = sys.modules[typer.BadParameter.__module__]
_ABORT_ERRORS = (click.exceptions.Abort, typer.Abort)
_CLICK_ERRORS = (click.ClickException, _TYPER_CLICK.ClickException)


def _rich_error(msg: str, *, kind: str = "error") -> None:
    log.error(f"[{kind}] {msg}")


def _bootstrap_env() -> None:
    # Exported variables win over .env entries.
    load_dotenv()


def _namespace(**kwargs: Any) -> argparse.Namespace:
    return argparse.Namespace(**kwargs)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"aws-helpers {__version__}")
        raise typer.Exit(code=0)


def _global_opts() -> GlobalOpts:
    debug = _env_or_none("DEBUG", "V") is not None
    log.set_debug(debug)
    g = GlobalOpts(
        caps=detect_capabilities(),
        config_path=config_file_path(),
        page_delay=_page_delay_from_env(),
        debug=debug,
    )
    log.debug(f"global options: {g}")
    return g


def _ctx_global(ctx: typer.Context) -> GlobalOpts:
    if isinstance(ctx.obj, dict) and isinstance(ctx.obj.get("g"), GlobalOpts):
        return ctx.obj["g"]
    g = _global_opts()
    ctx.obj = {"g": g}
    return g


def _invoke(ctx: typer.Context, func: Any, **kwargs: Any) -> None:
    args = _namespace(**kwargs)
    try:
        g = _ctx_global(ctx)
        code = int(func(args, g))
    except HelperError as e:
        _rich_error(str(e), kind=e.kind)
        raise typer.Exit(code=1)

    if code:
        raise typer.Exit(code=code)


def _profile_option() -> Any:
    return typer.Option(None, "-p", "--profile", help=f"AWS CLI profile name (or env {AWS_PROFILE})")


def _region_option() -> Any:
    return typer.Option(None, "-r", "--region", help=f"AWS region (or env {AWS_REGION})")


def _session_option(help_text: str) -> Any:
    return typer.Option(None, "-s", "--session", help=f"{help_text} (or env {AWS_SSO_SESSION_NAME})")


def _version_option() -> Any:
    return typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    )


def _helper_app(name: str, help_text: str) -> typer.Typer:
    return typer.Typer(
        name=name,
        help=help_text,
        add_completion=False,
        context_settings=_CONTEXT_SETTINGS,
    )


cw_app = _helper_app("aws-cw", "Browse CloudWatch log groups and streams and print their events.")
ecr_login_app = _helper_app("aws-ecr-login", "Log Docker in to the account's ECR registry.")
eks_update_app = _helper_app("aws-eks-update", "Update kubeconfig for an EKS cluster.")
imagebuilder_app = _helper_app("aws-imagebuilder", "Inspect and start EC2 Image Builder pipelines.")
profiles_app = _helper_app("aws-profiles", f"List profile names from the AWS config file (env {AWS_CONFIG_FILE}).")
sessions_app = _helper_app("aws-sessions", f"List SSO session names from the AWS config file (env {AWS_CONFIG_FILE}).")
sso_login_app = _helper_app("aws-sso-login", "Make sure an SSO login is active for a profile or SSO session.")


@cw_app.command(help="Select a log group and stream, then print (or save) its events.")
def cw(
    ctx: typer.Context,
    log_group: str | None = typer.Argument(None, help="Log group name (prompted when omitted)"),
    log_stream: str | None = typer.Argument(None, help="Log stream name (prompted when omitted)"),
    profile: str | None = _profile_option(),
    region: str | None = _region_option(),
    outfile: str | None = typer.Option(None, "-o", "--outfile", help="Write events to this file instead of stdout"),
    since: int | None = typer.Option(None, "--since", help="Only events from the last N minutes"),
    version: bool = _version_option(),
) -> None:
    del version
    _invoke(
        ctx,
        cmd_cw,
        log_group=log_group,
        log_stream=log_stream,
        profile=profile,
        region=region,
        outfile=outfile,
        since=since,
    )


@ecr_login_app.command(help="Fetch an ECR authorization token and pass it to docker login.")
def ecr_login(
    ctx: typer.Context,
    profile: str | None = _profile_option(),
    region: str | None = _region_option(),
    version: bool = _version_option(),
) -> None:
    del version
    _invoke(ctx, cmd_ecr_login, profile=profile, region=region)


@eks_update_app.command(help="Select a cluster (auto when only one) and run aws eks update-kubeconfig.")
def eks_update(
    ctx: typer.Context,
    cluster: str | None = typer.Argument(None, help="Cluster name (prompted when omitted)"),
    profile: str | None = _profile_option(),
    region: str | None = _region_option(),
    session: str | None = _session_option("SSO session used when a re-login is needed"),
    version: bool = _version_option(),
) -> None:
    del version
    _invoke(ctx, cmd_eks_update, cluster=cluster, profile=profile, region=region, session=session)


@imagebuilder_app.command(help=f"Run an action on an image pipeline: {', '.join(IMAGEBUILDER_ACTIONS)}.")
def imagebuilder(
    ctx: typer.Context,
    pipeline: str | None = typer.Argument(None, help="Pipeline name or ARN (prompted when omitted)"),
    action: str | None = typer.Argument(None, help=f"One of: {', '.join(IMAGEBUILDER_ACTIONS)} (prompted when omitted)"),
    build: str | None = typer.Argument(None, help="Build version ARN for the builds action (prompted when omitted)"),
    profile: str | None = _profile_option(),
    region: str | None = _region_option(),
    version: bool = _version_option(),
) -> None:
    del version
    _invoke(
        ctx,
        cmd_imagebuilder,
        pipeline=pipeline,
        action=action,
        build=build,
        profile=profile,
        region=region,
    )


@profiles_app.command(help="Print profile names, one per line, in file order.")
def profiles(ctx: typer.Context, version: bool = _version_option()) -> None:
    del version
    _invoke(ctx, cmd_profiles)


@sessions_app.command(help="Print SSO session names, one per line, in file order.")
def sessions(ctx: typer.Context, version: bool = _version_option()) -> None:
    del version
    _invoke(ctx, cmd_sessions)


@sso_login_app.command(help="Check the profile login (re-login on a terminal) or log in to an SSO session.")
def sso_login(
    ctx: typer.Context,
    profile: str | None = _profile_option(),
    region: str | None = _region_option(),
    session: str | None = _session_option("SSO session to log in to"),
    version: bool = _version_option(),
) -> None:
    del version
    _invoke(ctx, cmd_sso_login, profile=profile, region=region, session=session)


def _run_cli(*, root_app: typer.Typer, prog_name: str, argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    _bootstrap_env()
    os.environ.setdefault("AWS_PAGER", "")
    try:
        result = root_app(args=argv, prog_name=prog_name, standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except _ABORT_ERRORS:
        _rich_error("interrupted", kind="aborted")
        return 130
    except _CLICK_ERRORS as e:
        _rich_error(e.format_message(), kind="usage")
        return 1
    except HelperError as e:
        _rich_error(str(e), kind=e.kind)
        return 1


def main_cw(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=cw_app, prog_name="aws-cw", argv=argv)


def main_ecr_login(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=ecr_login_app, prog_name="aws-ecr-login", argv=argv)


def main_eks_update(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=eks_update_app, prog_name="aws-eks-update", argv=argv)


def main_imagebuilder(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=imagebuilder_app, prog_name="aws-imagebuilder", argv=argv)


def main_profiles(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=profiles_app, prog_name="aws-profiles", argv=argv)


def main_sessions(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=sessions_app, prog_name="aws-sessions", argv=argv)


def main_sso_login(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=sso_login_app, prog_name="aws-sso-login", argv=argv)
