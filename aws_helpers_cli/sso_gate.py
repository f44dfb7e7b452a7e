from __future__ import annotations

import shutil
from typing import Any

from . import log, remote
from .cli_shared import AuthError, Capabilities, RemoteCallError, UsageError
from .credential_context import CredentialContext


def _identity_or_none(ctx: CredentialContext) -> dict[str, Any] | None:
    try:
        return remote.caller_identity(remote.open_session(ctx))
    except RemoteCallError as e:
        log.debug(f"identity check failed: {e}")
        return None


def sso_login_args(ctx: CredentialContext) -> list[str]:
    if ctx.sso_session:
        return ["aws", "sso", "login", "--sso-session", ctx.sso_session]
    return ["aws", "sso", "login", "--profile", ctx.profile, "--region", ctx.region]


def run_sso_login(argv: list[str]) -> None:
    if shutil.which(argv[0]) is None:
        raise UsageError(f"missing dependency: {argv[0]} CLI is required for sso login")
    try:
        remote.run_command(argv, label="aws sso login")
    except RemoteCallError as e:
        raise AuthError("you did not log in, exiting") from e


def ensure_valid_login(ctx: CredentialContext, *, caps: Capabilities) -> dict[str, Any]:
    """Check the context can authenticate; log in once via SSO on a terminal.

    Without a terminal this never starts an interactive login.
    """
    identity = _identity_or_none(ctx)
    if identity is not None:
        log.ok("Your sso token is valid, continuing")
        return identity

    if not caps.interactive:
        raise AuthError(
            "not in a tty, no active SSO login for profile "
            f"{ctx.profile!r}; log in via SSO or set up IAM credentials first"
        )

    log.info("Found that this is an interactive terminal, will run the sso login")
    run_sso_login(sso_login_args(ctx))

    identity = _identity_or_none(ctx)
    if identity is None:
        raise AuthError(f"credentials for profile {ctx.profile!r} are still invalid after sso login")
    log.ok("Logged in, continuing")
    return identity
