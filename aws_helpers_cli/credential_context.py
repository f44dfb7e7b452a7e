from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from . import aws_config, log
from .cli_shared import (
    AWS_DEFAULT_REGION,
    AWS_PROFILE,
    AWS_REGION,
    AWS_REGIONS_ALL,
    AWS_SSO_SESSION_NAME,
    Capabilities,
    UsageError,
    _env_or_none,
)
from .preview import preview_command
from .selector import select_one


@dataclass(frozen=True)
class CredentialContext:
    profile: str
    region: str
    sso_session: str | None = None


def resolve_profile(profile: str | None, *, caps: Capabilities, config_path: Path) -> str:
    explicit = (profile or "").strip() or _env_or_none(AWS_PROFILE)
    if explicit:
        return explicit
    missing = f"missing AWS profile (pass --profile or set {AWS_PROFILE})"
    if not caps.can_select:
        raise UsageError(missing)
    return select_one(
        aws_config.profile_names(config_path),
        title="\U0001F4D4 Profile names",
        caps=caps,
        header="SHIFT-LEFT/RIGHT: scroll preview",
        preview=preview_command("section", aws_config.PROFILE, str(config_path)),
        preview_label="\U0001F4DC Profile configuration",
    )


def validate_region(region: str) -> str:
    if region not in AWS_REGIONS_ALL:
        raise UsageError(f"invalid AWS region: {region}")
    return region


def resolve_region(
    region: str | None,
    *,
    profile: str,
    caps: Capabilities,
    config_path: Path,
) -> str:
    explicit = (region or "").strip() or _env_or_none(AWS_REGION, AWS_DEFAULT_REGION)
    if explicit:
        return validate_region(explicit)

    try:
        configured = aws_config.section_values(aws_config.PROFILE, profile, config_path).get("region")
    except UsageError:
        configured = None
    if configured:
        log.debug(f"region {configured} taken from profile {profile}")
        return validate_region(configured)

    missing = f"missing AWS region (pass --region or set {AWS_REGION})"
    if not caps.can_select:
        raise UsageError(missing)
    return select_one(list(AWS_REGIONS_ALL), title="\U0001F4D4 AWS Region", caps=caps)


def resolve_sso_session(session: str | None, *, caps: Capabilities, config_path: Path) -> str:
    explicit = (session or "").strip() or _env_or_none(AWS_SSO_SESSION_NAME)
    if explicit:
        return explicit
    missing = f"missing SSO session (pass --session or set {AWS_SSO_SESSION_NAME})"
    if not caps.can_select:
        raise UsageError(missing)
    return select_one(
        aws_config.sso_session_names(config_path),
        title="\U0001F4D4 SSO sessions",
        caps=caps,
        preview=preview_command("section", aws_config.SSO_SESSION, str(config_path)),
        preview_label="\U0001F4DC Session configuration",
    )


def resolve_context(
    *,
    profile: str | None,
    region: str | None,
    caps: Capabilities,
    config_path: Path,
    sso_session: str | None = None,
) -> CredentialContext:
    """Resolve profile then region; the session is kept only when given.

    The returned context does not change for the rest of the invocation.
    """
    resolved_profile = resolve_profile(profile, caps=caps, config_path=config_path)
    resolved_region = resolve_region(
        region,
        profile=resolved_profile,
        caps=caps,
        config_path=config_path,
    )
    ctx = CredentialContext(profile=resolved_profile, region=resolved_region)
    session = (sso_session or "").strip() or _env_or_none(AWS_SSO_SESSION_NAME)
    if session:
        ctx = replace(ctx, sso_session=session)
    log.debug(f"credential context: {ctx}")
    return ctx
