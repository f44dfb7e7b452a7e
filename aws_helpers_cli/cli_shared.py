from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any


class HelperError(Exception):
    kind = "error"


class UsageError(HelperError):
    kind = "config"


class OpError(HelperError):
    pass


class RemoteCallError(OpError):
    kind = "remote"

    def __init__(self, message: str, payload: Any = None):
        super().__init__(message)
        self.payload = payload


class EmptyResultError(OpError):
    kind = "empty"


class SelectionAbortedError(OpError):
    kind = "aborted"


class SelectionUnavailableError(UsageError):
    kind = "unavailable"


class AuthError(OpError):
    kind = "auth"


AWS_PROFILE = "AWS_PROFILE"
AWS_REGION = "AWS_REGION"
AWS_DEFAULT_REGION = "AWS_DEFAULT_REGION"
AWS_SSO_SESSION_NAME = "AWS_SSO_SESSION_NAME"
AWS_CONFIG_FILE = "AWS_CONFIG_FILE"
AWS_HELPERS_PAGE_DELAY = "AWS_HELPERS_PAGE_DELAY"

DEFAULT_PAGE_DELAY_SECONDS = 1.0

AWS_REGIONS_ALL = (
    "us-east-1",
    "us-east-2",
    "us-west-1",
    "us-west-2",
    "eu-central-1",
    "eu-west-1",
    "eu-west-2",
    "ap-northeast-1",
    "ap-northeast-2",
    "ap-southeast-1",
    "ap-southeast-2",
    "ap-south-1",
    "ca-central-1",
    "cn-north-1",
    "cn-northwest-1",
    "eu-north-1",
    "me-south-1",
    "sa-east-1",
    "il-central-1",
)


@dataclass(frozen=True)
class Capabilities:
    """What the current process can do interactively.

    Computed once at startup; the selector and the login gate only look at
    this value and never probe the terminal themselves.
    """

    interactive: bool
    fzf: str | None = None

    @property
    def can_select(self) -> bool:
        return self.interactive and bool(self.fzf)


@dataclass(frozen=True)
class GlobalOpts:
    caps: Capabilities
    config_path: Path
    page_delay: float = DEFAULT_PAGE_DELAY_SECONDS
    debug: bool = False
    pretty: bool = True


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


def _page_delay_from_env() -> float:
    raw = _env_or_none(AWS_HELPERS_PAGE_DELAY)
    if raw is None:
        return DEFAULT_PAGE_DELAY_SECONDS
    try:
        val = float(raw)
    except ValueError as e:
        raise UsageError(f"invalid {AWS_HELPERS_PAGE_DELAY}: {raw!r}") from e
    if val < 0:
        raise UsageError(f"invalid {AWS_HELPERS_PAGE_DELAY}: must be >= 0")
    return val


def _print_json(obj: Any, *, pretty: bool) -> None:
    if pretty:
        sys.stdout.write(json.dumps(obj, indent=2, sort_keys=True, default=str) + "\n")
    else:
        sys.stdout.write(json.dumps(obj, separators=(",", ":"), sort_keys=True, default=str) + "\n")


def _print_lines(lines: list[str]) -> None:
    for line in lines:
        sys.stdout.write(f"{line}\n")
