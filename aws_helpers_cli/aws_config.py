from __future__ import annotations

import re
from pathlib import Path

from .cli_shared import AWS_CONFIG_FILE, UsageError, _env_or_none

DEFAULT_CONFIG_PATH = "~/.aws/config"

PROFILE = "profile"
SSO_SESSION = "sso-session"

_HEADER_RE = re.compile(r"^\[([^\s\]]+)\s+(.*)\]$")
_ANY_HEADER_RE = re.compile(r"^\[.*\]\s*$")
_KEY_VALUE_RE = re.compile(r"^\s*([A-Za-z0-9_.\-]+)\s*=\s*(.*?)\s*$")


def config_file_path(override: str | None = None) -> Path:
    raw = (override or "").strip() or _env_or_none(AWS_CONFIG_FILE) or DEFAULT_CONFIG_PATH
    return Path(raw).expanduser()


def _read_lines(path: Path) -> list[str]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise UsageError(f"cannot read AWS config file {str(path)!r}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise UsageError(f"cannot read AWS config file {str(path)!r}: not valid UTF-8 ({e.reason})") from e
    return text.splitlines()


def section_names(kind: str = PROFILE, path: Path | None = None) -> list[str]:
    """Names from ``[<kind> NAME]`` header lines, in file order."""
    out: list[str] = []
    for line in _read_lines(path or config_file_path()):
        m = _HEADER_RE.match(line)
        if m and m.group(1) == kind:
            out.append(m.group(2))
    return out


def _section_lines(kind: str, name: str, path: Path) -> list[str]:
    header = f"[{kind} {name}]"
    out: list[str] = []
    inside = False
    for line in _read_lines(path):
        if _ANY_HEADER_RE.match(line):
            if inside:
                break
            inside = line.strip() == header
        if inside:
            out.append(line)
    return out


def section_text(kind: str, name: str, path: Path | None = None) -> str:
    lines = _section_lines(kind, name, path or config_file_path())
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def section_values(kind: str, name: str, path: Path | None = None) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in _section_lines(kind, name, path or config_file_path())[1:]:
        if line.lstrip().startswith(("#", ";")):
            continue
        m = _KEY_VALUE_RE.match(line)
        if m:
            values[m.group(1)] = m.group(2)
    return values


def profile_names(path: Path | None = None) -> list[str]:
    return section_names(PROFILE, path)


def sso_session_names(path: Path | None = None) -> list[str]:
    return section_names(SSO_SESSION, path)
