from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.markup import escape

_CONSOLE = Console(stderr=True, highlight=False, soft_wrap=True)

_debug_enabled = False


def set_debug(enabled: bool) -> None:
    global _debug_enabled
    _debug_enabled = bool(enabled)


def _stamp() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%dT%H:%M:%S%z")


def _emit(style: str, icon: str, tag: str, msg: str) -> None:
    _CONSOLE.print(f"[{style}]{icon} [bold]{tag}[/bold] {escape(f'[{_stamp()}]')}:[/{style}] {escape(msg)}")


def ok(msg: str) -> None:
    _emit("green", "✔", "OK", msg)


def info(msg: str) -> None:
    _emit("blue", "\U0001F4E6", "INFO", msg)


def warn(msg: str) -> None:
    _emit("yellow", "⇸", "WARN", msg)


def error(msg: str) -> None:
    _emit("red", "❌", "ERROR", msg)


def debug(msg: str) -> None:
    if _debug_enabled:
        _emit("dim", "•", "DEBUG", msg)
