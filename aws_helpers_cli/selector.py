"""Resolve a list of candidates to exactly one value.

One candidate is taken as-is. Several candidates go through fzf when the
process is attached to a terminal and fzf is installed; otherwise the caller
gets ``SelectionUnavailableError`` and should have asked for an explicit flag.
"""
from __future__ import annotations

import contextlib
import json
import os
import shutil
import subprocess
import sys
import tempfile
from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any

from . import log
from .cli_shared import (
    Capabilities,
    EmptyResultError,
    OpError,
    SelectionAbortedError,
    SelectionUnavailableError,
)
from .preview import preview_command

# fzf exit codes: 1 = no match, 130 = interrupted with ESC / CTRL-C.
_FZF_NO_SELECTION = (1, 130)


def detect_capabilities() -> Capabilities:
    return Capabilities(interactive=sys.stdout.isatty(), fzf=shutil.which("fzf"))


def _fzf_base_args(fzf: str, *, title: str) -> list[str]:
    return [
        fzf,
        "--height",
        "50%",
        "--layout",
        "reverse",
        "--min-height",
        "20",
        "--border",
        "--border-label",
        f" {title} ",
        "--border-label-pos",
        "2",
        "--color",
        "label:white",
        "--no-multi",
        "--tiebreak",
        "begin",
        "--preview-window",
        "right,80%",
    ]


def fzf_args(
    fzf: str,
    *,
    title: str,
    header: str | None = None,
    preview: str | None = None,
    preview_label: str | None = None,
) -> list[str]:
    args = _fzf_base_args(fzf, title=title)
    if header:
        args += ["--header", header, "--header-first"]
    if preview:
        args += [
            "--preview",
            preview,
            "--preview-window",
            "right,60%,wrap",
            "--bind",
            "shift-left:preview-half-page-up,shift-right:preview-half-page-down",
        ]
        if preview_label:
            args += ["--preview-label", f" {preview_label} "]
    else:
        args.append("--no-preview")
    return args


def _run_fzf(args: list[str], input_text: str) -> tuple[int, str]:
    # fzf draws on /dev/tty; only stdout carries the chosen line.
    proc = subprocess.run(args, input=input_text, stdout=subprocess.PIPE, text=True, check=False)
    return proc.returncode, proc.stdout or ""


def select_one(
    candidates: Sequence[str],
    *,
    title: str,
    caps: Capabilities,
    header: str | None = None,
    preview: str | None = None,
    preview_label: str | None = None,
) -> str:
    items = [str(c) for c in candidates]
    if len(items) == 1:
        log.debug(f"{title}: single candidate {items[0]!r}, selected without prompting")
        return items[0]
    if not items:
        raise EmptyResultError(f"no candidates to choose from for {title}")
    if not caps.can_select or not caps.fzf:
        raise SelectionUnavailableError(
            f"{title} selection required but no interactive terminal with fzf is available"
        )

    args = fzf_args(caps.fzf, title=title, header=header, preview=preview, preview_label=preview_label)
    log.debug(f"fzf for {title} with {len(items)} candidate(s)")
    code, out = _run_fzf(args, "\n".join(items) + "\n")
    choice = out.strip("\r\n")
    if code in _FZF_NO_SELECTION or (code == 0 and not choice):
        raise SelectionAbortedError(f"no selection made for {title}")
    if code != 0:
        raise OpError(f"fzf failed for {title} (exit status {code})")
    return choice


@contextlib.contextmanager
def _record_preview_file(by_label: Mapping[str, Any]) -> Iterator[str]:
    fd, path = tempfile.mkstemp(prefix="aws-helpers-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(by_label, fh, default=str)
        yield path
    finally:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(path)


def select_record(
    records: Sequence[Mapping[str, Any]],
    *,
    label: Callable[[Mapping[str, Any]], str],
    title: str,
    caps: Capabilities,
    header: str | None = None,
    preview_records: bool = False,
) -> Mapping[str, Any]:
    """Select one record by its label.

    With ``preview_records`` the fetched records are shown in the preview
    pane next to the list. Duplicate labels resolve to the first record.
    """
    by_label: dict[str, Mapping[str, Any]] = {}
    for rec in records:
        by_label.setdefault(label(rec), rec)
    labels = list(by_label)

    if not preview_records or len(labels) < 2 or not caps.can_select:
        chosen = select_one(labels, title=title, caps=caps, header=header)
    else:
        with _record_preview_file(by_label) as path:
            chosen = select_one(
                labels,
                title=title,
                caps=caps,
                header=header,
                preview=preview_command("record", path),
                preview_label="Details",
            )
    if chosen not in by_label:
        raise OpError(f"fzf returned an unknown {title} entry: {chosen!r}")
    return by_label[chosen]
