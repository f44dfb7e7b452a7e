"""Preview pane renderers, run by fzf as ``python -m aws_helpers_cli.preview``.

fzf replaces the trailing ``{}`` of the command with the highlighted line
(already shell-quoted) before running it.
"""
from __future__ import annotations

import json
import shlex
import sys
from pathlib import Path

import typer

from . import aws_config

app = typer.Typer(
    name="aws-helpers-preview",
    help="Render fzf preview panes.",
    no_args_is_help=True,
    add_completion=False,
)


def preview_command(*args: str) -> str:
    base = shlex.join([sys.executable, "-m", "aws_helpers_cli.preview", *[str(a) for a in args]])
    return f"{base} {{}}"


@app.command("section", help="Print one [KIND NAME] block of the AWS config file.")
def section(
    kind: str = typer.Argument(..., help="Section kind, e.g. profile or sso-session"),
    config_file: str = typer.Argument(..., help="AWS config file path"),
    name: str = typer.Argument(..., help="Section name"),
) -> None:
    text = aws_config.section_text(kind, name, Path(config_file))
    typer.echo(text or f"no [{kind} {name}] section in {config_file}")


@app.command("record", help="Print the fetched record stored under LABEL in a JSON file.")
def record(
    path: str = typer.Argument(..., help="JSON file mapping labels to records"),
    label: str = typer.Argument(..., help="Highlighted label"),
) -> None:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    rec = data.get(label) if isinstance(data, dict) else None
    if rec is None:
        typer.echo(f"no details for {label!r}")
        return
    typer.echo(json.dumps(rec, indent=2, sort_keys=True, default=str))


if __name__ == "__main__":
    app()
