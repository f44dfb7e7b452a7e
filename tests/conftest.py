from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from aws_helpers_cli.cli_shared import Capabilities


_AWS_ENV = (
    "AWS_PROFILE",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "AWS_SSO_SESSION_NAME",
    "AWS_CONFIG_FILE",
    "DEBUG",
    "V",
)

CONFIG_TEXT = """\
[default]
region = us-east-1

[profile dev]
sso_session = work
sso_account_id = 111111111111
region = us-east-1

[profile prod]
sso_session = work
sso_account_id = 222222222222

[sso-session work]
sso_start_url = https://example.awsapps.com/start
sso_region = us-east-1
"""


@pytest.fixture(autouse=True)
def _clean_aws_env(monkeypatch, tmp_path: Path) -> None:
    for name in _AWS_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_HELPERS_PAGE_DELAY", "0")
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch) -> Path:
    path = tmp_path / "aws-config"
    path.write_text(CONFIG_TEXT, encoding="utf-8")
    monkeypatch.setenv("AWS_CONFIG_FILE", str(path))
    return path


class FakeClient:
    """Replays queued responses per operation and records every call."""

    def __init__(self, responses: dict[str, list[Any]]):
        self._responses = {k: list(v) for k, v in responses.items()}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def __getattr__(self, op: str):
        if op.startswith("_"):
            raise AttributeError(op)

        def call(**kwargs: Any) -> Any:
            self.calls.append((op, kwargs))
            queue = self._responses.get(op)
            if not queue:
                raise AssertionError(f"unexpected call: {op}({kwargs})")
            item = queue.pop(0)
            if isinstance(item, Exception):
                raise item
            return item

        return call

    def ops(self) -> list[str]:
        return [op for op, _ in self.calls]


class FakeSession:
    def __init__(self, clients: dict[str, FakeClient]):
        self.clients = clients

    def client(self, name: str) -> FakeClient:
        return self.clients[name]


@pytest.fixture
def fake_aws(monkeypatch):
    """Install a FakeSession built from ``{service: {op: [responses]}}``."""

    def install(services: dict[str, dict[str, list[Any]]]) -> FakeSession:
        services = {"sts": {"get_caller_identity": [{"Account": "111111111111", "Arn": "arn:aws:sts::111111111111:assumed-role/dev/me"}] * 4}, **services}
        session = FakeSession({name: FakeClient(ops) for name, ops in services.items()})
        monkeypatch.setattr("aws_helpers_cli.remote.open_session", lambda ctx: session)
        return session

    return install


@pytest.fixture
def interactive_caps() -> Capabilities:
    return Capabilities(interactive=True, fzf="/usr/bin/fzf")


@pytest.fixture
def batch_caps() -> Capabilities:
    return Capabilities(interactive=False, fzf=None)
