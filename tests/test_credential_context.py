from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from aws_helpers_cli.cli_shared import Capabilities, EmptyResultError, UsageError
from aws_helpers_cli.credential_context import (
    CredentialContext,
    resolve_context,
    resolve_region,
    resolve_sso_session,
)


def test_explicit_values_win_over_env(monkeypatch, config_file, batch_caps):
    monkeypatch.setenv("AWS_PROFILE", "env-profile")
    monkeypatch.setenv("AWS_REGION", "eu-west-1")

    ctx = resolve_context(profile="dev", region="us-east-2", caps=batch_caps, config_path=config_file)

    assert ctx == CredentialContext(profile="dev", region="us-east-2")


def test_env_values_are_used_when_flags_absent(monkeypatch, config_file, batch_caps):
    monkeypatch.setenv("AWS_PROFILE", "prod")
    monkeypatch.setenv("AWS_REGION", "eu-west-1")
    monkeypatch.setenv("AWS_SSO_SESSION_NAME", "work")

    ctx = resolve_context(profile=None, region=None, caps=batch_caps, config_path=config_file)

    assert ctx == CredentialContext(profile="prod", region="eu-west-1", sso_session="work")


def test_context_is_immutable(config_file, batch_caps):
    ctx = resolve_context(profile="dev", region="us-east-1", caps=batch_caps, config_path=config_file)
    with pytest.raises(FrozenInstanceError):
        ctx.profile = "prod"  # type: ignore[misc]


def test_missing_profile_without_terminal_names_the_parameter(config_file, batch_caps):
    with pytest.raises(UsageError, match=r"missing AWS profile \(pass --profile or set AWS_PROFILE\)"):
        resolve_context(profile=None, region="us-east-1", caps=batch_caps, config_path=config_file)


def test_invalid_region_is_rejected(config_file, batch_caps):
    with pytest.raises(UsageError, match="invalid AWS region: mars-1"):
        resolve_context(profile="dev", region="mars-1", caps=batch_caps, config_path=config_file)


def test_region_substring_is_not_accepted(config_file, batch_caps):
    with pytest.raises(UsageError, match="invalid AWS region"):
        resolve_region("us-east", profile="dev", caps=batch_caps, config_path=config_file)


def test_region_falls_back_to_profile_config(config_file, batch_caps):
    assert resolve_region(None, profile="dev", caps=batch_caps, config_path=config_file) == "us-east-1"


def test_missing_region_without_terminal(config_file, batch_caps):
    with pytest.raises(UsageError, match="missing AWS region"):
        resolve_region(None, profile="prod", caps=batch_caps, config_path=config_file)


def test_profile_and_region_are_selected_interactively(monkeypatch, config_file, interactive_caps):
    prompts: list[list[str]] = []
    picks = iter(["prod", "eu-north-1"])

    def fake_run(args, input_text):
        prompts.append(args)
        return 0, next(picks) + "\n"

    monkeypatch.setattr("aws_helpers_cli.selector._run_fzf", fake_run)

    ctx = resolve_context(profile=None, region=None, caps=interactive_caps, config_path=config_file)

    assert ctx == CredentialContext(profile="prod", region="eu-north-1")
    profile_preview = prompts[0][prompts[0].index("--preview") + 1]
    assert "section profile" in profile_preview
    assert str(config_file) in profile_preview
    assert " \U0001F4D4 AWS Region " in prompts[1]


def test_single_profile_is_taken_without_prompt(monkeypatch, tmp_path, interactive_caps):
    path = tmp_path / "config"
    path.write_text("[profile solo]\nregion = ca-central-1\n", encoding="utf-8")

    def fake_run(args, input_text):
        raise AssertionError("no prompt expected")

    monkeypatch.setattr("aws_helpers_cli.selector._run_fzf", fake_run)

    ctx = resolve_context(profile=None, region=None, caps=interactive_caps, config_path=path)
    assert ctx == CredentialContext(profile="solo", region="ca-central-1")


def test_no_profiles_configured_is_empty(tmp_path, interactive_caps):
    path = tmp_path / "config"
    path.write_text("[default]\nregion = us-east-1\n", encoding="utf-8")

    with pytest.raises(EmptyResultError):
        resolve_context(profile=None, region=None, caps=interactive_caps, config_path=path)


def test_sso_session_resolution(monkeypatch, config_file, batch_caps):
    assert resolve_sso_session("explicit", caps=batch_caps, config_path=config_file) == "explicit"

    with pytest.raises(UsageError, match="missing SSO session"):
        resolve_sso_session(None, caps=batch_caps, config_path=config_file)

    caps = Capabilities(interactive=True, fzf="fzf")
    assert resolve_sso_session(None, caps=caps, config_path=config_file) == "work"
