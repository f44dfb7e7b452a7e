from __future__ import annotations

import base64
import subprocess
from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError

from aws_helpers_cli import remote
from aws_helpers_cli.cli_shared import OpError, RemoteCallError
from aws_helpers_cli.credential_context import CredentialContext


@pytest.fixture
def session_for(fake_aws):
    def build(**services):
        return fake_aws(services)

    return build


def test_ecr_authorization_decodes_token(session_for):
    token = base64.b64encode(b"AWS:pw:with:colons").decode("ascii")
    session = session_for(
        ecr={"get_authorization_token": [{"authorizationData": [{"authorizationToken": token, "proxyEndpoint": "https://r"}]}]}
    )

    assert remote.ecr_authorization(session) == ("AWS", "pw:with:colons", "https://r")


@pytest.mark.parametrize(
    "data",
    [
        [],
        [{"authorizationToken": base64.b64encode(b"nopassword").decode("ascii"), "proxyEndpoint": "https://r"}],
        [{"authorizationToken": base64.b64encode(b"AWS:pw").decode("ascii")}],
    ],
)
def test_ecr_authorization_rejects_bad_payloads(session_for, data):
    session = session_for(ecr={"get_authorization_token": [{"authorizationData": data}]})

    with pytest.raises(OpError):
        remote.ecr_authorization(session)


def test_single_call_errors_carry_the_error_payload(session_for):
    err = ClientError({"Error": {"Code": "ResourceNotFoundException", "Message": "gone"}}, "GetImage")
    session = session_for(imagebuilder={"get_image": [err]})

    with pytest.raises(RemoteCallError) as exc:
        remote.get_image(session, image_arn="arn:img/1")

    assert exc.value.kind == "remote"
    assert "ResourceNotFoundException" in str(exc.value.payload)


def test_caller_identity_drops_response_metadata(session_for):
    session = session_for(sts={"get_caller_identity": [{"Account": "1", "ResponseMetadata": {"RequestId": "x"}}]})

    assert remote.caller_identity(session) == {"Account": "1"}


def test_log_streams_are_requested_newest_first(session_for):
    session = session_for(logs={"describe_log_streams": [{"logStreams": [{"logStreamName": "s", "lastEventTimestamp": 1}]}]})

    streams = remote.list_log_streams(session, group="/g", delay=0)

    assert streams == [{"logStreamName": "s", "lastEventTimestamp": 1}]
    assert session.clients["logs"].calls == [
        ("describe_log_streams", {"logGroupName": "/g", "orderBy": "LastEventTime", "descending": True})
    ]


def test_run_command_maps_exit_status(monkeypatch):
    monkeypatch.setattr(remote.subprocess, "run", lambda *a, **kw: SimpleNamespace(returncode=3))

    with pytest.raises(RemoteCallError, match=r"docker login failed \(exit status 3\)"):
        remote.run_command(["docker", "login"], label="docker login")


def test_run_command_missing_binary(monkeypatch):
    def boom(*a, **kw):
        raise FileNotFoundError(2, "No such file or directory")

    monkeypatch.setattr(remote.subprocess, "run", boom)

    with pytest.raises(OpError, match="cannot run kubectl"):
        remote.run_command(["kubectl"])


def test_run_aws_appends_profile_and_region(monkeypatch):
    seen: list[list[str]] = []

    def fake_run(argv, **kw):
        seen.append(argv)
        return subprocess.CompletedProcess(argv, 0)

    monkeypatch.setattr(remote.subprocess, "run", fake_run)

    remote.run_aws(["eks", "list-clusters"], CredentialContext(profile="dev", region="us-east-1"))

    assert seen == [["aws", "eks", "list-clusters", "--profile", "dev", "--region", "us-east-1"]]
