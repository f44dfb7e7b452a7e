"""Paged listing calls folded into one dataset.

AWS listing operations return one page at a time plus a continuation token.
``fetch_all`` keeps calling until the token says there is nothing left,
sleeping a fixed delay between calls so long listings do not trip request
throttling.
"""
from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from . import log
from .cli_shared import DEFAULT_PAGE_DELAY_SECONDS, OpError, RemoteCallError

NULL_TOKEN = "null"

ERROR_MARKER_KEYS = ("Error", "__type")


@dataclass(frozen=True)
class Page:
    records: list[Any] = field(default_factory=list)
    next_token: str | None = None


def parse_token(raw: Any) -> str | None:
    """Normalize a continuation token; ``None`` means no more pages."""
    if raw is None:
        return None
    token = str(raw).strip()
    if not token or token == NULL_TOKEN:
        return None
    return token


def embedded_error(resp: Mapping[str, Any]) -> Any:
    for key in ERROR_MARKER_KEYS:
        if key in resp:
            return resp[key]
    return None


def client_error_payload(e: Exception) -> Any:
    if isinstance(e, ClientError):
        return e.response.get("Error") or e.response
    return str(e)


def _dig(item: Any, path: str) -> Any:
    cur = item
    for part in path.split("."):
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(part)
    return cur


def projection(
    items_key: str,
    fields: Sequence[str] | None = None,
    *,
    token_key: str = "nextToken",
) -> Callable[[Mapping[str, Any]], Page]:
    """Build a page projection from key paths.

    ``fields`` narrows each item to the listed (dotted) paths; the record keys
    are the last path segment, so ``status.status`` becomes ``status``.
    Without ``fields`` items are kept as they come.
    """

    def project(resp: Mapping[str, Any]) -> Page:
        items = _dig(resp, items_key) or []
        if not isinstance(items, list):
            raise OpError(f"unexpected page shape: {items_key!r} is not a list")
        if fields:
            records = [{f.rsplit(".", 1)[-1]: _dig(item, f) for f in fields} for item in items]
        else:
            records = list(items)
        return Page(records=records, next_token=_dig(resp, token_key))

    return project


def fetch_all(
    call: Callable[[str | None], Mapping[str, Any] | None],
    project: Callable[[Mapping[str, Any]], Page],
    *,
    delay_seconds: float = DEFAULT_PAGE_DELAY_SECONDS,
    sleep: Callable[[float], Any] = time.sleep,
    label: str = "listing",
) -> list[Any]:
    """Call ``call(token)`` until pagination ends and return all records.

    The first call gets ``None``. An error raised by the client or embedded
    in a page aborts the whole fetch with ``RemoteCallError``; nothing is
    retried. The delay runs before every follow-up call, throttled or not.
    """
    out: list[Any] = []
    token: str | None = None
    pages = 0
    while True:
        try:
            resp = call(token)
        except (ClientError, BotoCoreError) as e:
            raise RemoteCallError(f"{label} failed: {e}", payload=client_error_payload(e)) from e
        pages += 1
        if not resp:
            raise OpError(f"{label} failed: empty response for page {pages}")
        err = embedded_error(resp)
        if err is not None:
            raise RemoteCallError(f"{label} failed: {err}", payload=err)

        page = project(resp)
        out.extend(page.records)
        token = parse_token(page.next_token)
        log.debug(f"{label}: page {pages} with {len(page.records)} record(s), more={token is not None}")
        if token is None:
            return out
        if delay_seconds > 0:
            sleep(delay_seconds)
