"""
Tracker gateway: one Jira call per operation, one classified outcome per call.

Failures are raised as ``TrackerError`` subclasses; callers decide whether to
surface them. No retries happen here.
"""

from __future__ import annotations

import http.client
import json
import logging
import socket
import urllib.error
from dataclasses import dataclass, field
from typing import Any

from .config import Settings
from .logs import log_event

logger = logging.getLogger(__name__)


class TrackerError(Exception):
    kind = "error"


class NotFound(TrackerError):
    kind = "not_found"


class Unauthorized(TrackerError):
    kind = "unauthorized"


class Transport(TrackerError):
    kind = "transport"


class Rejected(TrackerError):
    kind = "rejected"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class Issue:
    key: str
    summary: str
    url: str
    status: str | None = None
    assignee: str | None = None
    priority: str | None = None
    fix_versions: tuple[str, ...] = ()
    description: str | None = None
    comments: tuple[str, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


def _name(obj: Any, *keys: str) -> str | None:
    if not isinstance(obj, dict):
        return None
    for k in keys:
        v = obj.get(k)
        if v:
            return str(v)
    return None


def issue_from_raw(raw: dict[str, Any], settings: Settings) -> Issue:
    key = str(raw.get("key") or "")
    fields = raw.get("fields") or {}
    comments = (fields.get("comment") or {}).get("comments") or []
    return Issue(
        key=key,
        summary=fields.get("summary") or "",
        url=settings.browse_url(key),
        status=_name(fields.get("status"), "name"),
        assignee=_name(fields.get("assignee"), "displayName", "name", "emailAddress"),
        priority=_name(fields.get("priority"), "name"),
        fix_versions=tuple(
            str(v["name"]) for v in fields.get("fixVersions") or [] if (v or {}).get("name")
        ),
        description=fields.get("description") or None,
        comments=tuple(str((c or {}).get("body") or "") for c in comments),
        raw=raw,
    )


def _rejection_reason(err: urllib.error.HTTPError) -> str:
    try:
        data = json.loads(err.read().decode("utf-8") or "{}")
    except (ValueError, OSError):
        return err.reason or f"HTTP {err.code}"
    messages = list(data.get("errorMessages") or [])
    messages += [f"{k}: {v}" for k, v in (data.get("errors") or {}).items()]
    return "; ".join(messages) or str(err.reason or f"HTTP {err.code}")


def classify(err: Exception) -> TrackerError:
    """Map a transport-level exception onto the tracker failure taxonomy."""
    if isinstance(err, TrackerError):
        return err
    if isinstance(err, urllib.error.HTTPError):
        if err.code == 404:
            return NotFound(str(err.reason or "not found"))
        if err.code in (401, 403):
            return Unauthorized(str(err.reason or "unauthorized"))
        if 400 <= err.code < 500:
            return Rejected(_rejection_reason(err))
        return Transport(f"HTTP {err.code}")
    if isinstance(
        err,
        (urllib.error.URLError, http.client.HTTPException, socket.timeout, TimeoutError, ConnectionError),
    ):
        return Transport(str(err))
    if isinstance(err, ValueError):
        # undecodable JSON payload
        return Transport(f"bad payload: {err}")
    return Transport(repr(err))


class TrackerGateway:
    def __init__(self, client: Any, settings: Settings) -> None:
        self.client = client
        self.settings = settings

    def _call(self, op: str, fn: Any, *args: Any) -> Any:
        try:
            return fn(*args)
        except (OSError, ValueError, http.client.HTTPException) as e:
            # urllib errors are OSError subclasses; a body cut short is an HTTPException
            err = classify(e)
            log_event(logger, "jira_call_failed", logging.DEBUG, op=op, kind=err.kind, error=str(err))
            raise err from e

    def fetch_issue(self, key: str) -> Issue:
        raw = self._call("get_issue", self.client.get_issue, key)
        if not isinstance(raw, dict) or not raw.get("key"):
            raise NotFound(key)
        return issue_from_raw(raw, self.settings)

    def fetch_issues(self, jql: str, suppress_errors: bool = False) -> list[Issue]:
        try:
            raws = self._call("search", self.client.search, jql)
        except TrackerError as e:
            if not suppress_errors:
                raise
            log_event(logger, "jira_query_suppressed", logging.DEBUG, jql=jql, kind=e.kind)
            return []
        return [issue_from_raw(r, self.settings) for r in raws]

    def create_issue(
        self, project: str, subject: str, summary: str | None, reporter: str | None = None
    ) -> Issue:
        fields: dict[str, Any] = {
            "project": {"key": project},
            "summary": subject,
            "description": summary or "",
            "issuetype": {"name": "Task"},
        }
        if reporter:
            fields["reporter"] = {"name": reporter}
        created = self._call("create_issue", self.client.create_issue, fields)
        key = (created or {}).get("key") if isinstance(created, dict) else None
        if not key:
            raise Rejected("create returned no issue key")
        return Issue(
            key=str(key),
            summary=subject,
            url=self.settings.browse_url(str(key)),
            description=summary or None,
            raw=created,
        )

    def add_comment(self, key: str, body: str) -> None:
        self._call("add_comment", self.client.add_comment, key, body)

    def set_field(self, key: str, field_id: str, value: Any) -> None:
        self._call("update_issue", self.client.update_issue, key, {field_id: value})
