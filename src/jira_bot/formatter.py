"""
Reply texts and issue rendering.
"""

from __future__ import annotations

from collections.abc import Sequence

from .config import Settings
from .gateway import Issue

MESSAGES: dict[str, str] = {
    "error.request": "Sorry, I could not complete that request.",
    "error.not_identified": "You are not identified with JIRA. Use `jira identify <email>` first.",
    "error.field_undefined": "The story points field is not configured.",
    "error.unable_to_point": "Unable to set points on {issue}.",
    "myissues.empty": "You do not have any assigned issues. Great job!",
    "issue.summary": "{key}: {summary} - {url}",
    "issue.created": "Issue {key} created: {url}",
    "issue.concise": "{key} {url} - {status}, {assignee} - {summary}",
    "issue.verbose": (
        "[{key}] {summary}\n"
        "Status: {status}, assigned to: {assignee}, fixVersion: {fix_version}, priority: {priority}\n"
        "{url}"
    ),
    "issue.description": "Description: {text}",
    "issue.last_comment": "Last comment ({count} total): {text}",
    "comment.added": "Comment added to {issue}",
    "point.added": "Added {points} points to {issue}",
    "identify.stored": "You have been identified as {email} to JIRA.",
    "identify.deleted": "You have been de-identified from JIRA.",
    "identify.email": "You are identified with JIRA as {email}.",
}

# (command, syntax, description) in route order; rendered by `jira help`.
HELP: tuple[tuple[str, str, str], ...] = (
    ("summary", "jira <ISSUE>", "Show the summary and link of an issue"),
    ("details", "jira details <ISSUE>", "Show the details of an issue"),
    ("myissues", "jira myissues", "List open issues assigned to you"),
    ("comment", "jira comment on <ISSUE> <comment>", "Add a comment to an issue"),
    ("todo", 'todo <PROJECT> "<subject>" ["<summary>"]', "Create an issue"),
    ("identify", "jira identify <email>", "Associate your chat user with a JIRA email"),
    ("forget", "jira forget", "Remove your JIRA email association"),
    ("whoami", "jira whoami", "Show your JIRA email association"),
    ("help", "jira help", "Show this help"),
    ("point", "jira point <ISSUE> as <points>", "Set story points on an issue"),
)


def t(key: str, /, **kwargs: object) -> str:
    return MESSAGES[key].format(**kwargs)


def _fields(issue: Issue) -> dict[str, str]:
    return {
        "key": issue.key,
        "summary": issue.summary,
        "url": issue.url,
        "status": issue.status or "unknown",
        "assignee": issue.assignee or "unassigned",
        "priority": issue.priority or "none",
        "fix_version": ", ".join(issue.fix_versions) or "none",
    }


DETAIL_MAX_CHARS = 200


def _shorten(s: str, n: int) -> str:
    s = s.strip().replace("\n", " ")
    return s if len(s) <= n else s[: n - 1] + "…"


def format_issue(issue: Issue, settings: Settings) -> str:
    if settings.format == "concise":
        return t("issue.concise", **_fields(issue))
    head, url = t("issue.verbose", **_fields(issue)).rsplit("\n", 1)
    parts = [head]
    if issue.description:
        parts.append(t("issue.description", text=_shorten(issue.description, DETAIL_MAX_CHARS)))
    comments = [c for c in issue.comments if c.strip()]
    if comments:
        parts.append(
            t("issue.last_comment", count=len(comments), text=_shorten(comments[-1], DETAIL_MAX_CHARS))
        )
    parts.append(url)
    return "\n".join(parts)


def format_help(include_point: bool = False) -> str:
    return "\n".join(
        f"{syntax} - {desc}" for cmd, syntax, desc in HELP if include_point or cmd != "point"
    )


def format_issues(issues: Sequence[Issue]) -> str:
    """One concise line per issue, in the order the tracker returned them."""
    return "\n".join(t("issue.concise", **_fields(i)) for i in issues)
