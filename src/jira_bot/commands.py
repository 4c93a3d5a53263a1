"""
Command pattern catalog and parsing.

Every explicit command is a whole-message match built from the named fragments
below; ambient scanning looks for bare issue keys anywhere in the text.
"""

from __future__ import annotations

import re
from typing import Any

ISSUE = r"(?P<issue>(?P<project>[A-Z][A-Z0-9]*)-[0-9]+)"
PROJECT = r"(?P<project>[A-Z][A-Z0-9]*)"
SUBJECT = r'"(?P<subject>[^"]+)"'
SUMMARY = r'(?:\s+"(?P<summary>[^"]*)")?'
COMMENT = r"(?P<comment>.+)"
POINTS = r"(?P<points>[0-9]+)"
EMAIL = r"(?P<email>\S+)"

# A key glued to letters, digits or dashes (e.g. "ABC-1-2", "xABC-1") is not a mention.
AMBIENT_RE = re.compile(r"(?<![A-Za-z0-9\-])" + ISSUE + r"(?![A-Za-z0-9\-])")

POINT_ROUTE = ("point", re.compile(rf"jira\s+point\s+{ISSUE}\s+as\s+{POINTS}"))

# Priority order matters: first full match wins.
ROUTES: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("summary", re.compile(rf"jira\s+{ISSUE}")),
    ("details", re.compile(rf"jira\s+details\s+{ISSUE}")),
    ("myissues", re.compile(r"jira\s+myissues")),
    ("comment", re.compile(rf"jira\s+comment\s+on\s+{ISSUE}\s+{COMMENT}", re.DOTALL)),
    ("todo", re.compile(rf"todo\s+{PROJECT}\s+{SUBJECT}{SUMMARY}")),
    ("identify", re.compile(rf"jira\s+identify\s+{EMAIL}")),
    ("forget", re.compile(r"jira\s+forget")),
    ("whoami", re.compile(r"jira\s+whoami")),
    ("help", re.compile(r"jira\s+help")),
)


def parse_command(text: str | None, include_point: bool = False) -> dict[str, Any] | None:
    """Return ``{"cmd": name, **captured}`` for the first matching route, else None."""
    if not text:
        return None
    text = text.strip()
    routes = ROUTES + (POINT_ROUTE,) if include_point else ROUTES
    for name, pattern in routes:
        m = pattern.fullmatch(text)
        if not m:
            continue
        out: dict[str, Any] = {"cmd": name}
        out.update({k: v for k, v in m.groupdict().items() if v is not None})
        if "comment" in out:
            out["comment"] = out["comment"].strip()
        return out
    return None


def extract_issue_keys(text: str | None) -> list[tuple[str, str]]:
    """All ``(key, project)`` mentions in order of appearance, duplicates kept."""
    if not text:
        return []
    return [(m.group("issue"), m.group("project")) for m in AMBIENT_RE.finditer(text)]


def unique_keys(pairs: list[tuple[str, str]]) -> list[str]:
    seen: set[str] = set()
    keys: list[str] = []
    for key, _project in pairs:
        if key not in seen:
            seen.add(key)
            keys.append(key)
    return keys
