"""
Configuration helpers and defaults.

Centralize tunables to avoid magic numbers in code/tests.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

FORMATS = ("concise", "verbose")


def _env(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name)
    return v if v is not None else default


def _flag(name: str, default: bool) -> bool:
    raw = _env(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _csv(raw: str | None) -> tuple[str, ...]:
    return tuple(s.strip() for s in (raw or "").split(",") if s.strip())


def _with_slash(s: str) -> str:
    return s if not s or s.endswith("/") else s + "/"


def _overrides(raw: str | None) -> dict[str, str]:
    """Parse ``context=PROJECT`` pairs, e.g. ``acme-staging=TEST,other=OPS``."""
    out: dict[str, str] = {}
    for item in _csv(raw):
        if "=" not in item:
            continue
        ctx, project = item.split("=", 1)
        if ctx.strip() and project.strip():
            out[ctx.strip()] = project.strip()
    return out


@dataclass(frozen=True)
class Settings:
    username: str
    password: str
    site: str
    context: str
    format: str
    ambient: bool
    ignore: tuple[str, ...]
    rooms: tuple[str, ...] | None
    use_ssl: bool
    points_field: str | None
    enable_point: bool = False
    project_overrides: Mapping[str, str] = field(default_factory=dict)
    timeout_seconds: int = 8
    identity_bucket: str | None = None
    identity_prefix: str = "identities/"
    idempotency_bucket: str | None = None
    slack_bot_token: str | None = None
    slack_signing_secret: str | None = None
    slack_bot_user_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "project_overrides", MappingProxyType(dict(self.project_overrides)))

    def browse_url(self, key: str) -> str:
        return f"{self.site}{self.context}browse/{key}"


def load_settings() -> Settings:
    """Load settings from environment with safe defaults for local tests."""

    fmt = (_env("JIRA_FORMAT", "verbose") or "verbose").strip().lower()
    if fmt not in FORMATS:
        fmt = "verbose"

    rooms_raw = _env("JIRA_ROOMS")
    points_field = (_env("JIRA_POINTS_FIELD") or "").strip() or None

    return Settings(
        username=_env("JIRA_USERNAME", "") or "",
        password=_env("JIRA_PASSWORD", "") or "",
        site=_with_slash(_env("JIRA_SITE") or "https://example.atlassian.net/"),
        context=_with_slash((_env("JIRA_CONTEXT", "") or "").strip("/")),
        format=fmt,
        ambient=_flag("JIRA_AMBIENT", False),
        ignore=_csv(_env("JIRA_IGNORE")),
        rooms=_csv(rooms_raw) if rooms_raw is not None else None,
        use_ssl=_flag("JIRA_USE_SSL", True),
        points_field=points_field,
        enable_point=_flag("JIRA_ENABLE_POINT", False),
        project_overrides=_overrides(_env("JIRA_PROJECT_OVERRIDES")),
        timeout_seconds=int(_env("JIRA_TIMEOUT_SECONDS", "8") or 8),
        identity_bucket=_env("IDENTITY_BUCKET"),
        identity_prefix=_env("IDENTITY_PREFIX", "identities/") or "identities/",
        idempotency_bucket=_env("IDEMPOTENCY_BUCKET"),
        slack_bot_token=_env("SLACK_BOT_TOKEN"),
        slack_signing_secret=_env("SLACK_SIGNING_SECRET"),
        slack_bot_user_id=_env("SLACK_BOT_USER_ID"),
    )
