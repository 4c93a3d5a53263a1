"""Shared settings factory for tests."""

from __future__ import annotations

from dataclasses import replace

import pytest

from jira_bot.config import Settings

BASE = Settings(
    username="bot",
    password="secret",
    site="https://jira.example.com/",
    context="",
    format="verbose",
    ambient=True,
    ignore=(),
    rooms=None,
    use_ssl=True,
    points_field=None,
)


@pytest.fixture
def make_settings():
    def _make(**kw):
        return replace(BASE, **kw)

    return _make
