"""
Minimal Slack Web API client using stdlib urllib.
"""

from __future__ import annotations

import json
import urllib.parse
import urllib.request
from typing import Any

SLACK_API = "https://slack.com/api/"


class SlackError(Exception):
    pass


class SlackClient:
    def __init__(self, token: str, timeout: int = 8) -> None:
        self.token = token
        self.timeout = timeout

    def _call(self, method: str, form: dict[str, Any]) -> dict[str, Any]:
        body = urllib.parse.urlencode({k: v for k, v in form.items() if v is not None})
        req = urllib.request.Request(
            SLACK_API + method,
            data=body.encode("utf-8"),
            headers={
                "User-Agent": "JiraBot/1.0",
                "Content-Type": "application/x-www-form-urlencoded",
                "Authorization": f"Bearer {self.token}",
            },
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
            data = json.loads(resp.read().decode("utf-8"))
        if not data.get("ok"):
            raise SlackError(f"{method}: {data.get('error') or 'unknown_error'}")
        return data

    def post_message(self, channel: str, text: str, thread_ts: str | None = None) -> dict[str, Any]:
        return self._call(
            "chat.postMessage", {"channel": channel, "text": text, "thread_ts": thread_ts}
        )

    def user_info(self, user_id: str) -> dict[str, Any]:
        return self._call("users.info", {"user": user_id}).get("user") or {}

    def team_info(self) -> dict[str, Any]:
        return self._call("team.info", {}).get("team") or {}
