"""
Minimal Jira REST API client (v2) using stdlib urllib.
"""

from __future__ import annotations

import base64
import json
import urllib.parse
import urllib.request
from typing import Any


class JiraClient:
    def __init__(
        self,
        site: str,
        context: str,
        username: str,
        password: str,
        use_ssl: bool = True,
        timeout: int = 8,
    ) -> None:
        base = site.rstrip("/") + "/" + context.strip("/")
        if not use_ssl and base.startswith("https://"):
            base = "http://" + base[len("https://") :]
        self.base_api = base.rstrip("/") + "/rest/api/2"
        token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
        self.auth_header = f"Basic {token}"
        self.timeout = timeout

    # ----- Helpers -----
    def _url(self, path: str, params: dict[str, Any] | None = None) -> str:
        url = self.base_api + path
        if params:
            url += "?" + urllib.parse.urlencode(params)
        return url

    def _request(self, method: str, url: str, payload: dict[str, Any] | None = None) -> Any:
        body = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(
            url,
            data=body,
            method=method,
            headers={
                "User-Agent": "JiraBot/1.0",
                "Accept": "application/json",
                "Content-Type": "application/json",
                "Authorization": self.auth_header,
            },
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
            data = resp.read()
        if not data:
            return {}
        return json.loads(data.decode("utf-8"))

    # ----- Public APIs -----
    def get_issue(self, key: str) -> dict[str, Any]:
        return self._request("GET", self._url(f"/issue/{urllib.parse.quote(key)}"))

    def search(self, jql: str, page_size: int = 50) -> list[dict[str, Any]]:
        """All issues matching ``jql``, following ``startAt`` until ``total`` is reached."""
        out: list[dict[str, Any]] = []
        while True:
            url = self._url("/search", {"jql": jql, "startAt": len(out), "maxResults": page_size})
            data = self._request("GET", url)
            issues = data.get("issues") if isinstance(data, dict) else None
            if not isinstance(issues, list) or not issues:
                break
            out.extend(issues)
            total = data.get("total")
            if not isinstance(total, int) or len(out) >= total:
                break
        return out

    def create_issue(self, fields: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", self._url("/issue"), {"fields": fields})

    def add_comment(self, key: str, body: str) -> dict[str, Any]:
        url = self._url(f"/issue/{urllib.parse.quote(key)}/comment")
        return self._request("POST", url, {"body": body})

    def update_issue(self, key: str, fields: dict[str, Any]) -> dict[str, Any]:
        url = self._url(f"/issue/{urllib.parse.quote(key)}")
        return self._request("PUT", url, {"fields": fields})
