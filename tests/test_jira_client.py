import base64
import json

import jira_bot.jira as jira_mod
from jira_bot.jira import JiraClient


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    def read(self):
        return json.dumps(self.payload).encode("utf-8") if self.payload is not None else b""

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _capture(monkeypatch, payload):
    seen = []

    def fake_urlopen(req, timeout=None):
        seen.append(req)
        return FakeResponse(payload)

    monkeypatch.setattr(jira_mod.urllib.request, "urlopen", fake_urlopen)
    return seen


def test_get_issue_url_and_auth(monkeypatch):
    seen = _capture(monkeypatch, {"key": "XYZ-1"})
    client = JiraClient("https://jira.example.com/", "tracker/", "bot", "pw")
    assert client.get_issue("XYZ-1") == {"key": "XYZ-1"}
    req = seen[0]
    assert req.full_url == "https://jira.example.com/tracker/rest/api/2/issue/XYZ-1"
    assert req.get_method() == "GET"
    expected = "Basic " + base64.b64encode(b"bot:pw").decode()
    assert req.get_header("Authorization") == expected


def test_use_ssl_false_downgrades_scheme(monkeypatch):
    seen = _capture(monkeypatch, {"issues": []})
    JiraClient("https://jira.example.com/", "", "bot", "pw", use_ssl=False).search("key = X-1")
    assert seen[0].full_url.startswith("http://jira.example.com/rest/api/2/search?")


def test_search_returns_issue_list(monkeypatch):
    seen = _capture(monkeypatch, {"issues": [{"key": "A-1"}, {"key": "B-2"}]})
    out = JiraClient("https://jira.example.com", "", "bot", "pw").search("key in (A-1,B-2)")
    assert [i["key"] for i in out] == ["A-1", "B-2"]
    assert "jql=key+in+%28A-1%2CB-2%29" in seen[0].full_url


def test_update_issue_is_put_with_fields(monkeypatch):
    seen = _capture(monkeypatch, None)
    out = JiraClient("https://jira.example.com", "", "bot", "pw").update_issue("A-1", {"cf": 3})
    assert out == {}
    assert seen[0].get_method() == "PUT"
    assert json.loads(seen[0].data) == {"fields": {"cf": 3}}


def test_add_comment_posts_body(monkeypatch):
    seen = _capture(monkeypatch, {"id": "1"})
    JiraClient("https://jira.example.com", "", "bot", "pw").add_comment("A-1", "hi")
    assert seen[0].full_url.endswith("/rest/api/2/issue/A-1/comment")
    assert json.loads(seen[0].data) == {"body": "hi"}


def test_search_follows_pages_until_total(monkeypatch):
    pages = [
        {"startAt": 0, "total": 3, "issues": [{"key": "A-1"}, {"key": "A-2"}]},
        {"startAt": 2, "total": 3, "issues": [{"key": "A-3"}]},
    ]
    seen = []

    def fake_urlopen(req, timeout=None):
        seen.append(req)
        return FakeResponse(pages[len(seen) - 1])

    monkeypatch.setattr(jira_mod.urllib.request, "urlopen", fake_urlopen)
    out = JiraClient("https://jira.example.com", "", "bot", "pw").search("project = A", page_size=2)
    assert [i["key"] for i in out] == ["A-1", "A-2", "A-3"]
    assert "startAt=0" in seen[0].full_url
    assert "startAt=2" in seen[1].full_url
    assert len(seen) == 2


def test_search_stops_on_empty_page(monkeypatch):
    seen = _capture(monkeypatch, {"startAt": 0, "total": 10, "issues": []})
    assert JiraClient("https://jira.example.com", "", "bot", "pw").search("project = A") == []
    assert len(seen) == 1
