import http.client

import pytest

from jira_bot.ambient import AmbientDetector
from jira_bot.dispatcher import ChatUser, Dispatcher, Message
from jira_bot.gateway import Issue, NotFound, TrackerGateway, Unauthorized


def _issue(key):
    return Issue(key=key, summary=f"summary {key}", url=f"https://jira.example.com/browse/{key}")


class FakeGateway:
    def __init__(self, issues=None, batch=None, error=None):
        self.issues = issues or {}
        self.batch = batch
        self.error = error
        self.calls = []

    def fetch_issue(self, key):
        self.calls.append(("fetch_issue", key))
        if self.error:
            raise self.error
        if key not in self.issues:
            raise NotFound(key)
        return self.issues[key]

    def fetch_issues(self, jql, suppress_errors=False):
        self.calls.append(("fetch_issues", jql, suppress_errors))
        return list(self.batch or [])


class Replies:
    def __init__(self):
        self.sent = []

    def __call__(self, message, text):
        self.sent.append(text)


def _msg(text, user=None, room="C1", command=False):
    user = user or ChatUser(id="U1", mention_name="alice", name="Alice")
    return Message(text=text, user=user, room=room, command=command)


def _detector(settings, gateway):
    replies = Replies()
    return AmbientDetector(settings, gateway, replies), replies


def test_batch_query_for_multiple_keys(make_settings):
    gw = FakeGateway(batch=[_issue("XYZ-1"), _issue("XYZ-2")])
    det, replies = _detector(make_settings(), gw)
    out = det.scan(_msg("see XYZ-1 and XYZ-2 for details"))
    assert gw.calls == [("fetch_issues", "key in (XYZ-1,XYZ-2)", True)]
    assert replies.sent == [out]
    assert out.splitlines()[0].startswith("XYZ-1 ")
    assert out.splitlines()[1].startswith("XYZ-2 ")


def test_batch_with_unknown_key_is_silent(make_settings):
    gw = FakeGateway(batch=[])
    det, replies = _detector(make_settings(), gw)
    assert det.scan(_msg("see XYZ-1 and XYZ-2 for details")) is None
    assert len(gw.calls) == 1
    assert replies.sent == []


def test_repeated_key_is_a_single_lookup(make_settings):
    gw = FakeGateway({"XYZ-1": _issue("XYZ-1")})
    det, replies = _detector(make_settings(), gw)
    det.scan(_msg("XYZ-1? yes, XYZ-1"))
    assert gw.calls == [("fetch_issue", "XYZ-1")]
    assert len(replies.sent) == 1


def test_single_key_found(make_settings):
    gw = FakeGateway({"XYZ-1": _issue("XYZ-1")})
    det, replies = _detector(make_settings(format="concise"), gw)
    out = det.scan(_msg("what about XYZ-1"))
    assert out == replies.sent[0]
    assert "summary XYZ-1" in out


@pytest.mark.parametrize("error", [None, Unauthorized("nope")])
def test_single_key_failure_is_silent(make_settings, error):
    gw = FakeGateway(error=error)
    det, replies = _detector(make_settings(), gw)
    assert det.scan(_msg("what about XYZ-1")) is None
    assert replies.sent == []


def test_no_keys_no_call(make_settings):
    gw = FakeGateway()
    det, _ = _detector(make_settings(), gw)
    assert det.scan(_msg("nothing to see here, xyz-1")) is None
    assert gw.calls == []


@pytest.mark.parametrize("entry", ["U1", "alice", "Alice"])
def test_ignored_user_never_calls_gateway(make_settings, entry):
    gw = FakeGateway({"XYZ-1": _issue("XYZ-1")}, batch=[_issue("XYZ-1")])
    det, replies = _detector(make_settings(ignore=(entry,)), gw)
    assert det.scan(_msg("XYZ-1 XYZ-2 XYZ-1")) is None
    assert gw.calls == []
    assert replies.sent == []


def test_ambient_disabled(make_settings):
    gw = FakeGateway({"XYZ-1": _issue("XYZ-1")})
    det, _ = _detector(make_settings(ambient=False), gw)
    assert det.scan(_msg("XYZ-1")) is None
    assert gw.calls == []


def test_room_allow_list(make_settings):
    gw = FakeGateway({"XYZ-1": _issue("XYZ-1")})
    det, replies = _detector(make_settings(rooms=("C2",)), gw)
    assert det.scan(_msg("XYZ-1", room="C1")) is None
    assert gw.calls == []
    assert det.scan(_msg("XYZ-1", room="C2")) is not None
    assert len(replies.sent) == 1


def test_command_messages_are_not_scanned(make_settings):
    gw = FakeGateway({"XYZ-1": _issue("XYZ-1")})
    det, _ = _detector(make_settings(), gw)
    assert det.suppressed(_msg("XYZ-1", command=True)) is True
    assert det.scan(_msg("XYZ-1", command=True)) is None
    assert gw.calls == []


def test_dispatcher_hands_plain_messages_to_ambient(make_settings):
    gw = FakeGateway({"XYZ-1": _issue("XYZ-1")})
    replies = Replies()
    d = Dispatcher(make_settings(), gw, None, replies)
    assert d.dispatch(_msg("jira XYZ-1")) is not None
    assert gw.calls == [("fetch_issue", "XYZ-1")]


class TruncatedJira:
    def get_issue(self, key):
        raise http.client.IncompleteRead(b'{"iss')

    def search(self, jql, page_size=50):
        raise http.client.IncompleteRead(b'{"iss')


@pytest.mark.parametrize("text", ["A-1 and A-2", "only A-1"])
def test_truncated_tracker_response_is_silent(make_settings, text):
    det, replies = _detector(make_settings(), TrackerGateway(TruncatedJira(), make_settings()))
    assert det.scan(_msg(text)) is None
    assert replies.sent == []
