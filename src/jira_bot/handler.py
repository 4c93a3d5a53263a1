"""
AWS Lambda handler for Slack Events API (message / app_mention) -> Bot reply.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import html
import json
import logging
import re
import time
from typing import Any

from .config import Settings, load_settings
from .dispatcher import ChatUser, Dispatcher, Message
from .gateway import TrackerGateway
from .idempotency import s3_record_if_new
from .identity import IdentityStore
from .jira import JiraClient
from .logs import configure_logging, log_event
from .slack import SlackClient, SlackError

logger = logging.getLogger(__name__)

SIGNATURE_MAX_AGE_SECONDS = 60 * 5

_MAILTO_RE = re.compile(r"<mailto:([^|>]+)(?:\|[^>]*)?>")
_LINK_RE = re.compile(r"<(https?://[^|>]+)(?:\|[^>]*)?>")
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "„": '"', "«": '"', "»": '"'})


def _rid(context: Any) -> str | None:
    return getattr(context, "aws_request_id", None)


def _log(msg: str, **fields: Any) -> None:
    log_event(logger, msg, **fields)


def _response(status: int, body: dict[str, Any]) -> dict[str, Any]:
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body, ensure_ascii=False),
    }


def _raw_body(event: dict[str, Any]) -> str:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        body = base64.b64decode(body)
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    return body


def _parse_body(raw: str) -> dict[str, Any]:
    try:
        data = json.loads(raw or "{}")
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _get_header(event: dict[str, Any], name: str) -> str | None:
    headers = event.get("headers") or {}
    for k, v in headers.items():
        if k.lower() == name.lower():
            return v
    return None


def verify_signature(secret: str, event: dict[str, Any], raw: str, now: float | None = None) -> bool:
    """Check Slack's ``v0`` request signature and reject stale timestamps."""
    ts = _get_header(event, "X-Slack-Request-Timestamp")
    sig = _get_header(event, "X-Slack-Signature")
    if not ts or not sig:
        return False
    try:
        ts_val = int(ts)
    except ValueError:
        return False
    if abs((now if now is not None else time.time()) - ts_val) > SIGNATURE_MAX_AGE_SECONDS:
        return False
    base = f"v0:{ts}:{raw}".encode()
    expected = "v0=" + hmac.new(secret.encode("utf-8"), base, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, sig)


def clean_text(text: str, bot_user_id: str | None) -> str:
    """Strip the bot mention and undo Slack's link and entity escaping."""
    if bot_user_id:
        text = text.replace(f"<@{bot_user_id}>", " ")
    text = _MAILTO_RE.sub(r"\1", text)
    text = _LINK_RE.sub(r"\1", text)
    text = html.unescape(text).translate(_SMART_QUOTES)
    return re.sub(r"[ \t]+", " ", text).strip()


def _bot_user_id(payload: dict[str, Any]) -> str | None:
    """Bot user id from the event's ``authorizations`` block."""
    for auth in payload.get("authorizations") or []:
        if isinstance(auth, dict) and auth.get("is_bot") and auth.get("user_id"):
            return str(auth["user_id"])
    return None


def _is_command(ev: dict[str, Any]) -> bool:
    return ev.get("type") == "app_mention" or ev.get("channel_type") == "im"


def _chat_user(ev: dict[str, Any], settings: Settings, slack: SlackClient) -> ChatUser:
    user_id = str(ev.get("user") or "")
    # Names are only needed to match the ignore list on ambient messages.
    if not settings.ignore or _is_command(ev) or not user_id:
        return ChatUser(id=user_id)
    try:
        info = slack.user_info(user_id)
    except (SlackError, OSError) as e:
        _log("slack_user_info_error", user=user_id, error=str(e))
        return ChatUser(id=user_id)
    profile = info.get("profile") or {}
    return ChatUser(
        id=user_id,
        mention_name=info.get("name") or "",
        name=profile.get("display_name") or info.get("real_name") or "",
    )


def _chat_context(payload: dict[str, Any], settings: Settings, slack: SlackClient) -> str | None:
    if not settings.project_overrides:
        return None
    try:
        domain = slack.team_info().get("domain")
    except (SlackError, OSError) as e:
        _log("slack_team_info_error", error=str(e))
        domain = None
    return domain or payload.get("team_id")


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    configure_logging()
    settings = load_settings()
    start_ts = time.time()
    raw = _raw_body(event)

    # 1) Verify Slack signature
    if settings.slack_signing_secret and not verify_signature(
        settings.slack_signing_secret, event, raw
    ):
        _log("auth_failed", rid=_rid(context), reason="signature_mismatch")
        return _response(401, {"error": "unauthorized"})

    # 2) Parse body
    payload = _parse_body(raw)
    if payload.get("type") == "url_verification":
        return _response(200, {"challenge": payload.get("challenge")})

    ev = payload.get("event")
    if not isinstance(ev, dict) or ev.get("type") not in ("message", "app_mention"):
        _log("ignored_event_type", rid=_rid(context), type=payload.get("type"))
        return _response(200, {"result": "ignored"})
    if ev.get("bot_id") or ev.get("subtype"):
        _log("ignored_bot_or_subtype", rid=_rid(context), subtype=ev.get("subtype"))
        return _response(200, {"result": "ignored"})

    text = ev.get("text") or ""
    bot = settings.slack_bot_user_id or _bot_user_id(payload)
    if not bot:
        _log("bot_user_id_unknown", rid=_rid(context))
    # The app_mention event for the same message carries the command.
    if ev.get("type") == "message" and not _is_command(ev) and bot and f"<@{bot}>" in text:
        _log("ignored_mention_duplicate", rid=_rid(context))
        return _response(200, {"result": "ignored"})

    if not settings.slack_bot_token:
        _log("config_error_missing_slack_token", rid=_rid(context))
        return _response(500, {"error": "SLACK_BOT_TOKEN not found"})

    # 3) Idempotency (Slack redelivers events it thinks timed out)
    event_id = payload.get("event_id")
    if settings.idempotency_bucket and event_id:
        if not s3_record_if_new(settings.idempotency_bucket, f"slack-events/{event_id}"):
            _log("duplicate_ignored", rid=_rid(context), eventId=event_id)
            return _response(200, {"result": "duplicate_ignored"})

    # 4) Wire collaborators
    slack = SlackClient(settings.slack_bot_token, timeout=settings.timeout_seconds)
    client = JiraClient(
        settings.site,
        settings.context,
        settings.username,
        settings.password,
        use_ssl=settings.use_ssl,
        timeout=settings.timeout_seconds,
    )
    identities = (
        IdentityStore(settings.identity_bucket, settings.identity_prefix)
        if settings.identity_bucket
        else None
    )
    channel = ev.get("channel")
    thread_ts = ev.get("thread_ts")

    def reply(_message: Message, reply_text: str) -> None:
        slack.post_message(channel, reply_text, thread_ts=thread_ts)

    message = Message(
        text=clean_text(text, bot),
        user=_chat_user(ev, settings, slack),
        room=channel,
        command=_is_command(ev),
        context=_chat_context(payload, settings, slack) if _is_command(ev) else None,
    )

    # 5) Dispatch + reply
    try:
        replied = Dispatcher(settings, TrackerGateway(client, settings), identities, reply).dispatch(
            message
        )
    except Exception as e:
        logger.exception("Dispatch failed")
        _log("dispatch_error", rid=_rid(context), error=str(e))
        return _response(500, {"error": "dispatch_failed"})

    _log(
        "ok",
        rid=_rid(context),
        eventId=event_id,
        command=message.command,
        replied=replied is not None,
        ms_total=int((time.time() - start_ts) * 1000),
    )
    return _response(200, {"result": "ok"})
