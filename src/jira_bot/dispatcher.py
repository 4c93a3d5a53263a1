"""
Command dispatch: match an inbound chat message, run its handler, reply once.

Messages that are not addressed to the bot, or that match no command, fall
through to ambient detection.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from . import commands
from .ambient import AmbientDetector
from .config import Settings
from .formatter import format_help, format_issue, format_issues, t
from .gateway import Issue, TrackerError, TrackerGateway
from .identity import IdentityStore
from .logs import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatUser:
    id: str
    mention_name: str = ""
    name: str = ""


@dataclass(frozen=True)
class Message:
    text: str
    user: ChatUser
    room: str | None = None
    # True when the message was addressed to the bot (mention or direct message).
    command: bool = False
    # Chat workspace identifier, used by project overrides.
    context: str | None = None


Reply = Callable[[Message, str], None]


class Dispatcher:
    def __init__(
        self,
        settings: Settings,
        gateway: TrackerGateway,
        identities: IdentityStore | None,
        reply: Reply,
        ambient: AmbientDetector | None = None,
    ) -> None:
        self.settings = settings
        self.gateway = gateway
        self.identities = identities
        self.reply = reply
        self.ambient = ambient or AmbientDetector(settings, gateway, reply)
        self.handlers: dict[str, Callable[[Message, dict[str, Any]], str]] = {
            "summary": self.summary,
            "details": self.details,
            "myissues": self.myissues,
            "comment": self.comment,
            "todo": self.todo,
            "identify": self.identify,
            "forget": self.forget,
            "whoami": self.whoami,
            "help": self.help,
            "point": self.point,
        }

    def dispatch(self, message: Message) -> str | None:
        if message.command:
            cmd = commands.parse_command(message.text, include_point=self.settings.enable_point)
            if cmd:
                return self._run(cmd, message)
        return self.ambient.scan(message)

    def _run(self, cmd: dict[str, Any], message: Message) -> str:
        name = cmd["cmd"]
        try:
            text = self.handlers[name](message, cmd)
        except Exception:
            logger.exception("Command %s failed", name)
            text = t("error.request")
        log_event(logger, "command_reply", cmd=name, user=message.user.id, room=message.room)
        self.reply(message, text)
        return text

    # ----- Helpers -----
    def _fail(self, op: str, err: TrackerError, **fields: Any) -> str:
        log_event(logger, "jira_error", logging.ERROR, op=op, kind=err.kind, error=str(err), **fields)
        return t("error.request")

    def _email(self, user: ChatUser) -> str | None:
        if self.identities is None:
            return None
        return self.identities.lookup(user.id)

    def _fetch(self, key: str) -> Issue | TrackerError:
        try:
            return self.gateway.fetch_issue(key)
        except TrackerError as e:
            return e

    # ----- Handlers -----
    def summary(self, message: Message, cmd: dict[str, Any]) -> str:
        issue = self._fetch(cmd["issue"])
        if isinstance(issue, TrackerError):
            return self._fail("fetch_issue", issue, key=cmd["issue"])
        return t("issue.summary", key=issue.key, summary=issue.summary, url=issue.url)

    def details(self, message: Message, cmd: dict[str, Any]) -> str:
        issue = self._fetch(cmd["issue"])
        if isinstance(issue, TrackerError):
            return self._fail("fetch_issue", issue, key=cmd["issue"])
        return format_issue(issue, self.settings)

    def comment(self, message: Message, cmd: dict[str, Any]) -> str:
        issue = self._fetch(cmd["issue"])
        if isinstance(issue, TrackerError):
            return self._fail("fetch_issue", issue, key=cmd["issue"])
        try:
            self.gateway.add_comment(issue.key, cmd["comment"])
        except TrackerError as e:
            return self._fail("add_comment", e, key=issue.key)
        return t("comment.added", issue=issue.url)

    def todo(self, message: Message, cmd: dict[str, Any]) -> str:
        project = self.settings.project_overrides.get(message.context or "", cmd["project"])
        try:
            issue = self.gateway.create_issue(
                project,
                cmd["subject"],
                cmd.get("summary"),
                reporter=self._email(message.user),
            )
        except TrackerError as e:
            return self._fail("create_issue", e, project=project)
        return t("issue.created", key=issue.key, url=issue.url)

    def myissues(self, message: Message, cmd: dict[str, Any]) -> str:
        email = self._email(message.user)
        if not email:
            return t("error.not_identified")
        jql = f"assignee = '{email}' AND status not in (Closed)"
        try:
            issues = self.gateway.fetch_issues(jql)
        except TrackerError as e:
            return self._fail("search", e, jql=jql)
        if not issues:
            return t("myissues.empty")
        return format_issues(issues)

    def point(self, message: Message, cmd: dict[str, Any]) -> str:
        field_id = self.settings.points_field
        if not field_id:
            return t("error.field_undefined")
        issue = self._fetch(cmd["issue"])
        if isinstance(issue, TrackerError):
            return self._fail("fetch_issue", issue, key=cmd["issue"])
        points = int(cmd["points"])
        try:
            self.gateway.set_field(issue.key, field_id, points)
        except TrackerError as e:
            log_event(logger, "jira_error", logging.ERROR, op="set_field", kind=e.kind, key=issue.key)
            return t("error.unable_to_point", issue=issue.url)
        return t("point.added", points=points, issue=issue.url)

    def identify(self, message: Message, cmd: dict[str, Any]) -> str:
        if self.identities is None:
            logger.error("Identity store is not configured")
            return t("error.request")
        self.identities.remember(message.user.id, cmd["email"])
        return t("identify.stored", email=cmd["email"])

    def forget(self, message: Message, cmd: dict[str, Any]) -> str:
        if self.identities is None:
            logger.error("Identity store is not configured")
            return t("error.request")
        self.identities.forget(message.user.id)
        return t("identify.deleted")

    def whoami(self, message: Message, cmd: dict[str, Any]) -> str:
        email = self._email(message.user)
        if not email:
            return t("error.not_identified")
        return t("identify.email", email=email)

    def help(self, message: Message, cmd: dict[str, Any]) -> str:
        return format_help(include_point=self.settings.enable_point)
