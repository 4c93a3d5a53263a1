"""
Passive issue-key detection for messages that are not addressed to the bot.

Failures never reach the chat: a batch the tracker rejects, an unknown key or
an unreachable tracker all end in silence.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from . import commands
from .config import Settings
from .formatter import format_issue, format_issues
from .gateway import TrackerError, TrackerGateway
from .logs import log_event

if TYPE_CHECKING:
    from .dispatcher import ChatUser, Message

logger = logging.getLogger(__name__)


class AmbientDetector:
    def __init__(
        self,
        settings: Settings,
        gateway: TrackerGateway,
        reply: Callable[[Message, str], None],
    ) -> None:
        self.settings = settings
        self.gateway = gateway
        self.reply = reply

    def ignored(self, user: ChatUser) -> bool:
        ignore = self.settings.ignore
        return any(v and v in ignore for v in (user.id, user.mention_name, user.name))

    def suppressed(self, message: Message) -> bool:
        if message.command or not self.settings.ambient:
            return True
        if self.ignored(message.user):
            return True
        rooms = self.settings.rooms
        return rooms is not None and message.room not in rooms

    def scan(self, message: Message) -> str | None:
        if self.suppressed(message):
            return None
        keys = commands.unique_keys(commands.extract_issue_keys(message.text))
        if not keys:
            return None

        if len(keys) > 1:
            # Jira rejects the whole query if any key is unknown; that is an empty result here.
            jql = f"key in ({','.join(keys)})"
            issues = self.gateway.fetch_issues(jql, suppress_errors=True)
            if not issues:
                return None
            text = format_issues(issues)
        else:
            try:
                issue = self.gateway.fetch_issue(keys[0])
            except TrackerError as e:
                log_event(logger, "ambient_fetch_suppressed", logging.DEBUG, key=keys[0], kind=e.kind)
                return None
            text = format_issue(issue, self.settings)

        log_event(logger, "ambient_reply", keys=keys, room=message.room)
        self.reply(message, text)
        return text
