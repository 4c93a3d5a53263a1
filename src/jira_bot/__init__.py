"""
Jira Chat Bot (Lambda + Slack Events)

Where: AWS Lambda via Function URL (Slack Events API target).
What:  Match chat commands and ambient issue keys, call Jira, post reply.
Why:   Small, dependency-light Jira helper for team chat.
"""

__all__ = [
    "config",
    "handler",
    "jira",
    "gateway",
    "commands",
    "formatter",
    "dispatcher",
    "ambient",
    "identity",
    "idempotency",
    "slack",
    "logs",
]
