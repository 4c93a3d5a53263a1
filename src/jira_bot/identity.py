"""
Chat user -> Jira email mapping kept in S3.

One object per chat user id; the object body is the email. Last write wins.
"""

from __future__ import annotations

import importlib

from botocore.exceptions import ClientError

MISSING_CODES = ("404", "NoSuchKey", "NotFound")


def _boto3():
    # Allow tests to monkeypatch module-level `boto3` symbol.
    return globals().get("boto3") or importlib.import_module("boto3")


def is_missing(err: ClientError) -> bool:
    return str(err.response.get("Error", {}).get("Code")) in MISSING_CODES


class IdentityStore:
    def __init__(self, bucket: str, prefix: str = "identities/") -> None:
        self.bucket = bucket
        self.prefix = prefix
        self.s3 = _boto3().client("s3")

    def _key(self, user_id: str) -> str:
        return f"{self.prefix}{user_id}"

    def remember(self, user_id: str, email: str) -> None:
        email = (email or "").strip()
        if not email:
            raise ValueError("email must not be empty")
        self.s3.put_object(Bucket=self.bucket, Key=self._key(user_id), Body=email.encode("utf-8"))

    def forget(self, user_id: str) -> None:
        self.s3.delete_object(Bucket=self.bucket, Key=self._key(user_id))

    def lookup(self, user_id: str) -> str | None:
        try:
            obj = self.s3.get_object(Bucket=self.bucket, Key=self._key(user_id))
        except ClientError as e:
            if is_missing(e):
                return None
            raise
        email = obj["Body"].read().decode("utf-8").strip()
        return email or None
