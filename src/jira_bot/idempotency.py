"""
Simple idempotency guard using S3.

Stores a tiny marker object per processed Slack event id, so redelivered
events are answered only once.
"""

from __future__ import annotations

import importlib

from botocore.exceptions import ClientError

from .identity import is_missing


def _boto3():
    # Allow tests to monkeypatch module-level `boto3` symbol.
    return globals().get("boto3") or importlib.import_module("boto3")


def s3_record_if_new(bucket: str, key: str) -> bool:
    """Return True if recorded now (i.e., first time), False if already exists."""
    s3 = _boto3().client("s3")
    try:
        s3.head_object(Bucket=bucket, Key=key)
        return False
    except ClientError as e:
        if not is_missing(e):
            raise
    s3.put_object(Bucket=bucket, Key=key, Body=b"1")
    return True
