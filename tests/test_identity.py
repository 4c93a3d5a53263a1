import pytest
from botocore.exceptions import ClientError

import jira_bot.identity as identity


class _Body:
    def __init__(self, data: bytes):
        self.data = data

    def read(self):
        return self.data


class FakeS3:
    def __init__(self):
        self.store = {}

    def get_object(self, Bucket: str, Key: str):
        if (Bucket, Key) not in self.store:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        return {"Body": _Body(self.store[(Bucket, Key)])}

    def put_object(self, Bucket: str, Key: str, Body: bytes):
        self.store[(Bucket, Key)] = Body
        return {}

    def delete_object(self, Bucket: str, Key: str):
        self.store.pop((Bucket, Key), None)
        return {}


class DeniedS3(FakeS3):
    def get_object(self, Bucket: str, Key: str):
        raise ClientError({"Error": {"Code": "AccessDenied"}}, "GetObject")


def _store(monkeypatch, s3):
    class BotoModule:
        def client(self, name: str):
            assert name == "s3"
            return s3

    monkeypatch.setitem(identity.__dict__, "boto3", BotoModule())
    return identity.IdentityStore("bucket", "ids/")


def test_remember_lookup_forget(monkeypatch):
    s3 = FakeS3()
    store = _store(monkeypatch, s3)
    assert store.lookup("U1") is None
    store.remember("U1", " a@example.com ")
    assert s3.store[("bucket", "ids/U1")] == b"a@example.com"
    assert store.lookup("U1") == "a@example.com"
    store.forget("U1")
    assert store.lookup("U1") is None


def test_last_write_wins(monkeypatch):
    store = _store(monkeypatch, FakeS3())
    store.remember("U1", "old@example.com")
    store.remember("U1", "new@example.com")
    assert store.lookup("U1") == "new@example.com"


def test_users_do_not_share_mappings(monkeypatch):
    store = _store(monkeypatch, FakeS3())
    store.remember("U1", "a@example.com")
    assert store.lookup("U2") is None


def test_empty_email_rejected(monkeypatch):
    store = _store(monkeypatch, FakeS3())
    with pytest.raises(ValueError):
        store.remember("U1", "   ")


def test_other_storage_errors_propagate(monkeypatch):
    store = _store(monkeypatch, DeniedS3())
    with pytest.raises(ClientError):
        store.lookup("U1")
