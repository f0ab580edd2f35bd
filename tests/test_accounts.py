import httpx
import pytest

from firestore_stub import StubFirestore

from accounts.deletion import AccountDeleter
from accounts.identity import IdentityAdminClient, IdentityAdminError
from repos.push_token_repo import PushTokenRepository
from repos.user_repo import UserRepository


class StaticCredentials:
    valid = True
    token = "access-token"


class FakeIdentity:
    def __init__(self, exists=True):
        self.exists = exists
        self.deleted = []

    def delete_user(self, uid):
        self.deleted.append(uid)
        return self.exists


def identity_with(handler):
    http = httpx.Client(transport=httpx.MockTransport(handler))
    return IdentityAdminClient(project_id="demo", credentials=StaticCredentials(), http=http)


def account_db():
    return StubFirestore({
        "users/u1": {"role": "donor", "displayName": "Dana"},
        "users/u2": {"role": "recipient"},
        "fcmTokens/a": {"userId": "u1", "token": "tok-a"},
        "fcmTokens/b": {"userId": "u1", "token": "tok-b", "active": False},
        "fcmTokens/c": {"userId": "u2", "token": "tok-c"},
    })


def deleter(db, identity):
    return AccountDeleter(identity=identity, users=UserRepository(db), tokens=PushTokenRepository(db))


def test_delete_removes_auth_profile_and_tokens():
    db = account_db()
    identity = FakeIdentity()
    result = deleter(db, identity).delete("u1")
    assert result == {"ok": True, "user_id": "u1", "auth_deleted": True, "profile_deleted": True, "tokens_deleted": 2}
    assert identity.deleted == ["u1"]
    assert sorted(db.docs) == ["fcmTokens/c", "users/u2"]


def test_delete_cleans_up_when_auth_account_is_already_gone():
    db = account_db()
    result = deleter(db, FakeIdentity(exists=False)).delete("u1")
    assert result["auth_deleted"] is False
    assert result["tokens_deleted"] == 2
    assert "users/u1" not in db.docs


def test_delete_rejects_blank_user_id():
    identity = FakeIdentity()
    with pytest.raises(ValueError):
        deleter(account_db(), identity).delete("  ")
    assert identity.deleted == []


def test_identity_delete_posts_local_id():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["authorization"]
        seen["body"] = request.read()
        return httpx.Response(200, json={"kind": "identitytoolkit#DeleteAccountResponse"})

    assert identity_with(handler).delete_user("u1") is True
    assert seen["url"] == "https://identitytoolkit.googleapis.com/v1/projects/demo/accounts:delete"
    assert seen["auth"] == "Bearer access-token"
    assert b'"localId":"u1"' in seen["body"].replace(b" ", b"")


def test_identity_user_not_found_returns_false():
    def handler(request):
        return httpx.Response(400, json={"error": {"code": 400, "message": "USER_NOT_FOUND"}})

    assert identity_with(handler).delete_user("u1") is False


def test_identity_other_errors_raise():
    def handler(request):
        return httpx.Response(403, json={"error": {"code": 403, "message": "PERMISSION_DENIED"}})

    with pytest.raises(IdentityAdminError):
        identity_with(handler).delete_user("u1")
