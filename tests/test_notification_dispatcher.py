import httpx

from fakes import FakeFcm, FakeNotifications, FakeTokens

from messaging.dispatcher import PushDispatcher
from notifications.dispatcher import NotificationDispatcher


def make(tokens, responses=None):
    notifications = FakeNotifications()
    token_repo = FakeTokens(tokens)
    fcm = FakeFcm(responses)
    disp = NotificationDispatcher(notifications=notifications, tokens=token_repo, push=PushDispatcher(fcm=fcm))
    return disp, notifications, token_repo, fcm


def test_notify_persists_record_and_pushes_each_token():
    disp, notifications, _, fcm = make({
        "a": {"userId": "u1", "token": "tok-a"},
        "b": {"userId": "u1", "token": "tok-b"},
        "c": {"userId": "u2", "token": "tok-c"},
    })
    out = disp.notify("u1", "Hello", "Body", data={"donationId": "d1"}, notification_type="success",
                      link="/donor/donations/d1", related_entity_id="d1", related_entity_type="donation")
    assert out["tokens"] == 2 and out["sent"] == 2 and out["failed"] == 0
    rec = notifications.records[out["notification_id"]]
    assert rec["userId"] == "u1"
    assert rec["read"] is False
    assert rec["relatedEntityType"] == "donation"
    assert {m["token"] for m in fcm.sent} == {"tok-a", "tok-b"}
    assert fcm.sent[0]["data"]["donationId"] == "d1"
    assert fcm.sent[0]["data"]["notificationId"] == out["notification_id"]


def test_invalid_token_is_soft_deleted_and_others_untouched():
    disp, _, token_repo, fcm = make(
        {
            "a": {"userId": "u1", "token": "tok-a"},
            "b": {"userId": "u1", "token": "tok-b"},
            "c": {"userId": "u1", "token": "tok-c"},
        },
        responses={"tok-b": {"ok": False, "status_code": 404, "error_code": "UNREGISTERED"}},
    )
    out = disp.push("u1", "t", "b")
    assert out == {"tokens": 3, "sent": 2, "failed": 1, "pruned": 1}
    assert token_repo.tokens["b"]["active"] is False
    assert "b" in token_repo.tokens
    assert token_repo.tokens["a"].get("active", True) is True
    assert token_repo.tokens["c"].get("active", True) is True
    assert [m["token"] for m in fcm.sent] == ["tok-a", "tok-b", "tok-c"]


def test_transient_errors_are_swallowed_and_not_pruned():
    disp, _, token_repo, _ = make(
        {
            "a": {"userId": "u1", "token": "tok-a"},
            "b": {"userId": "u1", "token": "tok-b"},
        },
        responses={
            "tok-a": httpx.ConnectError("boom"),
            "tok-b": {"ok": False, "status_code": 503, "error_code": "UNAVAILABLE"},
        },
    )
    out = disp.push("u1", "t", "b")
    assert out == {"tokens": 2, "sent": 0, "failed": 2, "pruned": 0}
    assert all(t.get("active", True) for t in token_repo.tokens.values())


def test_inactive_tokens_are_not_used():
    disp, _, _, fcm = make({
        "a": {"userId": "u1", "token": "tok-a", "active": False},
        "b": {"userId": "u1", "token": "tok-b", "active": True},
    })
    disp.push("u1", "t", "b")
    assert [m["token"] for m in fcm.sent] == ["tok-b"]


def test_record_survives_total_push_failure():
    disp, notifications, _, _ = make(
        {"a": {"userId": "u1", "token": "tok-a"}},
        responses={"tok-a": RuntimeError("fcm down")},
    )
    out = disp.notify("u1", "Hello", "Body")
    assert out["sent"] == 0
    assert len(notifications.for_user("u1")) == 1


def test_enqueue_leaves_push_to_trigger():
    disp, notifications, _, fcm = make({"a": {"userId": "u1", "token": "tok-a"}})
    nid = disp.enqueue("u1", "Welcome", "Hi", notification_type="success", link="/donor/dashboard")
    assert notifications.records[nid]["systemGenerated"] is False
    assert fcm.sent == []


def test_bad_message_error_does_not_prune_tokens():
    too_big = {"ok": False, "status_code": 400, "error_code": "INVALID_ARGUMENT", "message": "Message is too big"}
    disp, _, token_repo, fcm = make(
        {
            "a": {"userId": "u1", "token": "tok-a"},
            "b": {"userId": "u1", "token": "tok-b"},
        },
        responses={"tok-a": too_big, "tok-b": too_big},
    )
    out = disp.push("u1", "t" * 5000, "b")
    assert out == {"tokens": 2, "sent": 0, "failed": 2, "pruned": 0}
    assert token_repo.tokens["a"].get("active", True) is True
    assert token_repo.tokens["b"].get("active", True) is True
