import itertools
import threading

from analytics.aggregates import clamp_deltas, nest
from models.donation import DonationStatus


class FakeAnalytics:
    def __init__(self, counters=None, fail=False):
        self.counters = dict(counters or {})
        self.processed = set()
        self.fail = fail
        self.calls = []
        self._lock = threading.Lock()

    def apply(self, deltas, event_id=None, handler=""):
        if self.fail:
            raise RuntimeError("firestore unavailable")
        with self._lock:
            if event_id and event_id in self.processed:
                return False
            deltas = clamp_deltas(nest(self.counters), {k: v for k, v in deltas.items() if v})
            for k, v in deltas.items():
                self.counters[k] = self.counters.get(k, 0) + v
            if event_id:
                self.processed.add(event_id)
            self.calls.append((handler, dict(deltas)))
            return True

    def claim_event(self, event_id, handler=""):
        return self.apply({}, event_id=event_id, handler=handler)

    def get(self, key):
        return self.counters.get(key, 0)


class FakeUsers:
    def __init__(self, users=None, fail=False):
        self.users = dict(users or {})
        self.fail = fail

    def get(self, user_id):
        if not user_id or user_id not in self.users:
            return None
        return {**self.users[user_id], "user_id": user_id}

    def iter_ids_by_role(self, role, limit=5000):
        if self.fail:
            raise RuntimeError("query failed")
        return iter([uid for uid, u in self.users.items() if u.get("role") == role][:limit])


class FakeNotifications:
    def __init__(self):
        self.records = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create(self, data):
        with self._lock:
            nid = f"n{next(self._ids)}"
            self.records[nid] = {**data, "read": False}
        return nid

    def for_user(self, user_id):
        return [r for r in self.records.values() if r["userId"] == user_id]


class FakeTokens:
    def __init__(self, tokens=None, fail_for=()):
        # token_id -> {"userId", "token", "active"}
        self.tokens = {k: dict(v) for k, v in (tokens or {}).items()}
        self.fail_for = set(fail_for)

    def list_active(self, user_id):
        if user_id in self.fail_for:
            raise RuntimeError(f"token lookup failed for {user_id}")
        return [
            {"token_id": tid, "token": t["token"]}
            for tid, t in self.tokens.items()
            if t["userId"] == user_id and t.get("active", True) is not False
        ]

    def deactivate(self, token_id):
        self.tokens[token_id]["active"] = False


class FakeFcm:
    def __init__(self, responses=None):
        # token -> response dict or exception instance
        self.responses = dict(responses or {})
        self.sent = []
        self._lock = threading.Lock()

    def send(self, token, title, body, data=None):
        with self._lock:
            self.sent.append({"token": token, "title": title, "body": body, "data": data})
        r = self.responses.get(token, {"ok": True, "name": f"projects/p/messages/{token}"})
        if isinstance(r, Exception):
            raise r
        return r


class FakeDonations:
    def __init__(self, analytics, docs=None):
        self.analytics = analytics
        self.docs = {k: dict(v) for k, v in (docs or {}).items()}
        self.expire_calls = 0

    def list_expired_active_ids(self, now, limit):
        ids = [
            d for d, v in self.docs.items()
            if v.get("status") == "active" and v.get("expiryDate") is not None and v["expiryDate"] < now
        ]
        return ids[:limit]

    def expire_active(self, donation_ids, now):
        self.expire_calls += 1
        out = []
        for d in donation_ids:
            data = self.docs.get(d)
            if not data or data.get("status") != DonationStatus.ACTIVE.value:
                continue
            data.update({"status": "expired", "updatedAt": now, "statusChangedBy": "expiry_sweep"})
            out.append((d, dict(data)))
        if out:
            self.analytics.apply({"activeDonations": -len(out), "expiredDonations": len(out)})
        return out


class FakeEmailQueue:
    def __init__(self, pending=None):
        self.added = []
        self.pending = list(pending or [])
        self.updates = []

    def add(self, data):
        self.added.append(data)
        return f"e{len(self.added)}"

    def list_pending(self, max_retries, limit):
        return [e for e in self.pending if e.get("retryCount", 0) < max_retries][:limit]

    def commit_updates(self, updates):
        updates = list(updates)
        self.updates.extend(updates)
        return len(updates)


class FakeSmtp:
    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.sent = []

    def send(self, to, subject, html, text):
        if to in self.fail_for:
            raise OSError("connection refused")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
