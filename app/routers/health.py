from __future__ import annotations

import os
import time
from typing import Any, Dict

from fastapi import APIRouter

from config.settings import settings

router = APIRouter()


def _firestore_ping(timeout_s: float = 0.20) -> Dict[str, Any]:
    """
    Read-only, bounded-time Firestore connectivity check against a fixed doc path.
    """
    try:
        from storage.firestore_client import get_firestore_client
    except Exception as e:
        return {"ok": False, "error_type": type(e).__name__, "message": str(e)}

    try:
        t0 = time.time()
        db = get_firestore_client()
        db.collection("system").document("healthz").get(timeout=timeout_s)
        dt_ms = int((time.time() - t0) * 1000)
        return {"ok": True, "latency_ms": dt_ms}
    except Exception as e:
        return {"ok": False, "error_type": type(e).__name__, "message": str(e)}


@router.get("/healthz")
def healthz():
    return {"ok": True, "service": "foodshare-events"}


@router.get("/health")
def health():
    fs = _firestore_ping()
    return {
        "ok": bool(fs.get("ok", False)),
        "service": "foodshare-events",
        "cloudrun_service": os.getenv("K_SERVICE") or "",
        "revision": os.getenv("K_REVISION") or "",
        "environment": settings.ENVIRONMENT,
        "event_dedup_enabled": bool(settings.EVENT_DEDUP_ENABLED),
        "firestore_ok": bool(fs.get("ok", False)),
        "firestore": fs,
        "time_unix": time.time(),
    }
