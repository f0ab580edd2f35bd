from __future__ import annotations


def dest_hint(v: str, keep: int = 4) -> str:
    """Tail of a push token / address, safe to log."""
    v = (v or "").strip()
    if not v:
        return ""
    if len(v) <= keep:
        return v
    return f"...{v[-keep:]}"


def email_hint(addr: str) -> str:
    addr = (addr or "").strip()
    if "@" not in addr:
        return dest_hint(addr)
    local, domain = addr.split("@", 1)
    return f"{local[:1]}***@{domain}"
