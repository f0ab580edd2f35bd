# Centralized collection names to prevent drift with the client app.

COL_DONATIONS = "donations"
COL_USERS = "users"
COL_NOTIFICATIONS = "notifications"
COL_FCM_TOKENS = "fcmTokens"
COL_EMAIL_QUEUE = "emailQueue"

# Single running-totals document: analytics/summary
COL_ANALYTICS = "analytics"
DOC_ANALYTICS_SUMMARY = "summary"

# Idempotency markers: processed_events/{event_id}
COL_PROCESSED_EVENTS = "processed_events"

# Written on donations by the expiry sweep so the update trigger can tell
# its own writes apart from client transitions.
STATUS_CHANGED_BY_SWEEP = "expiry_sweep"
