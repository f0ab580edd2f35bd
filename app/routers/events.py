from __future__ import annotations

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from security.operator_auth import OperatorClaims
from triggers.donations import DonationTriggers
from triggers.firestore_event import FirestoreEvent, InvalidEventError, parse_event
from triggers.notifications import NotificationTriggers
from triggers.users import UserTriggers
from utils.request_context import set_event_id

router = APIRouter()
log = logging.getLogger("foodshare.routers.events")


async def cloud_event(request: Request) -> FirestoreEvent:
    raw = await request.body()
    try:
        body = json.loads(raw or b"{}")
    except ValueError as e:
        raise InvalidEventError("event body is not JSON") from e
    event = parse_event(request.headers, body)
    set_event_id(event.event_id)
    log.info(
        "event_received",
        extra={"extra": {"event": "event_received", "ce_type": event.event_type, "document": event.document_path}},
    )
    return event


def get_donation_triggers() -> DonationTriggers:
    return DonationTriggers()


def get_user_triggers() -> UserTriggers:
    return UserTriggers()


def get_notification_triggers() -> NotificationTriggers:
    return NotificationTriggers()


@router.post("/donation_created")
def donation_created(
    _claims: dict = OperatorClaims,
    event: FirestoreEvent = Depends(cloud_event),
    triggers: DonationTriggers = Depends(get_donation_triggers),
) -> Dict[str, Any]:
    return triggers.on_created(event.event_id, event.document_id, event.value)


@router.post("/donation_updated")
def donation_updated(
    _claims: dict = OperatorClaims,
    event: FirestoreEvent = Depends(cloud_event),
    triggers: DonationTriggers = Depends(get_donation_triggers),
) -> Dict[str, Any]:
    return triggers.on_updated(event.event_id, event.document_id, event.old_value, event.value)


@router.post("/user_created")
def user_created(
    _claims: dict = OperatorClaims,
    event: FirestoreEvent = Depends(cloud_event),
    triggers: UserTriggers = Depends(get_user_triggers),
) -> Dict[str, Any]:
    return triggers.on_created(event.event_id, event.document_id, event.value)


@router.post("/notification_created")
def notification_created(
    _claims: dict = OperatorClaims,
    event: FirestoreEvent = Depends(cloud_event),
    triggers: NotificationTriggers = Depends(get_notification_triggers),
) -> Dict[str, Any]:
    return triggers.on_created(event.event_id, event.document_id, event.value)
