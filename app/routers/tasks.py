from __future__ import annotations

import logging

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from accounts.deletion import delete_user_account
from emails.processor import process_email_queue
from security.operator_auth import OperatorClaims
from sweeps.expiry_sweeper import run_expiry_sweep

router = APIRouter()
log = logging.getLogger("foodshare.routers.tasks")


class DeleteUserRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    user_id: str = Field(..., alias="userIdToDelete", min_length=1)


@router.post("/expire_donations")
def expire_donations(_claims: dict = OperatorClaims):
    try:
        result = run_expiry_sweep()
    except Exception as e:
        log.error(
            "sweep_error",
            extra={"extra": {"stage": "expire", "error_type": type(e).__name__, "message": str(e)}},
            exc_info=True,
        )
        raise
    return {"ok": True, "result": result}


@router.post("/process_email_queue")
def email_queue(_claims: dict = OperatorClaims):
    try:
        result = process_email_queue()
    except Exception as e:
        log.error(
            "email_queue_error",
            extra={"extra": {"stage": "process", "error_type": type(e).__name__, "message": str(e)}},
            exc_info=True,
        )
        raise
    return {"ok": True, "result": result}


@router.post("/delete_user_account")
def delete_account(body: DeleteUserRequest, _claims: dict = OperatorClaims):
    try:
        result = delete_user_account(body.user_id)
    except Exception as e:
        log.error(
            "delete_user_error",
            extra={"extra": {"stage": "delete", "user_id": body.user_id, "error_type": type(e).__name__,
                             "message": str(e)}},
            exc_info=True,
        )
        raise
    return {"ok": True, "result": result}
