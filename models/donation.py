from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DonationStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    RESERVED = "reserved"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, v: Any) -> Optional["DonationStatus"]:
        """Lenient lookup for values read back from client-written documents."""
        if isinstance(v, cls):
            return v
        try:
            return cls(str(v or "").strip().lower())
        except ValueError:
            return None


class UserRole(str, Enum):
    DONOR = "donor"
    RECIPIENT = "recipient"
    ADMIN = "admin"


class Donation(BaseModel):
    """Fields of a `donations` document that the event handlers read."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    donation_id: str = ""
    donor_id: str = Field(default="", alias="donorId")
    title: str = ""
    category: str = "Food"
    quantity: Optional[float] = None
    quantity_unit: str = Field(default="", alias="quantityUnit")
    status: Optional[str] = None
    expiry_date: Optional[datetime] = Field(default=None, alias="expiryDate")
    reserved_by: Optional[str] = Field(default=None, alias="reservedBy")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    status_changed_by: Optional[str] = Field(default=None, alias="statusChangedBy")

    @field_validator("title", "category", "quantity_unit", "donor_id", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else str(v)

    @field_validator("status", "reserved_by", "status_changed_by", mode="before")
    @classmethod
    def _optional_str(cls, v: Any) -> Any:
        return None if v is None else str(v)

    @field_validator("expiry_date", "created_at", mode="before")
    @classmethod
    def _lenient_datetime(cls, v: Any) -> Any:
        # A hand-edited or client-formatted date must not keep the donation out of the counters.
        if v is None or isinstance(v, datetime):
            return v
        if isinstance(v, str):
            try:
                return datetime.fromisoformat(v.strip().replace("Z", "+00:00"))
            except ValueError:
                return None
        return None

    @field_validator("quantity", mode="before")
    @classmethod
    def _lenient_quantity(cls, v: Any) -> Any:
        # Client forms occasionally store numbers as strings; anything else is dropped.
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, (int, float)):
            return v
        try:
            return float(str(v).strip())
        except ValueError:
            return None

    @classmethod
    def from_doc(cls, donation_id: str, data: dict) -> "Donation":
        return cls.model_validate({**(data or {}), "donation_id": donation_id})

    @property
    def category_key(self) -> str:
        return (self.category or "").strip() or "Food"

    @property
    def status_enum(self) -> Optional[DonationStatus]:
        return DonationStatus.parse(self.status)
