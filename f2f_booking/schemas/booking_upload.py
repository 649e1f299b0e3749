# f2f_booking/schemas/booking_upload.py
"""
Booking upload schemas.

AttendanceRecord is the strict internal form of one uploaded row. RowError
is the (row, code, params) triple reported by validation; it unpacks as
``(row, message)`` for callers that only display errors.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Union

from pydantic import ConfigDict, Field, field_validator

from ..core.enums import (
    UPLOAD_NOTIFICATION_TYPES,
    UPLOAD_STATUSES,
    AttendanceStatus,
    NotificationType,
)
from ..core.messages import BookingErrorCode, format_message
from ._strict_base import LenientRecordModel, StrictModel


class AttendanceRecord(LenientRecordModel):
    """One proposed attendance change from an upload."""

    email: str = Field(min_length=1)
    session: str = Field(min_length=1)
    status: str = ""
    notification_type: str = Field(default="", alias="notificationtype")
    discount_code: Optional[str] = Field(default=None, alias="discountcode")
    grade_expected: Optional[int] = None

    @field_validator("session", mode="before")
    @classmethod
    def _coerce_session_id(cls, v: Any) -> Any:
        """Session ids may come through as integers from spreadsheet tooling."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("status", "notification_type", mode="before")
    @classmethod
    def _blank_if_missing(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("discount_code")
    @classmethod
    def _empty_discount_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def status_key(self) -> str:
        return self.status.lower()

    @property
    def notification_key(self) -> str:
        return self.notification_type.lower()

    @property
    def parsed_status(self) -> Optional[AttendanceStatus]:
        """The status this row asks for, or None when it is not recognised."""
        return UPLOAD_STATUSES.get(self.status_key)

    @property
    def parsed_notification_type(self) -> Optional[NotificationType]:
        return UPLOAD_NOTIFICATION_TYPES.get(self.notification_key)


@dataclass(frozen=True)
class RowError:
    """A validation or persistence problem on one upload row (1-based)."""

    row: int
    code: BookingErrorCode
    params: Dict[str, Any] = field(default_factory=dict)

    @property
    def message(self) -> str:
        return format_message(self.code, self.params)

    def __iter__(self) -> Iterator[Union[int, str]]:
        yield self.row
        yield self.message

    def __str__(self) -> str:
        return f"Row {self.row}: {self.message}"


class LoadedRow(StrictModel):
    """An upload row as loaded into a batch: parsed record or parse failure."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    row: int
    record: Optional[AttendanceRecord] = None
    parse_error: Optional[str] = None


class BatchResult(StrictModel):
    """Summary of one BookingManager.process() call."""

    model_config = ConfigDict(
        extra="forbid", validate_assignment=True, arbitrary_types_allowed=True
    )

    booked: int = 0
    cancelled: int = 0
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    failed: int = 0
    notifications_sent: int = 0
    row_errors: List[RowError] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.skipped == 0 and self.failed == 0
