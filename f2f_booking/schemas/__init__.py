"""Pydantic schemas for the booking upload."""

from .booking_upload import AttendanceRecord, BatchResult, LoadedRow, RowError

__all__ = ["AttendanceRecord", "BatchResult", "LoadedRow", "RowError"]
