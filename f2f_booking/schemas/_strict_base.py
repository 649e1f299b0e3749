"""Schema baselines shared by booking upload models."""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Neutral strict base for result DTOs."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class LenientRecordModel(BaseModel):
    """
    Base for loosely shaped input rows.

    Unknown columns are ignored and surrounding whitespace is stripped; rows
    may arrive as mappings or as attribute objects.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        from_attributes=True,
        str_strip_whitespace=True,
    )
