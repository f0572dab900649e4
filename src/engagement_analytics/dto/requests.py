"""Request DTOs for API endpoints.

Every analytics endpoint is a GET, so these models are bound to query
parameters by the routes.
"""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, model_validator


class DateRangeQuery(BaseModel):
    """Optional inclusive date range (UTC calendar dates)."""

    start_date: date | None = Field(None, description="First day included (YYYY-MM-DD)")
    end_date: date | None = Field(None, description="Last day included (YYYY-MM-DD)")

    @model_validator(mode="after")
    def check_order(self) -> "DateRangeQuery":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class AttributeUsersQuery(BaseModel):
    """Request DTO for listing the members carrying an attribute value."""

    type: str = Field(..., description="interest, skill, location, business_topic, customField, ...", min_length=1)
    value: str = Field(..., description="Attribute value, matched case-insensitively", min_length=1)
    only_active: bool = Field(True, description="Skip disabled members")
    custom_field_id: str | None = Field(None, description="Custom field id when type is customField")


class DrilldownQueryParams(AttributeUsersQuery):
    """Request DTO for one page of a chart drilldown."""

    search: str = Field("", description="Case-insensitive filter on name, email, job and employer")
    sort_by: Literal["full_name", "fname", "lname", "email", "id", "job_title", "current_employer"] = "full_name"
    sort_order: Literal["asc", "desc"] = "asc"
    page: int = Field(1, ge=1)
    page_size: int = Field(25, ge=1, le=200)
