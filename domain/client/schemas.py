"""Client domain schemas."""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from core.dates import IsoDateTime, ensure_utc, parse_datetime_input
from domain.client.models import ClientType
from domain.common import ApiModel, SortOrder
from domain.validators import required_text

CLIENT_SORT_FIELDS = ("createdAt", "name", "value", "startDate", "endDate", "type")
CLIENT_PAGE_SIZE_MAX = 100

END_BEFORE_START_MESSAGE = "Client end date must be after the start date."


def end_date_is_valid(start: datetime, end: Optional[datetime]) -> bool:
    """An end date, when present, must be strictly after the start date."""
    return end is None or ensure_utc(end) > ensure_utc(start)


def _validate_type(v):
    if v not in ("person", "company") and not isinstance(v, ClientType):
        raise ValueError("Client type must be either 'person' or 'company'.")
    return v


def _validate_value(v):
    if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
        raise ValueError("Client value must be a positive integer.")
    return v


def _validate_start_date(v):
    if v is None or v == "":
        raise ValueError("Client start date is required.")
    try:
        return parse_datetime_input(v)
    except ValueError:
        raise ValueError("Client start date must be a valid ISO date string.") from None


def _validate_end_date(v):
    if v is None:
        return None
    if not isinstance(v, (str, datetime)) or v == "":
        raise ValueError(
            "Client end date must be null or a valid ISO date string when provided."
        )
    try:
        return parse_datetime_input(v)
    except ValueError:
        raise ValueError(
            "Client end date must be a valid ISO date string when provided."
        ) from None


class ClientCreateRequest(ApiModel):
    name: Optional[str] = Field(None, validate_default=True)
    type: Optional[ClientType] = Field(None, validate_default=True)
    value: Optional[int] = Field(None, validate_default=True)
    start_date: Optional[datetime] = Field(None, validate_default=True)
    end_date: Optional[datetime] = None

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, v):
        return required_text(v, "Client name")

    @field_validator("type", mode="before")
    @classmethod
    def _validate_type(cls, v):
        return _validate_type(v)

    @field_validator("value", mode="before")
    @classmethod
    def _validate_value(cls, v):
        return _validate_value(v)

    @field_validator("start_date", mode="before")
    @classmethod
    def _validate_start_date(cls, v):
        return _validate_start_date(v)

    @field_validator("end_date", mode="before")
    @classmethod
    def _validate_end_date(cls, v):
        return _validate_end_date(v)

    @model_validator(mode="after")
    def _check_date_order(self):
        if self.start_date and not end_date_is_valid(self.start_date, self.end_date):
            raise ValueError(END_BEFORE_START_MESSAGE)
        return self


class ClientUpdateRequest(ApiModel):
    name: Optional[str] = None
    type: Optional[ClientType] = None
    value: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, v):
        return required_text(v, "Client name")

    @field_validator("type", mode="before")
    @classmethod
    def _validate_type(cls, v):
        return _validate_type(v)

    @field_validator("value", mode="before")
    @classmethod
    def _validate_value(cls, v):
        return _validate_value(v)

    @field_validator("start_date", mode="before")
    @classmethod
    def _validate_start_date(cls, v):
        return _validate_start_date(v)

    @field_validator("end_date", mode="before")
    @classmethod
    def _validate_end_date(cls, v):
        return _validate_end_date(v)


class ClientListQuery(ApiModel):
    type: Optional[ClientType] = None
    page: int = 1
    limit: int = 10
    sort_by: str = "createdAt"
    sort_order: SortOrder = SortOrder.desc

    @field_validator("type", mode="before")
    @classmethod
    def _all_means_unfiltered(cls, v):
        return None if v in ("", "all") else v

    @field_validator("page", mode="before")
    @classmethod
    def _clamp_page(cls, v):
        try:
            return max(int(v), 1)
        except (TypeError, ValueError):
            return 1

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, v):
        try:
            return min(max(int(v), 1), CLIENT_PAGE_SIZE_MAX)
        except (TypeError, ValueError):
            return 10

    @field_validator("sort_by")
    @classmethod
    def _validate_sort_by(cls, v):
        if v not in CLIENT_SORT_FIELDS:
            raise ValueError(f"sortBy must be one of: {', '.join(CLIENT_SORT_FIELDS)}.")
        return v


class ClientResponse(ApiModel):
    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    type: ClientType
    value: int
    start_date: IsoDateTime
    end_date: Optional[IsoDateTime] = None
    created_at: IsoDateTime
    updated_at: IsoDateTime


class ClientEnvelope(ApiModel):
    client: ClientResponse


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ClientListResponse(ApiModel):
    clients: List[ClientResponse]
    pagination: Pagination
