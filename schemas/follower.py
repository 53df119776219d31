"""
Pydantic schemas for follower records and pages returned by the upstream API
"""

import re
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator

RFC3339_PATTERN = re.compile(
    r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?(Z|[+-]\d{2}:\d{2})"
)


class _UpstreamModel(BaseModel):
    """Missing keys and JSON nulls fall back to zero values; unknown keys are dropped."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def null_to_default(cls, v, info):
        if v is None:
            field = cls.model_fields[info.field_name]
            return field.get_default(call_default_factory=True)
        return v


class Label(_UpstreamModel):
    """Moderation/self label attached to an account"""
    type: StrictStr = ""
    value: StrictStr = ""

    def serialize(self) -> str:
        return f"{self.type}:{self.value}"


class Viewer(_UpstreamModel):
    """Relationship between the requesting viewer and the account"""
    muted: StrictBool = False
    blocked_by: StrictBool = Field(False, alias="blockedBy")
    following: StrictStr = ""


class FollowerRecord(_UpstreamModel):
    """
    One follower account.

    `did` is the stable identifier and primary key in the store; every other
    field is overwritten when the same `did` is ingested again.
    """
    did: StrictStr = ""
    handle: StrictStr = ""
    display_name: StrictStr = Field("", alias="displayName")
    avatar: StrictStr = ""
    description: StrictStr = ""
    viewer: Viewer = Field(default_factory=Viewer)
    labels: List[Label] = Field(default_factory=list)
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    indexed_at: Optional[datetime] = Field(None, alias="indexedAt")

    @field_validator("created_at", "indexed_at", mode="before")
    @classmethod
    def rfc3339_timestamp(cls, v: Any):
        """Only RFC 3339 date-times are accepted; "" means unset"""
        if v is None or isinstance(v, datetime):
            return v
        if not isinstance(v, str):
            raise ValueError(f"timestamp must be an RFC 3339 string, got {type(v).__name__}")
        if not v.strip():
            return None
        if not RFC3339_PATTERN.fullmatch(v):
            raise ValueError(f"timestamp is not RFC 3339: {v!r}")
        return v

    @field_validator("created_at", "indexed_at")
    @classmethod
    def to_naive_utc(cls, v: Optional[datetime]):
        """Store timestamps as naive UTC"""
        if v is not None and v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @property
    def id(self) -> str:
        return self.did


class FollowersPage(_UpstreamModel):
    """One page of followers plus the cursor for the next page ("" = last page)"""
    followers: List[FollowerRecord] = Field(default_factory=list)
    cursor: StrictStr = ""

    @property
    def is_last(self) -> bool:
        return not self.cursor
