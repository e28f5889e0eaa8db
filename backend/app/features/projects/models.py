# backend/app/features/projects/models.py
"""Project and endpoint records."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class HttpMethod(str, Enum):
    """HTTP methods an endpoint may be probed with."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    OPTIONS = "OPTIONS"


class Priority(str, Enum):
    """Advisory endpoint priority. Has no effect on scanning."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Methods that conventionally carry a request body
BODY_METHODS = {HttpMethod.POST, HttpMethod.PUT, HttpMethod.PATCH}


class Project(BaseModel):
    """A named group of endpoints, optionally pinned to one host/IP."""

    id: str
    name: str
    description: str = ""
    ip_address: Optional[str] = None  # overrides every endpoint's host
    category: str = "Web Application"
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    @field_validator("ip_address")
    @classmethod
    def blank_ip_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class Endpoint(BaseModel):
    """A single HTTP endpoint under test."""

    id: str
    name: str
    url: str
    method: HttpMethod = HttpMethod.GET
    headers: Optional[str] = None  # raw JSON object text
    body: Optional[str] = None  # raw text, JSON when parseable
    description: str = ""
    category: str = "api"
    priority: Priority = Priority.MEDIUM
    project_id: str = ""
    expected_status_code: Optional[int] = None
    expected_content: Optional[str] = None

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator("priority", mode="before")
    @classmethod
    def lower_priority(cls, v):
        return v.lower() if isinstance(v, str) else v
