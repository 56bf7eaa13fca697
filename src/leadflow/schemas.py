"""Data models for the recruitment pipeline."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _short_id() -> str:
    return uuid.uuid4().hex[:9]


def clamp_score(value: int) -> int:
    return min(100, max(0, int(value)))


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class LeadStatus(str, Enum):
    LEAD = "Lead"
    INTERVIEWING = "Interviewing"
    FORMATION = "Formation"
    RECRUITER = "Recruiter"
    REJECTED = "Rejected"


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Role(str, Enum):
    RECRUITER = "recruiter"
    WORKER = "worker"
    MANAGER = "manager"


# ---------------------------------------------------------------------------
# Core models
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire to the UI."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Task(CamelModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    text: str
    is_completed: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


class Lead(CamelModel):
    id: str = Field(default_factory=_short_id)
    full_name: str
    email: str = ""
    phone: str = ""
    post_applied_for: str = ""
    bio: str = ""
    source: str = ""
    status: LeadStatus = LeadStatus.LEAD
    created_at: datetime = Field(default_factory=_utcnow)
    priority: Priority = Priority.LOW
    score: int = 0
    tasks: list[Task] = Field(default_factory=list)
    next_follow_up: datetime | None = None
    cv_base64: str | None = None
    cv_file_name: str | None = None

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, v):
        return clamp_score(v if v is not None else 0)

    @field_validator("tasks", mode="before")
    @classmethod
    def _tasks_default(cls, v):
        return [] if v is None else v


class LeadFormData(CamelModel):
    """Raw public intake payload."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True,
    )

    full_name: str = Field(min_length=1)
    email: str = Field(min_length=3, pattern=r"^[^@\s]+@[^@\s]+$")
    phone: str = Field(min_length=1)
    post_applied_for: str = Field(min_length=1)
    bio: str = Field(min_length=1)
    source: str = ""
    cv_base64: str | None = None
    cv_file_name: str | None = None


class LeadPatch(CamelModel):
    """Partial update; only fields that are set are sent to the gateway."""

    full_name: str | None = None
    email: str | None = None
    phone: str | None = None
    post_applied_for: str | None = None
    bio: str | None = None
    status: LeadStatus | None = None
    priority: Priority | None = None
    score: int | None = None
    tasks: list[Task] | None = None
    next_follow_up: datetime | None = None

    @field_validator("score")
    @classmethod
    def _clamp_score(cls, v):
        return None if v is None else clamp_score(v)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class ScoreResult(BaseModel):
    score: int
    priority: Priority


class MutationResult(BaseModel):
    success: bool
    error: str | None = None


class FetchResult(BaseModel):
    leads: list[Lead] = Field(default_factory=list)
    error: str | None = None


class BatchOutcome(CamelModel):
    succeeded: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class PipelineMetrics(CamelModel):
    total: int = 0
    by_status: dict[LeadStatus, int] = Field(default_factory=dict)
    conversion_rate: int = 0  # percent of leads that reached Recruiter
    average_score: int = 0
    high_priority: int = 0
    open_tasks: int = 0


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------

class LoginRequest(BaseModel):
    username: str
    password: str


class StatusChange(BaseModel):
    status: LeadStatus


class BatchStatusRequest(BaseModel):
    ids: list[str]
    status: LeadStatus


class BatchDeleteRequest(BaseModel):
    ids: list[str]


class OutreachDraft(CamelModel):
    channel: str = "email"  # email / sms
    lead_id: str = ""
    to: str = ""
    subject: str = ""
    body: str = ""
    link: str = ""
