# peerreview/schemas.py
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StrictInt, field_validator

from .models import ROLES, STUDENT, ASSIGNMENT_STATUSES


def parse_datetime(value) -> datetime:
    """Accept ``2025-12-01`` or a full ISO timestamp; store naive UTC."""
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(CamelModel):
    email: EmailStr = Field(..., description="Login email, unique per user")
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    role: Optional[str] = Field(STUDENT, description="STUDENT or TEACHER")

    @field_validator("role")
    @classmethod
    def check_role(cls, value):
        if value is None:
            return STUDENT
        value = value.upper()
        if value not in ROLES:
            raise ValueError(f"role must be one of {', '.join(ROLES)}")
        return value


class LoginRequest(CamelModel):
    email: str
    password: str


class ProjectRequest(CamelModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    due_date: datetime = Field(..., alias="dueDate")
    tags: Optional[str] = ""

    @field_validator("due_date", mode="before")
    @classmethod
    def check_due_date(cls, value):
        return parse_datetime(value)


class GradeRequest(CamelModel):
    points: StrictInt


class ReviewRequest(CamelModel):
    submission_id: int = Field(..., alias="submissionId")
    content: str = ""
    score: StrictInt  # rejects true and 4.0


class CommentRequest(CamelModel):
    submission_id: int = Field(..., alias="submissionId")
    content: str = Field(..., min_length=1)


class AssignmentRequest(CamelModel):
    project_id: int = Field(..., alias="projectId")
    reviewer_id: int = Field(..., alias="reviewerId")
    submission_id: int = Field(..., alias="submissionId")
    due_date: datetime = Field(..., alias="dueDate")

    @field_validator("due_date", mode="before")
    @classmethod
    def check_due_date(cls, value):
        return parse_datetime(value)


class AssignmentStatusRequest(CamelModel):
    status: str

    @field_validator("status")
    @classmethod
    def check_status(cls, value):
        value = value.upper()
        if value not in ASSIGNMENT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(ASSIGNMENT_STATUSES)}")
        return value
