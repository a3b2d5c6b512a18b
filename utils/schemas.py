"""
Pydantic Schemas - Data Validation Models

Defines the Pydantic schemas used by the user sync job:
- StudentUser: a user object built from one remote student record
- UserLogEntry: one row of the user persistence log

Usage:
    from utils.schemas import StudentUser

    user = StudentUser(**raw_record)
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class StudentUser(BaseModel):
    """User object built from a remote student record.

    Validates:
    - am: external id, non-empty
    - email: valid email format, lower-cased
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="ignore")

    remote_id: Optional[str] = Field(default=None, alias="id", description="Record id in the remote API")
    am: str = Field(..., min_length=1, description="Registration number (external id)")
    email: EmailStr = Field(..., description="Email address, also used as username")
    firstname: str = Field(default="", alias="firstName")
    lastname: str = Field(default="", alias="lastName")
    afm: str = Field(default="", description="Tax id (second external id)")
    academy: str = Field(default="")
    school: str = Field(default="")
    eduyear: str = Field(default="", alias="eduYear")
    eduperiod: str = Field(default="", alias="eduPeriod")

    @field_validator("am")
    @classmethod
    def validate_am(cls, v: str) -> str:
        """Reject whitespace-only ids."""
        if not v.strip():
            raise ValueError("am must be a non-empty string")
        return v.strip()

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()

    @field_validator("firstname", "lastname", "afm", "academy", "school", "eduyear", "eduperiod", mode="before")
    @classmethod
    def none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def username(self) -> str:
        return self.email.lower()

    def profile_fields(self) -> dict[str, str]:
        """Custom profile fields stored alongside the user."""
        return {
            "am": self.am,
            "afm": self.afm,
            "academy": self.academy,
            "school": self.school,
            "eduyear": self.eduyear,
            "eduperiod": self.eduperiod,
        }


class UserLogEntry(BaseModel):
    """Persistence log row written after a user is processed."""

    user_id: int = Field(..., description="Local user id")
    afm: str = Field(default="", description="First external id")
    am: str = Field(default="", description="Second external id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
