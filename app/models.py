from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import RegistrationError


def now_iso() -> str:
    """UTC now as an ISO-8601 string with milliseconds and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Role(str, Enum):
    ORGANIZER = "organizer"
    STUDENT = "student"


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    # anything other than organizer/student is kept as-is and sees nothing
    role: Optional[str] = None

    @property
    def is_organizer(self) -> bool:
        return self.role == Role.ORGANIZER.value

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT.value


class IdentityState(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: Optional[Identity] = None
    resolved: bool = False

    @property
    def key(self) -> tuple:
        if self.identity is None:
            return (None, None, self.resolved)
        return (self.identity.id, self.identity.role, self.resolved)


def registration_key(user_id: str, event_id: str) -> str:
    return f"{user_id}-{event_id}"


class Registration(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    user_id: str = Field(alias="userId")
    event_id: str = Field(alias="eventId")
    registration_date: str = Field(alias="registrationDate")
    checked_in: bool = Field(default=False, alias="checkedIn")
    checked_in_at: Optional[str] = Field(default=None, alias="checkedInAt")

    @model_validator(mode="after")
    def _check_in_fields_agree(self):
        if self.checked_in != (self.checked_in_at is not None):
            raise ValueError("checkedIn and checkedInAt must be set together")
        return self

    @classmethod
    def new(cls, user_id: str, event_id: str, registration_date: str) -> "Registration":
        return cls(
            id=registration_key(user_id, event_id),
            user_id=user_id,
            event_id=event_id,
            registration_date=registration_date,
            checked_in=False,
        )

    def checked_in_copy(self, checked_in_at: str) -> "Registration":
        return self.model_copy(update={"checked_in": True, "checked_in_at": checked_in_at})

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class OutcomeStatus(str, Enum):
    CREATED = "created"
    ALREADY_REGISTERED = "already_registered"
    CHECKED_IN = "checked_in"
    UNAUTHENTICATED = "unauthenticated"
    WRITE_FAILED = "write_failed"


SUCCESS_STATUSES = {OutcomeStatus.CREATED, OutcomeStatus.ALREADY_REGISTERED, OutcomeStatus.CHECKED_IN}


class MutationOutcome(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    status: OutcomeStatus
    registration_id: Optional[str] = None
    resync: Optional[str] = None
    error: Optional[RegistrationError] = None

    @property
    def ok(self) -> bool:
        return self.status in SUCCESS_STATUSES


class Organizer(BaseModel):
    name: str = ""
    contact: str = ""


class Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: str
    date: str
    time: str
    end_time: str = Field(alias="endTime")
    location: str
    category: str
    organizer: Organizer = Field(default_factory=Organizer)
    created_by: str = Field(alias="createdBy")
    created_at: str = Field(alias="createdAt")

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True)
