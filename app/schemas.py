from datetime import date as date_type
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .models import Organizer, Registration

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


class EventIn(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10, max_length=5000)
    date: str
    time: str = Field(pattern=TIME_PATTERN)
    endTime: str = Field(pattern=TIME_PATTERN)
    location: str = Field(min_length=3, max_length=200)
    category: str = Field(min_length=3, max_length=100)
    organizer: Organizer = Field(default_factory=Organizer)

    @field_validator("date")
    @classmethod
    def _valid_date(cls, v: str) -> str:
        try:
            date_type.fromisoformat(v[:10])
        except ValueError:
            raise ValueError("Invalid date")
        return v


class RegistrationOut(BaseModel):
    id: str
    userId: str
    eventId: str
    registrationDate: str
    checkedIn: bool
    checkedInAt: Optional[str] = None

    @classmethod
    def from_registration(cls, reg: Registration) -> "RegistrationOut":
        return cls(**reg.model_dump(by_alias=True))


class RegistrationListOut(BaseModel):
    registrations: list[RegistrationOut]
    loading: bool


class OutcomeOut(BaseModel):
    status: str
    registrationId: Optional[str] = None
    resync: Optional[str] = None
    error: Optional[str] = None


class RegistrationStatusOut(BaseModel):
    eventId: str
    registered: bool
