from enum import Enum
from typing import Optional, Sequence

from .models import Identity, Registration


class FetchScope(str, Enum):
    ALL = "all"
    OWN = "own"
    NONE = "none"


def fetch_scope(identity: Optional[Identity]) -> FetchScope:
    if identity is None:
        return FetchScope.NONE
    if identity.is_organizer:
        return FetchScope.ALL
    if identity.is_student:
        return FetchScope.OWN
    return FetchScope.NONE


def user_registrations(registrations: Sequence[Registration], identity: Optional[Identity]) -> list[Registration]:
    if identity is None:
        return []
    return [r for r in registrations if r.user_id == identity.id]


def all_registrations(registrations: Sequence[Registration], identity: Optional[Identity]) -> list[Registration]:
    if identity is None or not identity.is_organizer:
        return []
    return list(registrations)


def is_registered(registrations: Sequence[Registration], identity: Optional[Identity], event_id: str) -> bool:
    return any(r.event_id == event_id for r in user_registrations(registrations, identity))
