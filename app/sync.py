"""What the store does to its working set after a confirmed write.

REFETCH replaces the working set with a fresh read; PATCH_LOCAL rewrites the
single affected record in memory without touching the database again.
"""
from enum import Enum
from typing import Mapping, Optional

from .models import Identity, Role


class Mutation(str, Enum):
    REGISTER = "register"
    MARK_ATTENDANCE = "mark_attendance"


class Resync(str, Enum):
    REFETCH = "refetch"
    PATCH_LOCAL = "patch_local"


# (mutation, role) -> resync; role None is the fallback for that mutation
ResyncTable = Mapping[tuple[Mutation, Optional[str]], Resync]

DEFAULT_RESYNC: ResyncTable = {
    (Mutation.REGISTER, None): Resync.REFETCH,
    # organizers check in records they may not own locally
    (Mutation.MARK_ATTENDANCE, Role.ORGANIZER.value): Resync.REFETCH,
    (Mutation.MARK_ATTENDANCE, None): Resync.PATCH_LOCAL,
}


def resync_for(mutation: Mutation, identity: Optional[Identity], table: ResyncTable = DEFAULT_RESYNC) -> Resync:
    role = identity.role if identity is not None else None
    if (mutation, role) in table:
        return table[(mutation, role)]
    try:
        return table[(mutation, None)]
    except KeyError:
        raise KeyError(f"no resync policy for {mutation.value}") from None
