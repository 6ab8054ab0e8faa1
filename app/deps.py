from fastapi import Depends

from .db import DocumentDatabase, database
from .errors import Forbidden, Unauthenticated
from .identity import IdentityProvider, get_identity_state
from .models import Identity, IdentityState
from .store import RegistrationStore, registration_scope


def get_database() -> DocumentDatabase:
    return database


async def get_store(
    state: IdentityState = Depends(get_identity_state),
    db: DocumentDatabase = Depends(get_database),
):
    async with registration_scope(db, IdentityProvider(state)) as store:
        yield store


def get_loaded_store(store: RegistrationStore = Depends(get_store)) -> RegistrationStore:
    """The request store, refusing to serve an empty list for a failed read."""
    if store.fetch_error is not None:
        raise store.fetch_error
    return store


def require_organizer(state: IdentityState = Depends(get_identity_state)) -> Identity:
    if state.identity is None:
        raise Unauthenticated("Please log in to continue.")
    if not state.identity.is_organizer:
        raise Forbidden("Only organizers can do this.")
    return state.identity
