"""In-memory registration working set kept in step with the document database.

The store reads the registrations visible to the current identity, creates
registrations under the deterministic `{userId}-{eventId}` key and checks
attendees in. Database failures never escape: reads keep the last good
working set, writes leave it untouched, and mutations report what happened
through a MutationOutcome.
"""
import asyncio
import contextvars
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from .app_logger import get_logger
from .config import settings
from .db import DocumentDatabase
from .errors import FetchFailure, InitializationFault, Unauthenticated, WriteFailure
from .identity import IdentityProvider
from .models import (
    Identity,
    IdentityState,
    MutationOutcome,
    OutcomeStatus,
    Registration,
    now_iso,
    registration_key,
)
from .sync import DEFAULT_RESYNC, Mutation, Resync, ResyncTable, resync_for
from .visibility import FetchScope, all_registrations, fetch_scope, is_registered, user_registrations

log = get_logger("store")


class _RecordLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


@dataclass(frozen=True)
class RegistrationSnapshot:
    user_registrations: tuple
    all_registrations: tuple
    loading: bool


Listener = Callable[[RegistrationSnapshot], None]


class RegistrationStore:
    def __init__(
        self,
        database: DocumentDatabase,
        *,
        collection: Optional[str] = None,
        resync_policy: ResyncTable = DEFAULT_RESYNC,
        timeout: Optional[float] = None,
        clock: Callable[[], str] = now_iso,
    ):
        self._db = database
        self._collection = collection or settings.registrations_collection
        self._resync_policy = resync_policy
        self._timeout = settings.db_timeout_seconds if timeout is None else timeout
        self._clock = clock

        self._identity_state = IdentityState()
        self._registrations: tuple[Registration, ...] = ()
        self._loading = True
        self._listeners: list[Listener] = []
        self._locks: dict[str, _RecordLock] = {}
        self._generation = 0
        self._fetch_error: Optional[FetchFailure] = None
        self._identity_key = None
        self._unsubscribe_identity: Optional[Callable[[], None]] = None

    # -- read accessors --

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity_state.identity

    @property
    def registrations(self) -> tuple[Registration, ...]:
        return self._registrations

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def fetch_error(self) -> Optional[FetchFailure]:
        """Failure of the latest read, cleared by the next successful one."""
        return self._fetch_error

    @property
    def user_registrations(self) -> list[Registration]:
        return user_registrations(self._registrations, self.identity)

    @property
    def all_registrations(self) -> list[Registration]:
        return all_registrations(self._registrations, self.identity)

    def is_user_registered(self, event_id: str) -> bool:
        return is_registered(self._registrations, self.identity, event_id)

    def snapshot(self) -> RegistrationSnapshot:
        return RegistrationSnapshot(
            user_registrations=tuple(self.user_registrations),
            all_registrations=tuple(self.all_registrations),
            loading=self._loading,
        )

    # -- change notification --

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    # -- identity --

    async def attach(self, provider: IdentityProvider) -> None:
        self.detach()
        self._unsubscribe_identity = provider.subscribe(self._on_identity)
        await self._on_identity(provider.state)

    def detach(self) -> None:
        if self._unsubscribe_identity is not None:
            self._unsubscribe_identity()
            self._unsubscribe_identity = None

    async def _on_identity(self, state: IdentityState) -> None:
        self._identity_state = state
        if state.key == self._identity_key:
            return
        self._identity_key = state.key
        self._notify()
        if state.resolved:
            await self.refresh()

    # -- database --

    async def _call(self, awaitable: Awaitable):
        if not self._timeout:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self._timeout)

    async def refresh(self) -> Optional[FetchFailure]:
        """Replace the working set with what the current identity may see.

        Returns the FetchFailure when the read failed, None otherwise.
        """
        state = self._identity_state
        if not state.resolved:
            return None

        identity = state.identity
        scope = fetch_scope(identity)
        self._generation += 1
        generation = self._generation

        if scope is FetchScope.NONE:
            self._registrations = ()
            self._fetch_error = None
            self._loading = False
            self._notify()
            return None

        self._loading = True
        self._notify()
        try:
            if scope is FetchScope.ALL:
                docs = await self._call(self._db.get_all(self._collection))
            else:
                docs = await self._call(self._db.get_where(self._collection, "userId", identity.id))
        except Exception as exc:
            failure = FetchFailure("Error fetching registrations", cause=exc)
            log.error("Error fetching registrations for %s: %r", identity.id, exc)
            if generation == self._generation:
                self._fetch_error = failure
                self._loading = False
                self._notify()
            return failure

        if generation != self._generation:
            # a newer refresh owns the working set and the loading flag
            log.debug("dropping superseded fetch %d", generation)
            return None

        self._registrations = tuple(self._parse(docs))
        self._fetch_error = None
        self._loading = False
        self._notify()
        return None

    @staticmethod
    def _parse(docs: list[dict]) -> list[Registration]:
        parsed = []
        for doc in docs:
            try:
                parsed.append(Registration.model_validate(doc))
            except ValidationError as exc:
                log.warning("Skipping malformed registration %s: %s", doc.get("id"), exc)
        return parsed

    # -- mutations --

    @asynccontextmanager
    async def _record_lock(self, key: str):
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _RecordLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    async def _is_stored(self, identity: Identity, registration_id: str) -> bool:
        # the working set only answers for identities it was actually loaded for
        trusted = (
            fetch_scope(identity) is not FetchScope.NONE
            and self._fetch_error is None
            and not self._loading
        )
        if trusted:
            return any(r.id == registration_id for r in self._registrations)
        docs = await self._call(self._db.get_where(self._collection, "userId", identity.id))
        return any(d.get("id") == registration_id for d in docs)

    def _unauthenticated(self, action: str) -> MutationOutcome:
        error = Unauthenticated(f"User must be logged in to {action}.")
        log.warning(str(error))
        return MutationOutcome(status=OutcomeStatus.UNAUTHENTICATED, error=error)

    async def _resync(self, mutation: Mutation, identity: Identity, apply_local: Callable[[], None]) -> Resync:
        policy = resync_for(mutation, identity, self._resync_policy)
        if policy is Resync.REFETCH:
            await self.refresh()
        else:
            apply_local()
            self._notify()
        return policy

    async def register_for_event(self, event_id: str) -> MutationOutcome:
        if not event_id:
            raise ValueError("event_id must be a non-empty string")
        identity = self.identity
        if identity is None:
            return self._unauthenticated("register")

        registration_id = registration_key(identity.id, event_id)
        async with self._record_lock(registration_id):
            try:
                stored = await self._is_stored(identity, registration_id)
            except Exception as exc:
                error = WriteFailure(
                    f"Could not check for an existing registration {registration_id}",
                    cause=FetchFailure("Error fetching registrations", cause=exc),
                )
                log.error("Not registering %s: lookup failed: %r", registration_id, exc)
                return MutationOutcome(
                    status=OutcomeStatus.WRITE_FAILED, registration_id=registration_id, error=error
                )
            if stored:
                return MutationOutcome(status=OutcomeStatus.ALREADY_REGISTERED, registration_id=registration_id)

            registration = Registration.new(identity.id, event_id, self._clock())
            try:
                await self._call(self._db.put(self._collection, registration_id, registration.to_document()))
            except Exception as exc:
                error = WriteFailure(f"Error creating registration {registration_id}", cause=exc)
                log.error("Error creating registration %s: %r", registration_id, exc)
                return MutationOutcome(
                    status=OutcomeStatus.WRITE_FAILED, registration_id=registration_id, error=error
                )

            def insert_local():
                self._registrations = self._registrations + (registration,)

            policy = await self._resync(Mutation.REGISTER, identity, insert_local)

        log.info("Registered %s for event %s", identity.id, event_id)
        return MutationOutcome(
            status=OutcomeStatus.CREATED, registration_id=registration_id, resync=policy.value
        )

    async def mark_attendance(self, registration_id: str) -> MutationOutcome:
        identity = self.identity
        if identity is None:
            return self._unauthenticated("mark attendance")

        async with self._record_lock(registration_id):
            checked_in_at = self._clock()
            try:
                await self._call(
                    self._db.patch(
                        self._collection,
                        registration_id,
                        {"checkedIn": True, "checkedInAt": checked_in_at},
                    )
                )
            except Exception as exc:
                error = WriteFailure(f"Error marking attendance for {registration_id}", cause=exc)
                log.error("Error marking attendance for %s: %r", registration_id, exc)
                return MutationOutcome(
                    status=OutcomeStatus.WRITE_FAILED, registration_id=registration_id, error=error
                )

            def patch_local():
                self._registrations = tuple(
                    r.checked_in_copy(checked_in_at) if r.id == registration_id else r
                    for r in self._registrations
                )

            policy = await self._resync(Mutation.MARK_ATTENDANCE, identity, patch_local)

        log.info("Checked in %s by %s", registration_id, identity.id)
        return MutationOutcome(
            status=OutcomeStatus.CHECKED_IN, registration_id=registration_id, resync=policy.value
        )


@asynccontextmanager
async def open_store(database: DocumentDatabase, provider: IdentityProvider, **options):
    store = RegistrationStore(database, **options)
    await store.attach(provider)
    try:
        yield store
    finally:
        store.detach()


_current_store: contextvars.ContextVar[Optional[RegistrationStore]] = contextvars.ContextVar(
    "registration_store", default=None
)


@asynccontextmanager
async def registration_scope(database: DocumentDatabase, provider: IdentityProvider, **options):
    async with open_store(database, provider, **options) as store:
        token = _current_store.set(store)
        try:
            yield store
        finally:
            _current_store.reset(token)


def use_registrations() -> RegistrationStore:
    store = _current_store.get()
    if store is None:
        raise InitializationFault("use_registrations must be used within a registration_scope")
    return store
