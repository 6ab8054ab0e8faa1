from typing import Awaitable, Callable, Optional

from fastapi import Header

from .app_logger import get_logger
from .models import Identity, IdentityState

log = get_logger("identity")

IdentityListener = Callable[[IdentityState], Awaitable[None]]


class IdentityProvider:
    """Holds the session identity and tells listeners when it changes."""

    def __init__(self, state: Optional[IdentityState] = None):
        self._state = state or IdentityState()
        self._listeners: list[IdentityListener] = []

    @property
    def state(self) -> IdentityState:
        return self._state

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def update(self, state: IdentityState) -> None:
        self._state = state
        for listener in list(self._listeners):
            await listener(state)

    async def sign_in(self, identity: Identity) -> None:
        await self.update(IdentityState(identity=identity, resolved=True))

    async def sign_out(self) -> None:
        await self.update(IdentityState(identity=None, resolved=True))


def get_identity_state(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> IdentityState:
    # the authentication gateway in front of the service sets these headers
    if not x_user_id:
        return IdentityState(identity=None, resolved=True)
    role = x_user_role.strip().lower() if x_user_role else None
    log.debug("request identity %s (%s)", x_user_id, role)
    return IdentityState(identity=Identity(id=x_user_id, role=role), resolved=True)
