from fastapi import APIRouter, Depends, Response

from ..deps import get_loaded_store, get_store
from ..errors import DocumentNotFound
from ..models import MutationOutcome, OutcomeStatus
from ..schemas import OutcomeOut, RegistrationListOut, RegistrationOut, RegistrationStatusOut
from ..store import RegistrationStore

router = APIRouter()

OUTCOME_STATUS_CODES = {
    OutcomeStatus.CREATED: 201,
    OutcomeStatus.ALREADY_REGISTERED: 200,
    OutcomeStatus.CHECKED_IN: 200,
    OutcomeStatus.UNAUTHENTICATED: 401,
    OutcomeStatus.WRITE_FAILED: 502,
}


def outcome_response(outcome: MutationOutcome, response: Response) -> OutcomeOut:
    code = OUTCOME_STATUS_CODES[outcome.status]
    if outcome.error is not None and isinstance(outcome.error.cause, DocumentNotFound):
        code = 404
    response.status_code = code
    return OutcomeOut(
        status=outcome.status.value,
        registrationId=outcome.registration_id,
        resync=outcome.resync,
        error=str(outcome.error) if outcome.error else None,
    )


def registration_list(regs, store: RegistrationStore) -> RegistrationListOut:
    return RegistrationListOut(
        registrations=[RegistrationOut.from_registration(r) for r in regs],
        loading=store.loading,
    )


@router.get("/registrations/me", response_model=RegistrationListOut)
async def my_registrations(store: RegistrationStore = Depends(get_loaded_store)):
    return registration_list(store.user_registrations, store)


@router.get("/registrations", response_model=RegistrationListOut)
async def every_registration(store: RegistrationStore = Depends(get_loaded_store)):
    # empty unless the caller is an organizer
    return registration_list(store.all_registrations, store)


@router.post("/events/{event_id}/registrations", response_model=OutcomeOut)
async def register_for_event(event_id: str, response: Response, store: RegistrationStore = Depends(get_store)):
    outcome = await store.register_for_event(event_id)
    return outcome_response(outcome, response)


@router.post("/registrations/{registration_id}/check-in", response_model=OutcomeOut)
async def mark_attendance(registration_id: str, response: Response, store: RegistrationStore = Depends(get_store)):
    outcome = await store.mark_attendance(registration_id)
    return outcome_response(outcome, response)


@router.get("/events/{event_id}/registration-status", response_model=RegistrationStatusOut)
async def registration_status(event_id: str, store: RegistrationStore = Depends(get_loaded_store)):
    return RegistrationStatusOut(eventId=event_id, registered=store.is_user_registered(event_id))
