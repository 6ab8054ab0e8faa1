from bson import ObjectId
from fastapi import APIRouter, Depends

from ..app_logger import get_logger
from ..config import settings
from ..db import DocumentDatabase
from ..deps import get_database, require_organizer
from ..errors import FetchFailure, WriteFailure
from ..models import Event, Identity, now_iso
from ..schemas import EventIn

router = APIRouter()
log = get_logger("events")


@router.post("/events", status_code=201)
async def create_event(
    payload: EventIn,
    organizer: Identity = Depends(require_organizer),
    db: DocumentDatabase = Depends(get_database),
):
    event = Event(
        id=str(ObjectId()),
        title=payload.title.strip(),
        description=payload.description.strip(),
        date=payload.date,
        time=payload.time,
        end_time=payload.endTime,
        location=payload.location.strip(),
        category=payload.category.strip(),
        organizer=payload.organizer,
        created_by=organizer.id,
        created_at=now_iso(),
    )
    try:
        await db.put(settings.events_collection, event.id, event.to_document())
    except Exception as e:
        log.error("Error creating event %r: %r", event.title, e)
        raise WriteFailure("Failed to create event. Please try again.", cause=e)
    log.info("Event %s created by %s", event.id, organizer.id)
    return event.to_document()


@router.get("/events")
async def list_events(db: DocumentDatabase = Depends(get_database)):
    try:
        docs = await db.get_all(settings.events_collection)
    except Exception as e:
        log.error("Error fetching events: %r", e)
        raise FetchFailure("Failed to load events.", cause=e)
    return sorted(docs, key=lambda d: (d.get("date", ""), d.get("time", "")))
