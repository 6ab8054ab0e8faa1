from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool
from openpyxl import Workbook
from io import BytesIO
from datetime import datetime
import smtplib
from email.message import EmailMessage

from ..config import settings
from ..deps import get_loaded_store, require_organizer
from ..models import Identity, Registration
from ..store import RegistrationStore

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def build_excel(rows: list[Registration]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Attendance"

    ws.append(["Registration ID", "User ID", "Event ID", "Registered At", "Checked In", "Checked In At"])

    for r in rows:
        ws.append([
            r.id,
            r.user_id,
            r.event_id,
            r.registration_date,
            "Yes" if r.checked_in else "No",
            r.checked_in_at or "",
        ])

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def send_email(xlsx_bytes: bytes, event_id: str, total: int, checked_in: int):
    if not all([settings.smtp_host, settings.smtp_user, settings.smtp_pass, settings.export_to_email]):
        raise RuntimeError("Missing SMTP_HOST/SMTP_USER/SMTP_PASS/EXPORT_TO_EMAIL in env")

    msg = EmailMessage()
    msg["Subject"] = f"Attendance for event {event_id} ({checked_in}/{total} checked in)"
    msg["From"] = f"{settings.smtp_from_name} <{settings.smtp_user}>"
    msg["To"] = settings.export_to_email

    msg.set_content(f"Attached: attendance export. Registrations: {total}, checked in: {checked_in}")

    filename = f"attendance_{event_id}_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"
    msg.add_attachment(
        xlsx_bytes,
        maintype="application",
        subtype="vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        filename=filename,
    )

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as server:
        server.starttls()
        server.login(settings.smtp_user, settings.smtp_pass)
        server.send_message(msg)


def event_rows(store: RegistrationStore, event_id: str) -> list[Registration]:
    rows = [r for r in store.all_registrations if r.event_id == event_id]
    return sorted(rows, key=lambda r: r.registration_date)


@router.get("/events/{event_id}/attendance.xlsx")
async def export_attendance(
    event_id: str,
    organizer: Identity = Depends(require_organizer),
    store: RegistrationStore = Depends(get_loaded_store),
):
    rows = event_rows(store, event_id)
    xlsx_bytes = build_excel(rows)
    headers = {"Content-Disposition": f'attachment; filename="attendance_{event_id}.xlsx"'}
    return StreamingResponse(iter([xlsx_bytes]), media_type=XLSX_MEDIA_TYPE, headers=headers)


@router.post("/events/{event_id}/attendance/email")
async def email_attendance(
    event_id: str,
    organizer: Identity = Depends(require_organizer),
    store: RegistrationStore = Depends(get_loaded_store),
):
    rows = event_rows(store, event_id)
    if not rows:
        raise HTTPException(status_code=404, detail="No registrations found for this event")

    checked_in = sum(1 for r in rows if r.checked_in)
    xlsx_bytes = build_excel(rows)
    try:
        await run_in_threadpool(send_email, xlsx_bytes, event_id, total=len(rows), checked_in=checked_in)
    except RuntimeError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except smtplib.SMTPException as e:
        raise HTTPException(status_code=502, detail=f"SMTP error: {str(e)}")

    return {"status": "sent", "to": settings.export_to_email, "count": len(rows), "checkedIn": checked_in}
