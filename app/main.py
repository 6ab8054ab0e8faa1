from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.routes.registrations import router as registrations_router
from app.routes.events import router as events_router
from app.routes.export_attendance import router as export_router

from .app_logger import get_logger
from .db import ensure_indexes
from .errors import (
    FetchFailure,
    Forbidden,
    InitializationFault,
    RegistrationError,
    Unauthenticated,
    WriteFailure,
)

log = get_logger()

app = FastAPI(title="Event Registration Backend (Mongo)", version="1.0.0")

app.include_router(registrations_router, prefix="/api", tags=["Registrations"])
app.include_router(events_router, prefix="/api", tags=["Events"])
app.include_router(export_router, prefix="/api", tags=["Export"])

ERROR_STATUS_CODES = {
    Unauthenticated: 401,
    Forbidden: 403,
    FetchFailure: 502,
    WriteFailure: 502,
    InitializationFault: 500,
}


@app.exception_handler(RegistrationError)
async def registration_error_handler(request: Request, exc: RegistrationError):
    status_code = next(
        (code for cls, code in ERROR_STATUS_CODES.items() if isinstance(exc, cls)),
        500,
    )
    if status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"error": exc.code, "detail": str(exc)})


@app.on_event("startup")
async def on_startup():
    try:
        await ensure_indexes()
        log.info("Indexes ensured.")
    except Exception as e:
        log.warning("Could not connect to MongoDB/ensure indexes: %s", e)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
