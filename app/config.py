import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    mongo_uri: str
    db_name: str
    registrations_collection: str
    events_collection: str
    db_timeout_seconds: float
    log_level: str
    smtp_host: str | None
    smtp_port: int
    smtp_user: str | None
    smtp_pass: str | None
    smtp_from_name: str
    export_to_email: str | None


def load_settings() -> Settings:
    return Settings(
        mongo_uri=os.getenv("MONGO_URI", "mongodb://localhost:27017/event_registration"),
        db_name=os.getenv("DB_NAME", "event_registration"),
        registrations_collection=os.getenv("REGISTRATIONS_COLLECTION", "registrations"),
        events_collection=os.getenv("EVENTS_COLLECTION", "events"),
        db_timeout_seconds=float(os.getenv("DB_TIMEOUT_SECONDS", "10")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        smtp_host=os.getenv("SMTP_HOST"),
        smtp_port=int(os.getenv("SMTP_PORT", "587")),
        smtp_user=os.getenv("SMTP_USER"),
        smtp_pass=os.getenv("SMTP_PASS"),
        smtp_from_name=os.getenv("SMTP_FROM_NAME", "Event Registration Bot"),
        export_to_email=os.getenv("EXPORT_TO_EMAIL"),
    )


settings = load_settings()
