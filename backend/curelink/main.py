import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import inspect

from curelink import models  # noqa: F401  registers tables on Base.metadata
from curelink.auth.routes import router as auth_router
from curelink.config.settings import get_settings
from curelink.db import Base, SessionLocal, engine
from curelink.medications import process_due_reminders
from curelink.routes.ai_routes import router as ai_router
from curelink.routes.appointment_routes import router as appointment_router
from curelink.routes.cart_routes import router as cart_router
from curelink.routes.directory_routes import router as directory_router
from curelink.routes.doctor_routes import router as doctor_router
from curelink.routes.medication_routes import router as medication_router
from curelink.routes.medicine_routes import router as medicine_router
from curelink.routes.notification_routes import router as notification_router
from curelink.routes.order_routes import router as order_router
from curelink.routes.patient_routes import router as patient_router
from curelink.routes.profile_routes import router as profile_router
from curelink.routes.record_routes import router as record_router
from curelink.routes.speech_routes import router as speech_router

_logger = logging.getLogger(__name__)


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _env_flag(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _assert_schema_ready() -> None:
    inspector = inspect(engine)
    existing = set(inspector.get_table_names())
    missing = sorted(set(Base.metadata.tables) - existing)
    if not missing:
        return
    raise RuntimeError(
        f"CureLink tables missing: {', '.join(missing)}. "
        "Run `alembic upgrade head` from `backend/` or start with DB_AUTO_CREATE=1."
    )


def init_database() -> None:
    auto_create = _env_flag("DB_AUTO_CREATE", default=(engine.dialect.name == "sqlite"))
    if auto_create:
        Base.metadata.create_all(bind=engine)
    else:
        _assert_schema_ready()


def _run_medication_reminders() -> None:
    db = SessionLocal()
    try:
        process_due_reminders(db)
    except Exception:
        _logger.exception("medication_reminder_job_failed")
    finally:
        db.close()


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_database()
    scheduler = None
    if _env_flag("ENABLE_MEDICATION_REMINDERS", default=False):
        from apscheduler.schedulers.background import BackgroundScheduler

        scheduler = BackgroundScheduler()
        scheduler.add_job(
            _run_medication_reminders,
            "interval",
            seconds=get_settings().reminder_poll_seconds,
            max_instances=1,
        )
        scheduler.start()
    try:
        yield
    finally:
        if scheduler:
            scheduler.shutdown(wait=False)


def _configure_cors(application: FastAPI) -> None:
    origins = _split_csv(os.getenv("CORS_ORIGINS")) or ["http://localhost:3000", "http://127.0.0.1:3000"]
    origin_regex = os.getenv("CORS_ALLOW_ORIGIN_REGEX") or r"^https?://([a-z0-9-]+\.)*localhost(:\d+)?$"
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Values read from `.env` may arrive with doubled backslashes.
        allow_origin_regex=origin_regex.replace("\\\\", "\\"),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_ROUTERS = (
    profile_router,
    directory_router,
    medicine_router,
    cart_router,
    order_router,
    appointment_router,
    doctor_router,
    notification_router,
    record_router,
    medication_router,
    patient_router,
    ai_router,
    speech_router,
)

app = FastAPI(title="CureLink Healthcare Backend", lifespan=lifespan)
_configure_cors(app)

app.include_router(auth_router, prefix="/auth", tags=["Auth"])
for router in _ROUTERS:
    app.include_router(router)


@app.get("/")
def read_root():
    return {"service": "curelink", "status": "ok"}
