import logging
from typing import Optional

from fastapi import FastAPI

from food_coach.api.debug import router as debug_router
from food_coach.api.webhook import router as webhook_router
from food_coach.core.config import APP_ENV, APP_VERSION, missing_settings, scheduler_enabled
from food_coach.core.time_utils import now
from food_coach.db.session import create_tables
from food_coach.services.messaging import get_messaging_provider
from food_coach.services.scheduler import ReportScheduler

logger = logging.getLogger("uvicorn.error")

app = FastAPI(title="WhatsApp Food Coach", version=APP_VERSION)
report_scheduler: Optional[ReportScheduler] = None


@app.on_event("startup")
async def on_startup() -> None:
    global report_scheduler
    create_tables()
    missing = missing_settings()
    if missing:
        logger.warning("settings_missing names=%s", ",".join(missing))
    if scheduler_enabled():
        report_scheduler = ReportScheduler(get_messaging_provider())
        report_scheduler.start()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    if report_scheduler is not None:
        await report_scheduler.stop()


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {
        "status": "healthy",
        "timestamp": now().isoformat(),
        "version": APP_VERSION,
        "environment": APP_ENV,
    }


app.include_router(webhook_router)
app.include_router(debug_router)
