import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from food_coach.core.time_utils import parse_time_string
from food_coach.db.models import User
from food_coach.db.session import SessionLocal
from food_coach.services.message_log import DAILY_SUMMARY_TYPE, sent_on_day
from food_coach.services.messaging import MessagingProvider
from food_coach.services.summary import send_daily_summary
from food_coach.services.users import get_user_by_id, users_for_reports

logger = logging.getLogger("uvicorn.error")


def report_due(user: User, at: datetime) -> bool:
    """True when the user's report time is exactly the current wall-clock minute."""
    if user.preferences is None:
        return False
    hour, minute = parse_time_string(user.preferences.report_time)
    return at.hour == hour and at.minute == minute


def trigger_daily_report(
    db: Session,
    provider: MessagingProvider,
    user_id: int,
    at: Optional[datetime] = None,
) -> bool:
    """Send a user's report immediately, skipping the time match and the once-a-day check."""
    user = get_user_by_id(db, user_id)
    if user is None:
        raise LookupError(f"User {user_id} not found")
    logger.info("daily_report_manual_trigger user_id=%s", user_id)
    return send_daily_summary(db, provider, user, at)


class ReportScheduler:
    """Once-a-minute loop that sends each user's daily report at their configured time.

    Matching is on the exact minute. A tick that does not run during a user's
    minute (process paused or down) skips that user's report until the next day.
    """

    def __init__(
        self,
        provider: MessagingProvider,
        session_factory: Callable[[], Session] = SessionLocal,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.provider = provider
        self.session_factory = session_factory
        self.clock = clock
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            logger.warning("report_scheduler_already_running")
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.info("report_scheduler_started")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("report_scheduler_stopped")

    def _seconds_to_next_minute(self) -> float:
        current = self.clock()
        next_minute = current.replace(second=0, microsecond=0) + timedelta(minutes=1)
        return max(0.0, (next_minute - current).total_seconds())

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._seconds_to_next_minute())
            try:
                await asyncio.to_thread(self.run_tick)
            except Exception:
                logger.exception("report_scheduler_tick_failed")

    def run_tick(self, at: Optional[datetime] = None) -> list[int]:
        """Run one scheduling pass and return the ids of users a report was sent to."""
        moment = at or self.clock()
        sent: list[int] = []
        db = self.session_factory()
        try:
            for user in users_for_reports(db):
                try:
                    if not report_due(user, moment):
                        continue
                    if sent_on_day(db, user.id, DAILY_SUMMARY_TYPE, moment.date()):
                        logger.info("daily_report_already_sent user_id=%s", user.id)
                        continue
                    if send_daily_summary(db, self.provider, user, moment):
                        sent.append(user.id)
                except Exception:
                    db.rollback()
                    logger.exception("daily_report_failed user_id=%s", user.id)
        finally:
            db.close()
        if sent:
            logger.info("report_scheduler_tick sent=%s", len(sent))
        return sent
