import json
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from food_coach.core.time_utils import day_bounds, now
from food_coach.db.models import MessageLog

DIRECTION_IN = "IN"
DIRECTION_OUT = "OUT"
DAILY_SUMMARY_TYPE = "daily_summary"


def log_message(
    db: Session,
    user_id: Optional[int],
    direction: str,
    payload: dict[str, Any],
    message_type: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> MessageLog:
    row = MessageLog(
        user_id=user_id,
        direction=direction,
        message_type=message_type,
        payload=json.dumps(payload, ensure_ascii=False, default=str),
        created_at=created_at or now(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def sent_on_day(db: Session, user_id: int, message_type: str, day: date) -> bool:
    start, end = day_bounds(day)
    return (
        db.query(MessageLog.id)
        .filter(
            MessageLog.user_id == user_id,
            MessageLog.direction == DIRECTION_OUT,
            MessageLog.message_type == message_type,
            MessageLog.created_at >= start,
            MessageLog.created_at <= end,
        )
        .first()
        is not None
    )
