import json
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from food_coach.core.config import (
    DEFAULT_GOAL,
    DEFAULT_LANGUAGE,
    DEFAULT_REPORT_FORMAT,
    DEFAULT_REPORT_TIME,
    DEFAULT_THRESHOLDS,
    DEFAULT_TONE,
)
from food_coach.db.models import Preferences, User

logger = logging.getLogger("uvicorn.error")


def default_preferences(user_id: Optional[int] = None) -> Preferences:
    return Preferences(
        user_id=user_id,
        goal=DEFAULT_GOAL,
        tone=DEFAULT_TONE,
        report_time=DEFAULT_REPORT_TIME,
        report_format=DEFAULT_REPORT_FORMAT,
        focus_json="[]",
        dietary_restrictions_json="[]",
        thresholds_json=json.dumps(DEFAULT_THRESHOLDS),
    )


def get_user_by_phone(db: Session, phone: str) -> Optional[User]:
    return db.query(User).filter(User.phone == phone).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def get_or_create_user(db: Session, phone: str, language: str = DEFAULT_LANGUAGE) -> User:
    user = get_user_by_phone(db, phone)
    if user:
        return user

    user = User(phone=phone, language=language)
    user.preferences = default_preferences()
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Another request created the same phone first.
        db.rollback()
        existing = get_user_by_phone(db, phone)
        if existing is None:
            raise
        return existing
    db.refresh(user)
    logger.info("user_created user_id=%s", user.id)
    return user


def users_for_reports(db: Session) -> list[User]:
    stmt = select(User).join(Preferences, Preferences.user_id == User.id).order_by(User.id)
    return list(db.scalars(stmt).all())
