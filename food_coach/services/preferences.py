import json
import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from food_coach.core.tool_contracts import SetPreferencesArgs
from food_coach.db.models import Preferences, User
from food_coach.services.users import default_preferences

logger = logging.getLogger("uvicorn.error")


def preferences_as_dict(prefs: Optional[Preferences]) -> Optional[dict[str, Any]]:
    if prefs is None:
        return None
    return {
        "goal": prefs.goal,
        "tone": prefs.tone,
        "reportTime": prefs.report_time,
        "reportFormat": prefs.report_format,
        "focus": json.loads(prefs.focus_json or "[]"),
        "dietaryRestrictions": json.loads(prefs.dietary_restrictions_json or "[]"),
        "thresholds": json.loads(prefs.thresholds_json or "{}"),
    }


def focus_list(prefs: Optional[Preferences]) -> list[str]:
    if prefs is None:
        return []
    return json.loads(prefs.focus_json or "[]")


def apply_preferences(db: Session, user: User, update: SetPreferencesArgs) -> Preferences:
    """Apply only the fields present in ``update``; omitted fields stay untouched."""
    prefs = user.preferences
    if prefs is None:
        prefs = default_preferences(user.id)
        db.add(prefs)
        user.preferences = prefs

    if update.goal is not None:
        prefs.goal = update.goal
    if update.tone is not None:
        prefs.tone = update.tone
    if update.report_time is not None:
        prefs.report_time = update.report_time
    if update.focus is not None:
        prefs.focus_json = json.dumps(list(update.focus))
    if update.dietary_restrictions is not None:
        prefs.dietary_restrictions_json = json.dumps(list(update.dietary_restrictions))
    if update.store_media is not None:
        user.store_media = update.store_media

    db.commit()
    db.refresh(prefs)
    logger.info(
        "preferences_updated user_id=%s fields=%s",
        user.id,
        ",".join(sorted(update.model_dump(exclude_none=True).keys())),
    )
    return prefs


def describe_update(update: SetPreferencesArgs) -> str:
    parts: list[str] = []
    if update.goal is not None:
        parts.append(f"goal: {update.goal}")
    if update.tone is not None:
        parts.append(f"tone: {update.tone}")
    if update.report_time is not None:
        parts.append(f"report time: {update.report_time}")
    if update.focus is not None:
        parts.append(f"focus: {', '.join(update.focus)}")
    if update.dietary_restrictions is not None:
        parts.append(f"dietary restrictions: {', '.join(update.dietary_restrictions)}")
    if not parts:
        return "✅ Preferences updated"
    return f"✅ Updated: {', '.join(parts)}"
