import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Optional

from sqlalchemy.orm import Session

from food_coach.core.time_utils import day_bounds, now
from food_coach.db.models import User
from food_coach.services.meals import MealStats, meal_stats
from food_coach.services.message_log import DAILY_SUMMARY_TYPE, DIRECTION_OUT, log_message
from food_coach.services.messaging import MessagingProvider, OutgoingMessage

logger = logging.getLogger("uvicorn.error")

NO_MEALS_SUGGESTION = "Remember to log your meals tomorrow!"
BALANCED_SUGGESTION = "Great job maintaining balanced nutrition today!"

# Evaluated in order; every matching rule contributes its suggestion.
SUGGESTION_RULES = [
    (lambda s: s.late_meals > 0, "Try eating earlier - late meals can affect sleep quality"),
    (lambda s: s.veggie_ratio < 0.5, "Add more vegetables to your meals for better nutrition"),
    (lambda s: s.protein_ratio < 0.6, "Include protein in more meals for better satiety"),
    (lambda s: s.junk_ratio > 0.3, "Reduce processed foods - aim for whole foods instead"),
]


@dataclass
class DailySummary:
    date: str
    meals_count: int
    late_meals_count: int
    veggies_ratio: float
    protein_ratio: float
    junk_ratio: float
    suggestions: list[str] = field(default_factory=list)

    def as_payload(self) -> dict:
        return asdict(self)


def generate_suggestions(stats: MealStats) -> list[str]:
    if stats.total_meals == 0:
        return [NO_MEALS_SUGGESTION]
    suggestions = [text for rule, text in SUGGESTION_RULES if rule(stats)]
    return suggestions or [BALANCED_SUGGESTION]


def compose_daily_summary(db: Session, user_id: int, day: date) -> DailySummary:
    start, end = day_bounds(day)
    stats = meal_stats(db, user_id, start, end)
    summary = DailySummary(
        date=start.date().isoformat(),
        meals_count=stats.total_meals,
        late_meals_count=stats.late_meals,
        veggies_ratio=stats.veggie_ratio,
        protein_ratio=stats.protein_ratio,
        junk_ratio=stats.junk_ratio,
        suggestions=generate_suggestions(stats),
    )
    logger.info("daily_summary_composed user_id=%s date=%s meals=%s", user_id, summary.date, summary.meals_count)
    return summary


def _percent(ratio: float) -> int:
    return int(ratio * 100 + 0.5)


def format_summary_text(summary: DailySummary, tone: str) -> str:
    if tone == "clinical":
        lines = [f"📊 Daily Nutrition Report - {summary.date}", ""]
    elif tone == "funny":
        lines = ["🎭 Your Food Adventures Today!", ""]
    else:
        lines = [f"🌟 Daily Summary - {summary.date}", ""]

    if summary.meals_count == 0:
        lines.append("Did you forget to eat? That's one way to fast! 😅" if tone == "funny" else "No meals logged today.")
    else:
        lines.append(f"Meals logged: {summary.meals_count}")
        if summary.late_meals_count > 0:
            lines.append(f"Late meals: {summary.late_meals_count}")
        lines.append(f"Veggie meals: {_percent(summary.veggies_ratio)}%")
        lines.append(f"Protein meals: {_percent(summary.protein_ratio)}%")

    if summary.suggestions:
        lines.append("")
        lines.append(f"💡 {'Recommendations' if tone == 'clinical' else 'Tips'}:")
        lines.extend(f"• {suggestion}" for suggestion in summary.suggestions)

    return "\n".join(lines).strip()


def user_tone(user: User) -> str:
    return user.preferences.tone if user.preferences else "friendly"


def send_daily_summary(
    db: Session,
    provider: MessagingProvider,
    user: User,
    at: Optional[datetime] = None,
) -> bool:
    """Compose, send and log today's report; returns False when delivery fails."""
    moment = at or now()
    summary = compose_daily_summary(db, user.id, moment.date())
    text = format_summary_text(summary, user_tone(user))

    result = provider.send_text(OutgoingMessage(to=user.phone, text=text))
    if not result.success:
        logger.error("daily_summary_send_failed user_id=%s error=%s", user.id, result.error)
        return False

    # This row doubles as the once-per-day marker for the scheduler.
    log_message(
        db,
        user.id,
        DIRECTION_OUT,
        {"type": DAILY_SUMMARY_TYPE, "text": text, "summary": summary.as_payload(), "messageId": result.message_id},
        message_type=DAILY_SUMMARY_TYPE,
        created_at=moment,
    )
    logger.info("daily_summary_sent user_id=%s message_id=%s", user.id, result.message_id)
    return True
