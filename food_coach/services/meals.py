import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from food_coach.core.config import MEAL_ANALYSIS_STRATEGY
from food_coach.core.hints import generate_analysis_hint, generate_hint
from food_coach.core.messages import MESSAGES
from food_coach.core.meal_tagger import tag_meal_text
from food_coach.core.time_utils import day_bounds, now, time_of_day
from food_coach.db.models import Meal, User
from food_coach.services.meal_analyzer import MealAnalyzer
from food_coach.services.preferences import focus_list

logger = logging.getLogger("uvicorn.error")

KEYWORD_STRATEGY = "keyword"
LLM_STRATEGY = "llm"
MIN_PROTEIN_GRAMS = 15


@dataclass
class MealSignals:
    protein: bool
    veggies: bool
    junk: bool
    late: bool


@dataclass
class MealStats:
    total_meals: int
    late_meals: int
    veggie_ratio: float
    protein_ratio: float
    junk_ratio: float


@dataclass
class LoggedMeal:
    meal: Meal
    hint: str
    analyzed: bool


def load_tags(meal: Meal) -> dict[str, Any]:
    try:
        tags = json.loads(meal.tags_json or "{}")
    except json.JSONDecodeError:
        logger.warning("meal_tags_unreadable meal_id=%s", meal.id)
        return {}
    return tags if isinstance(tags, dict) else {}


def meal_signals(meal: Meal) -> Optional[MealSignals]:
    """Reduce either stored shape (keyword tags or LLM analysis) to summary signals."""
    tags = load_tags(meal)
    if not tags:
        return None
    if "categories" in tags:
        categories = tags.get("categories") or {}
        protein = (tags.get("nutrition") or {}).get("protein_g") or {}
        return MealSignals(
            protein=float(protein.get("min") or 0) >= MIN_PROTEIN_GRAMS,
            veggies=bool((categories.get("veggies") or {}).get("value")),
            junk=bool((categories.get("junk") or {}).get("value")),
            late=time_of_day(meal.created_at.hour) == "late",
        )
    return MealSignals(
        protein=bool(tags.get("protein")),
        veggies=bool(tags.get("veggies")),
        junk=bool(tags.get("junk")),
        late=tags.get("timeOfDay") == "late",
    )


def create_meal(
    db: Session,
    user_id: int,
    raw_text: str,
    tags: dict[str, Any],
    source_type: str = "TEXT",
    created_at: Optional[datetime] = None,
) -> Meal:
    meal = Meal(
        user_id=user_id,
        raw_text=raw_text,
        source_type=source_type,
        tags_json=json.dumps(tags, ensure_ascii=False),
        created_at=created_at or now(),
    )
    db.add(meal)
    db.commit()
    db.refresh(meal)
    logger.info("meal_logged user_id=%s meal_id=%s source=%s", user_id, meal.id, source_type)
    return meal


def meals_in_range(db: Session, user_id: int, start: datetime, end: datetime) -> list[Meal]:
    return (
        db.query(Meal)
        .filter(Meal.user_id == user_id, Meal.created_at >= start, Meal.created_at <= end)
        .order_by(Meal.created_at.desc(), Meal.id.desc())
        .all()
    )


def todays_meals(db: Session, user_id: int, today: Optional[date] = None) -> list[Meal]:
    start, end = day_bounds(today or now().date())
    return meals_in_range(db, user_id, start, end)


def compute_stats(meals: list[Meal]) -> MealStats:
    signals = [s for s in (meal_signals(meal) for meal in meals) if s is not None]
    tagged = len(signals)

    def ratio(count: int) -> float:
        return count / tagged if tagged else 0.0

    return MealStats(
        total_meals=len(meals),
        late_meals=sum(1 for s in signals if s.late),
        veggie_ratio=ratio(sum(1 for s in signals if s.veggies)),
        protein_ratio=ratio(sum(1 for s in signals if s.protein)),
        junk_ratio=ratio(sum(1 for s in signals if s.junk)),
    )


def meal_stats(db: Session, user_id: int, start: datetime, end: datetime) -> MealStats:
    return compute_stats(meals_in_range(db, user_id, start, end))


def generate_meal_hint(user: User, tags: dict[str, Any], current_hour: Optional[int] = None) -> str:
    prefs = user.preferences
    if prefs is None:
        return MESSAGES["meal_logged_plain"]
    return generate_hint(prefs.goal, prefs.tone, focus_list(prefs), tags, current_hour=current_hour)


class MealService:
    def __init__(
        self,
        db: Session,
        analyzer: Optional[MealAnalyzer] = None,
        strategy: str = MEAL_ANALYSIS_STRATEGY,
    ):
        self.db = db
        self.analyzer = analyzer
        self.strategy = strategy if analyzer is not None else KEYWORD_STRATEGY
        if strategy == LLM_STRATEGY and analyzer is None:
            logger.warning("meal_strategy_downgraded reason=no_analyzer")

    def log_meal(
        self,
        user: User,
        text: str,
        eaten_at: datetime,
        source_type: str = "TEXT",
        current_hour: Optional[int] = None,
    ) -> LoggedMeal:
        if self.strategy == LLM_STRATEGY:
            analysis = self.analyzer.analyze(text, eaten_at)
            if analysis is None:
                # Keep the meal even when enrichment fails.
                meal = create_meal(self.db, user.id, text, {}, source_type, eaten_at)
                return LoggedMeal(meal=meal, hint=MESSAGES["analysis_unavailable"], analyzed=False)
            meal = create_meal(
                self.db, user.id, text, analysis.model_dump(mode="json", exclude_none=True), source_type, eaten_at
            )
            tone = user.preferences.tone if user.preferences else "friendly"
            return LoggedMeal(meal=meal, hint=generate_analysis_hint(analysis, tone), analyzed=True)

        tags = tag_meal_text(text, eaten_at)
        meal = create_meal(self.db, user.id, text, dict(tags), source_type, eaten_at)
        return LoggedMeal(meal=meal, hint=generate_meal_hint(user, tags, current_hour), analyzed=True)
