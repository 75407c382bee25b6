import json
from datetime import date, datetime

from food_coach.db.models import MessageLog
from food_coach.services.meals import MealStats, create_meal
from food_coach.services.summary import (
    DailySummary,
    compose_daily_summary,
    format_summary_text,
    generate_suggestions,
    send_daily_summary,
)

DAY = date(2024, 3, 5)


def _tags(protein=False, veggies=False, junk=False, time_of_day="noon"):
    return {"protein": protein, "veggies": veggies, "carbs": "medium", "junk": junk, "timeOfDay": time_of_day}


def test_zero_meals_summary(db_session, create_user) -> None:
    user = create_user()
    summary = compose_daily_summary(db_session, user.id, DAY)
    assert summary.meals_count == 0
    assert summary.veggies_ratio == 0
    assert summary.protein_ratio == 0
    assert summary.junk_ratio == 0
    assert summary.suggestions == ["Remember to log your meals tomorrow!"]


def test_summary_scopes_to_calendar_day(db_session, create_user) -> None:
    user = create_user()
    create_meal(db_session, user.id, "eggs and spinach", _tags(protein=True, veggies=True), created_at=datetime(2024, 3, 5, 0, 0))
    create_meal(db_session, user.id, "chicken salad", _tags(protein=True, veggies=True), created_at=datetime(2024, 3, 5, 23, 59, 59))
    create_meal(db_session, user.id, "late pizza", _tags(junk=True), created_at=datetime(2024, 3, 6, 0, 0))
    summary = compose_daily_summary(db_session, user.id, DAY)
    assert summary.meals_count == 2
    assert summary.veggies_ratio == 1.0
    assert summary.suggestions == ["Great job maintaining balanced nutrition today!"]


def test_all_rules_fire_in_order(db_session, create_user) -> None:
    user = create_user()
    create_meal(db_session, user.id, "burger", _tags(junk=True, time_of_day="late"), created_at=datetime(2024, 3, 5, 22, 0))
    create_meal(db_session, user.id, "fries", _tags(junk=True), created_at=datetime(2024, 3, 5, 13, 0))
    summary = compose_daily_summary(db_session, user.id, DAY)
    assert summary.late_meals_count == 1
    assert summary.suggestions == [
        "Try eating earlier - late meals can affect sleep quality",
        "Add more vegetables to your meals for better nutrition",
        "Include protein in more meals for better satiety",
        "Reduce processed foods - aim for whole foods instead",
    ]


def test_untagged_meals_count_but_do_not_skew_ratios(db_session, create_user) -> None:
    user = create_user()
    create_meal(db_session, user.id, "salad with tuna", _tags(protein=True, veggies=True), created_at=datetime(2024, 3, 5, 12, 0))
    create_meal(db_session, user.id, "unknown", {}, created_at=datetime(2024, 3, 5, 13, 0))
    summary = compose_daily_summary(db_session, user.id, DAY)
    assert summary.meals_count == 2
    assert summary.veggies_ratio == 1.0
    assert summary.protein_ratio == 1.0


def test_analysis_shaped_meals_are_understood(db_session, create_user) -> None:
    user = create_user()
    analysis = {
        "nutrition": {"protein_g": {"min": 25, "max": 35, "confidence": 0.8}},
        "categories": {
            "veggies": {"value": False, "confidence": 0.9},
            "junk": {"value": True, "confidence": 0.8},
            "homemade": {"value": False, "confidence": 0.5},
        },
    }
    create_meal(db_session, user.id, "double cheeseburger", analysis, created_at=datetime(2024, 3, 5, 22, 30))
    summary = compose_daily_summary(db_session, user.id, DAY)
    assert summary.protein_ratio == 1.0
    assert summary.junk_ratio == 1.0
    assert summary.late_meals_count == 1


def test_boundaries_of_suggestion_thresholds() -> None:
    stats = MealStats(total_meals=2, late_meals=0, veggie_ratio=0.5, protein_ratio=0.6, junk_ratio=0.3)
    assert generate_suggestions(stats) == ["Great job maintaining balanced nutrition today!"]


def test_format_by_tone() -> None:
    summary = DailySummary(
        date="2024-03-05",
        meals_count=3,
        late_meals_count=1,
        veggies_ratio=2 / 3,
        protein_ratio=0.125,
        junk_ratio=0.0,
        suggestions=["Try eating earlier - late meals can affect sleep quality"],
    )
    friendly = format_summary_text(summary, "friendly")
    assert friendly == (
        "🌟 Daily Summary - 2024-03-05\n\n"
        "Meals logged: 3\n"
        "Late meals: 1\n"
        "Veggie meals: 67%\n"
        "Protein meals: 13%\n\n"
        "💡 Tips:\n"
        "• Try eating earlier - late meals can affect sleep quality"
    )
    assert format_summary_text(summary, "clinical").startswith("📊 Daily Nutrition Report - 2024-03-05")
    assert "💡 Recommendations:" in format_summary_text(summary, "clinical")
    assert format_summary_text(summary, "funny").startswith("🎭 Your Food Adventures Today!")


def test_format_zero_meals() -> None:
    summary = DailySummary("2024-03-05", 0, 0, 0.0, 0.0, 0.0, ["Remember to log your meals tomorrow!"])
    assert "No meals logged today." in format_summary_text(summary, "friendly")
    assert "Did you forget to eat?" in format_summary_text(summary, "funny")
    assert "Meals logged" not in format_summary_text(summary, "clinical")


def test_send_daily_summary_logs_marker(db_session, create_user, fake_provider) -> None:
    user = create_user(tone="funny")
    moment = datetime(2024, 3, 5, 21, 30)
    assert send_daily_summary(db_session, fake_provider, user, moment) is True
    assert fake_provider.texts_to(user.phone)[0].startswith("🎭 Your Food Adventures Today!")

    row = db_session.query(MessageLog).filter(MessageLog.user_id == user.id).one()
    assert (row.direction, row.message_type, row.created_at) == ("OUT", "daily_summary", moment)
    assert json.loads(row.payload)["type"] == "daily_summary"


def test_failed_delivery_writes_no_marker(db_session, create_user, fake_provider) -> None:
    user = create_user()
    fake_provider.fail_for.add(user.phone)
    assert send_daily_summary(db_session, fake_provider, user, datetime(2024, 3, 5, 21, 30)) is False
    assert db_session.query(MessageLog).filter(MessageLog.user_id == user.id).count() == 0
