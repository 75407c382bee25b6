from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from food_coach.core.tool_contracts import (
    TOOL_CONTRACTS,
    AskCoachArgs,
    LogMealArgs,
    RequestSummaryArgs,
    SetPreferencesArgs,
    openai_tools,
    parse_iso_datetime,
)


def test_exactly_four_tools_are_exposed() -> None:
    names = [tool["function"]["name"] for tool in openai_tools()]
    assert names == ["set_preferences", "log_meal", "request_summary", "ask_coach"]
    assert set(TOOL_CONTRACTS) == set(names)


def test_set_preferences_accepts_camel_case_subset() -> None:
    args = SetPreferencesArgs.model_validate({"reportTime": "9:05", "focus": ["protein", "veggies"]})
    assert args.report_time == "9:05"
    assert args.focus == ["protein", "veggies"]
    assert args.goal is None


@pytest.mark.parametrize(
    "payload",
    [
        {"goal": "bulk"},
        {"tone": "sarcastic"},
        {"reportTime": "24:00"},
        {"focus": ["sugar"]},
        {"storeMedia": "yes"},
        {"goal": "fat_loss", "unexpected": 1},
    ],
)
def test_set_preferences_rejects_bad_values(payload: dict) -> None:
    with pytest.raises(ValidationError):
        SetPreferencesArgs.model_validate(payload)


def test_log_meal_requires_text_and_iso_when() -> None:
    with pytest.raises(ValidationError):
        LogMealArgs.model_validate({"text": ""})
    with pytest.raises(ValidationError):
        LogMealArgs.model_validate({"text": "pizza", "when": "last night"})
    args = LogMealArgs.model_validate({"text": "pizza", "when": "2024-03-04T20:00:00"})
    assert args.meal_time(datetime(2024, 3, 5, 9, 0)) == datetime(2024, 3, 4, 20, 0)


def test_log_meal_accepts_utc_z_suffix() -> None:
    args = LogMealArgs.model_validate({"text": "pasta", "when": "2024-06-01T20:00:00Z"})
    expected = datetime(2024, 6, 1, 20, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert args.meal_time(datetime(2024, 6, 2, 9, 0)) == expected
    assert parse_iso_datetime("2024-06-01T20:00:00z").tzinfo == timezone.utc


def test_log_meal_defaults_to_message_time() -> None:
    stamp = datetime(2024, 3, 5, 9, 0)
    assert LogMealArgs.model_validate({"text": "toast"}).meal_time(stamp) == stamp


def test_request_summary_contract() -> None:
    args = RequestSummaryArgs.model_validate({"period": "daily", "date": "2024-02-29"})
    assert args.summary_date(date(2024, 3, 5)) == date(2024, 2, 29)
    with pytest.raises(ValidationError):
        RequestSummaryArgs.model_validate({"period": "monthly"})
    with pytest.raises(ValidationError):
        RequestSummaryArgs.model_validate({"period": "daily", "date": "2024-02-30"})


def test_ask_coach_requires_question() -> None:
    with pytest.raises(ValidationError):
        AskCoachArgs.model_validate({})
    assert AskCoachArgs.model_validate({"question": "water?"}).question == "water?"
