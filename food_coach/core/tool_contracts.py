from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from food_coach.core.time_utils import to_local_naive

REPORT_TIME_PATTERN = r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

GOALS = ("fat_loss", "muscle_gain", "maintenance", "general")
TONES = ("friendly", "clinical", "funny")
FOCUS_AREAS = ("protein", "veggies", "carbs", "late_eating", "home_cooking")

Goal = Literal["fat_loss", "muscle_gain", "maintenance", "general"]
Tone = Literal["friendly", "clinical", "funny"]
FocusArea = Literal["protein", "veggies", "carbs", "late_eating", "home_cooking"]


ROUTING_SYSTEM_PROMPT = """
You are a WhatsApp Food Coach. Decide which single tool to call based on the user message.

Rules:
- Use `set_preferences` for goals, tone, reportTime, focus, dietary restrictions, or privacy settings.
- Use `log_meal` for any meal description; include `when` if the message implies timing.
- Use `request_summary` for daily/weekly report requests.
- If nothing matches, use `ask_coach` for general nutrition advice.
- Keep answers short (<= 2 lines) when sending plain text (ask_coach).
- Normalize values (e.g., '10 pm' -> '22:00'; 'lose weight' -> goal='fat_loss').
- Do not invent unavailable data. Prefer tool calls with well-formed arguments.

Examples:
- "set my goal to lose weight" -> set_preferences with goal="fat_loss"
- "I want reports at 9pm" -> set_preferences with reportTime="21:00"
- "focus on protein and veggies" -> set_preferences with focus=["protein","veggies"]
- "I ate chicken and rice at lunch" -> log_meal with text="chicken and rice at lunch"
- "had pizza yesterday at 8pm" -> log_meal with text="pizza" and when=yesterday 8pm ISO format
- "send my daily report" -> request_summary with period="daily"
- "what should I eat for breakfast?" -> ask_coach with question="what should I eat for breakfast?"

You must call exactly one tool per message.
""".strip()


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True, populate_by_name=True)


class SetPreferencesArgs(ToolArgs):
    goal: Optional[Goal] = None
    tone: Optional[Tone] = None
    report_time: Optional[str] = Field(default=None, alias="reportTime", pattern=REPORT_TIME_PATTERN)
    focus: Optional[list[FocusArea]] = None
    dietary_restrictions: Optional[list[str]] = Field(default=None, alias="dietaryRestrictions")
    store_media: Optional[bool] = Field(default=None, alias="storeMedia")


def parse_iso_datetime(value: str) -> datetime:
    # fromisoformat only accepts a trailing "Z" from 3.11 on.
    if value[-1:] in ("Z", "z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class LogMealArgs(ToolArgs):
    text: str = Field(min_length=1)
    when: Optional[str] = None

    @field_validator("when")
    @classmethod
    def validate_when(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            parse_iso_datetime(value)
        except ValueError as exc:
            raise ValueError("when must be an ISO-8601 datetime") from exc
        return value

    def meal_time(self, default: datetime) -> datetime:
        if not self.when:
            return default
        return to_local_naive(parse_iso_datetime(self.when))


class RequestSummaryArgs(ToolArgs):
    period: Literal["daily", "weekly"]
    date: Optional[str] = Field(default=None, pattern=DATE_PATTERN)

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            date.fromisoformat(value)
        return value

    def summary_date(self, default: date) -> date:
        return date.fromisoformat(self.date) if self.date else default


class AskCoachArgs(ToolArgs):
    question: str = Field(min_length=1)


@dataclass(frozen=True)
class ToolContract:
    name: str
    description: str
    args_model: type[ToolArgs]
    parameters: dict[str, Any]

    def as_openai_tool(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


TOOL_CONTRACTS: dict[str, ToolContract] = {
    "set_preferences": ToolContract(
        name="set_preferences",
        description="Update user coaching preferences",
        args_model=SetPreferencesArgs,
        parameters={
            "type": "object",
            "properties": {
                "goal": {"type": "string", "enum": list(GOALS), "description": "User's fitness goal"},
                "tone": {"type": "string", "enum": list(TONES), "description": "Communication tone preference"},
                "reportTime": {
                    "type": "string",
                    "pattern": REPORT_TIME_PATTERN,
                    "description": "Daily report time in HH:mm format (24-hour)",
                },
                "focus": {
                    "type": "array",
                    "items": {"type": "string", "enum": list(FOCUS_AREAS)},
                    "description": "Areas of nutritional focus",
                },
                "dietaryRestrictions": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Dietary restrictions or allergies",
                },
                "storeMedia": {"type": "boolean", "description": "Whether to store media files"},
            },
            "additionalProperties": False,
        },
    ),
    "log_meal": ToolContract(
        name="log_meal",
        description="Log a meal from free text description",
        args_model=LogMealArgs,
        parameters={
            "type": "object",
            "properties": {
                "text": {"type": "string", "description": "The meal description text"},
                "when": {
                    "type": "string",
                    "description": "ISO 8601 datetime when the meal was consumed (optional, defaults to now)",
                },
            },
            "required": ["text"],
            "additionalProperties": False,
        },
    ),
    "request_summary": ToolContract(
        name="request_summary",
        description="Request a concise nutrition summary",
        args_model=RequestSummaryArgs,
        parameters={
            "type": "object",
            "properties": {
                "period": {"type": "string", "enum": ["daily", "weekly"], "description": "Summary time period"},
                "date": {
                    "type": "string",
                    "pattern": DATE_PATTERN,
                    "description": "Date for the summary in YYYY-MM-DD format (optional, defaults to today)",
                },
            },
            "required": ["period"],
            "additionalProperties": False,
        },
    ),
    "ask_coach": ToolContract(
        name="ask_coach",
        description="General Q&A when no structured tool fits",
        args_model=AskCoachArgs,
        parameters={
            "type": "object",
            "properties": {"question": {"type": "string", "description": "The user's question or request"}},
            "required": ["question"],
            "additionalProperties": False,
        },
    ),
}


def openai_tools() -> list[dict[str, Any]]:
    return [contract.as_openai_tool() for contract in TOOL_CONTRACTS.values()]
