import json
import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from food_coach.core.config import OPENAI_MODEL
from food_coach.core.meal_analysis import ANALYZE_MEAL_FUNCTION, CLASSIFICATION_VERSION, MealAnalysis
from food_coach.core.text import truncate_text
from food_coach.core.time_utils import now
from food_coach.services.llm import LLMClient, LLMRequestError

logger = logging.getLogger("uvicorn.error")

MEAL_ANALYSIS_SYSTEM_PROMPT = (
    "You are a nutrition expert analyzing meal descriptions. Extract nutrition estimates with confidence "
    "levels. If you cannot estimate a value reliably, return null for that field rather than guessing. "
    "Use ranges for nutrition values to express uncertainty. Confidence values must be between 0 and 1."
)


def meal_time_label(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 22:
        return "evening"
    return "late night"


class MealAnalyzer:
    def __init__(self, llm_client: LLMClient, model: str = OPENAI_MODEL):
        self.llm_client = llm_client
        self.model = model

    def analyze(self, text: str, eaten_at: Optional[datetime] = None) -> Optional[MealAnalysis]:
        """Return a validated analysis, or None when the model output is unusable."""
        moment = eaten_at or now()
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": MEAL_ANALYSIS_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f'Analyze this meal eaten in the {meal_time_label(moment.hour)}: "{text}"',
                },
            ],
            "tools": [{"type": "function", "function": ANALYZE_MEAL_FUNCTION}],
            "tool_choice": {"type": "function", "function": {"name": ANALYZE_MEAL_FUNCTION["name"]}},
            "temperature": 0.1,
        }
        try:
            message = self.llm_client.chat_completion(payload)
        except LLMRequestError:
            logger.exception("meal_analysis_request_failed text=%s", truncate_text(text))
            return None

        tool_calls = (message or {}).get("tool_calls") or []
        if not tool_calls:
            logger.warning("meal_analysis_missing_tool_call text=%s", truncate_text(text))
            return None
        try:
            raw = json.loads(tool_calls[0].get("function", {}).get("arguments") or "")
            if not isinstance(raw, dict):
                raise ValueError("analysis arguments are not an object")
            raw["model_version"] = self.model
            raw["classification_version"] = CLASSIFICATION_VERSION
            analysis = MealAnalysis.model_validate(raw)
        except (AttributeError, TypeError, ValueError, ValidationError) as exc:
            logger.warning("meal_analysis_invalid text=%s error=%s", truncate_text(text), str(exc)[:220])
            return None
        logger.info("meal_analyzed confidence=%s", analysis.overall_confidence)
        return analysis
