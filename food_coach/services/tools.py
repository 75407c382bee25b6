import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from food_coach.core.coach import generate_advice
from food_coach.core.messages import MESSAGES
from food_coach.core.tool_contracts import (
    AskCoachArgs,
    LogMealArgs,
    RequestSummaryArgs,
    SetPreferencesArgs,
    ToolArgs,
)
from food_coach.db.models import User
from food_coach.services.meals import MealService
from food_coach.services.preferences import apply_preferences, describe_update
from food_coach.services.summary import compose_daily_summary, format_summary_text, user_tone

logger = logging.getLogger("uvicorn.error")


@dataclass
class ToolResponse:
    text: str
    type: str


@dataclass
class ToolContext:
    db: Session
    user: User
    message_timestamp: datetime
    source_type: str = "TEXT"
    current_hour: Optional[int] = None


class ToolHandler:
    name: str = ""
    args_model: type[ToolArgs] = ToolArgs
    failure_message: str = MESSAGES["unknown_tool"]

    def handle(self, args: Any, ctx: ToolContext) -> ToolResponse:
        raise NotImplementedError

    def run(self, raw_args: dict[str, Any], ctx: ToolContext) -> ToolResponse:
        try:
            args = self.args_model.model_validate(raw_args)
        except ValidationError as exc:
            logger.warning(
                "tool_args_invalid tool=%s user_id=%s errors=%s", self.name, ctx.user.id, exc.error_count()
            )
            return ToolResponse(text=self.failure_message, type="error")
        return self.handle(args, ctx)


class SetPreferencesHandler(ToolHandler):
    name = "set_preferences"
    args_model = SetPreferencesArgs
    failure_message = MESSAGES["preference_update_failed"]

    def handle(self, args: SetPreferencesArgs, ctx: ToolContext) -> ToolResponse:
        apply_preferences(ctx.db, ctx.user, args)
        return ToolResponse(text=describe_update(args), type="preference_update")


class LogMealHandler(ToolHandler):
    name = "log_meal"
    args_model = LogMealArgs
    failure_message = MESSAGES["meal_log_failed"]

    def __init__(self, meal_service_factory):
        self.meal_service_factory = meal_service_factory

    def handle(self, args: LogMealArgs, ctx: ToolContext) -> ToolResponse:
        service: MealService = self.meal_service_factory(ctx.db)
        logged = service.log_meal(
            ctx.user,
            args.text,
            args.meal_time(ctx.message_timestamp),
            source_type=ctx.source_type,
            current_hour=ctx.current_hour,
        )
        return ToolResponse(text=logged.hint, type="meal_logged")


class RequestSummaryHandler(ToolHandler):
    name = "request_summary"
    args_model = RequestSummaryArgs
    failure_message = MESSAGES["summary_failed"]

    def handle(self, args: RequestSummaryArgs, ctx: ToolContext) -> ToolResponse:
        if args.period == "weekly":
            return ToolResponse(text=MESSAGES["weekly_coming_soon"], type="summary")
        summary = compose_daily_summary(ctx.db, ctx.user.id, args.summary_date(ctx.message_timestamp.date()))
        return ToolResponse(text=format_summary_text(summary, user_tone(ctx.user)), type="summary")


class AskCoachHandler(ToolHandler):
    name = "ask_coach"
    args_model = AskCoachArgs
    failure_message = MESSAGES["coach_fallback"]

    def handle(self, args: AskCoachArgs, ctx: ToolContext) -> ToolResponse:
        return ToolResponse(text=generate_advice(args.question), type="coaching_advice")


class ToolDispatcher:
    def __init__(self, meal_service_factory=MealService):
        self.handlers: dict[str, ToolHandler] = {
            handler.name: handler
            for handler in (
                SetPreferencesHandler(),
                LogMealHandler(meal_service_factory),
                RequestSummaryHandler(),
                AskCoachHandler(),
            )
        }

    def execute(
        self,
        tool_name: str,
        args: dict[str, Any],
        db: Session,
        user: User,
        message_timestamp: datetime,
        source_type: str = "TEXT",
        current_hour: Optional[int] = None,
    ) -> ToolResponse:
        handler = self.handlers.get(tool_name)
        if handler is None:
            logger.warning("unknown_tool tool=%s user_id=%s", tool_name, user.id)
            return ToolResponse(text=MESSAGES["unknown_tool"], type="unknown_tool")
        logger.info("tool_dispatched tool=%s user_id=%s", tool_name, user.id)
        ctx = ToolContext(
            db=db,
            user=user,
            message_timestamp=message_timestamp,
            source_type=source_type,
            current_hour=current_hour,
        )
        return handler.run(args, ctx)
