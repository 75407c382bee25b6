import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from food_coach.core.config import MEAL_ANALYSIS_STRATEGY
from food_coach.core.messages import MESSAGES
from food_coach.core.text import truncate_text
from food_coach.db.models import User
from food_coach.services.intent_router import IntentRouter, RoutingContext
from food_coach.services.llm import LLMClient
from food_coach.services.meal_analyzer import MealAnalyzer
from food_coach.services.meals import LLM_STRATEGY, MealService
from food_coach.services.media import MediaProcessor
from food_coach.services.message_log import DIRECTION_IN, DIRECTION_OUT, log_message
from food_coach.services.messaging import IncomingMessage, MessagingProvider, OutgoingMessage
from food_coach.services.preferences import focus_list
from food_coach.services.tools import ToolDispatcher
from food_coach.services.users import get_or_create_user

logger = logging.getLogger("uvicorn.error")

SOURCE_TYPES = {"text": "TEXT", "image": "IMAGE", "voice": "VOICE"}


@dataclass
class PipelineResult:
    type: str
    text: str
    user_id: int
    delivered: bool


def routing_context(user: User) -> Optional[RoutingContext]:
    prefs = user.preferences
    if prefs is None:
        return None
    return RoutingContext(
        goal=prefs.goal,
        tone=prefs.tone,
        report_time=prefs.report_time,
        focus=focus_list(prefs),
    )


class MessagePipeline:
    def __init__(
        self,
        router: IntentRouter,
        dispatcher: ToolDispatcher,
        provider: MessagingProvider,
        media_processor: Optional[MediaProcessor] = None,
    ):
        self.router = router
        self.dispatcher = dispatcher
        self.provider = provider
        self.media_processor = media_processor

    def _resolve_text(self, message: IncomingMessage, user: User) -> tuple[Optional[str], Optional[str]]:
        """Return (text, failure) for the message; media is converted to text first."""
        if message.type == "text":
            return message.text or "", None
        if self.media_processor is None:
            return None, "media processing is not configured"
        result = self.media_processor.process_media(
            message.media_url or "", message.mime_type or "", caption=message.text, user_id=user.id
        )
        if not result.success:
            return None, result.error
        return result.text or "", None

    def process(self, db: Session, message: IncomingMessage) -> PipelineResult:
        user = get_or_create_user(db, message.sender)
        log_message(db, user.id, DIRECTION_IN, message.as_payload(), message_type=message.type)
        logger.info(
            "message_received user_id=%s type=%s text=%s", user.id, message.type, truncate_text(message.text or "")
        )

        text, failure = self._resolve_text(message, user)
        if text is None:
            logger.warning("media_processing_failed user_id=%s error=%s", user.id, failure)
            response_text, response_type = MESSAGES["media_failed"], "media_error"
        else:
            routed = self.router.route(text, routing_context(user))
            if routed.kind == "tool":
                response = self.dispatcher.execute(
                    routed.tool_name,
                    routed.args,
                    db,
                    user,
                    message.timestamp,
                    source_type=SOURCE_TYPES[message.type],
                )
                response_text, response_type = response.text, response.type
            else:
                response_text, response_type = routed.text or MESSAGES["default_reply"], "ai_response"

        log_message(
            db,
            user.id,
            DIRECTION_OUT,
            {"type": response_type, "text": response_text},
            message_type=response_type,
        )
        delivery = self.provider.send_text(OutgoingMessage(to=user.phone, text=response_text))
        if not delivery.success:
            logger.error("reply_send_failed user_id=%s error=%s", user.id, delivery.error)
        return PipelineResult(type=response_type, text=response_text, user_id=user.id, delivered=delivery.success)


def build_pipeline(
    llm_client: LLMClient,
    provider: MessagingProvider,
    media_processor: Optional[MediaProcessor] = None,
    strategy: str = MEAL_ANALYSIS_STRATEGY,
) -> MessagePipeline:
    analyzer = MealAnalyzer(llm_client) if strategy == LLM_STRATEGY else None

    def meal_service_factory(db: Session) -> MealService:
        return MealService(db, analyzer=analyzer, strategy=strategy)

    return MessagePipeline(
        router=IntentRouter(llm_client),
        dispatcher=ToolDispatcher(meal_service_factory),
        provider=provider,
        media_processor=media_processor,
    )
