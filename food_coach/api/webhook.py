import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from food_coach.core.config import WEBHOOK_BASE_URL
from food_coach.core.messages import MESSAGES
from food_coach.core.text import validate_message_length
from food_coach.db.session import get_db
from food_coach.services.llm import LLMClient, get_llm_client
from food_coach.services.media import MediaProcessor, build_media_processor
from food_coach.services.messaging import (
    MessagingProvider,
    OutgoingMessage,
    UnsupportedMediaError,
    WebhookValidationError,
    get_messaging_provider,
)
from food_coach.services.pipeline import build_pipeline

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


def get_media_processor(
    llm_client: LLMClient = Depends(get_llm_client),
    provider: MessagingProvider = Depends(get_messaging_provider),
) -> MediaProcessor:
    return build_media_processor(llm_client, auth=provider.media_auth())


def _public_url(request: Request) -> str:
    if WEBHOOK_BASE_URL:
        return f"{WEBHOOK_BASE_URL}{request.url.path}"
    return str(request.url)


def _notify(provider: MessagingProvider, to: Optional[str], text: str) -> None:
    if not to:
        return
    try:
        provider.send_text(OutgoingMessage(to=to, text=text))
    except Exception:
        logger.exception("webhook_notify_failed to=%s", to)


@router.post("/whatsapp")
async def whatsapp_webhook(
    request: Request,
    db: Session = Depends(get_db),
    llm_client: LLMClient = Depends(get_llm_client),
    provider: MessagingProvider = Depends(get_messaging_provider),
    media_processor: MediaProcessor = Depends(get_media_processor),
):
    form = {key: str(value) for key, value in (await request.form()).items()}
    signature = request.headers.get("X-Twilio-Signature")

    try:
        if not provider.validate_webhook(form, _public_url(request), signature):
            raise WebhookValidationError("Invalid webhook request")
        incoming = provider.parse_incoming(form)
    except WebhookValidationError:
        logger.warning("webhook_rejected fields=%s", ",".join(sorted(form.keys())))
        return JSONResponse(status_code=400, content={"error": MESSAGES["invalid_webhook"]})
    except UnsupportedMediaError as exc:
        logger.warning("webhook_unsupported_media mime=%s", exc.mime_type)
        await run_in_threadpool(_notify, provider, exc.sender, MESSAGES["unsupported_media"])
        return {"status": "error", "message": "Unsupported media type"}

    if incoming.text and not validate_message_length(incoming.text):
        logger.warning("webhook_message_too_long length=%s", len(incoming.text))
        await run_in_threadpool(_notify, provider, incoming.sender, MESSAGES["message_too_long"])
        return {"status": "error", "message": "Message too long"}

    pipeline = build_pipeline(llm_client, provider, media_processor)
    try:
        result = await run_in_threadpool(pipeline.process, db, incoming)
    except Exception:
        logger.exception("webhook_processing_failed from=%s", incoming.sender)
        db.rollback()
        await run_in_threadpool(_notify, provider, incoming.sender, MESSAGES["internal_error"])
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return {"status": "success", "type": result.type}
