import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Mapping, Optional, Protocol

from twilio.base.exceptions import TwilioException
from twilio.request_validator import RequestValidator
from twilio.rest import Client

from food_coach.core.config import (
    TWILIO_ACCOUNT_SID,
    TWILIO_AUTH_TOKEN,
    TWILIO_PHONE_NUMBER,
    TWILIO_VALIDATE_SIGNATURE,
)
from food_coach.core.text import normalize_phone_number
from food_coach.core.time_utils import now
from food_coach.services.media import media_family

logger = logging.getLogger("uvicorn.error")

WHATSAPP_PREFIX = "whatsapp:"


class WebhookValidationError(ValueError):
    pass


class UnsupportedMediaError(ValueError):
    def __init__(self, mime_type: str, sender: str):
        super().__init__(f"Unsupported media type: {mime_type}")
        self.mime_type = mime_type
        self.sender = sender


@dataclass
class IncomingMessage:
    sender: str
    type: Literal["text", "image", "voice"]
    text: Optional[str] = None
    media_url: Optional[str] = None
    mime_type: Optional[str] = None
    message_id: Optional[str] = None
    timestamp: datetime = field(default_factory=now)

    def as_payload(self) -> dict:
        return {
            "from": self.sender,
            "type": self.type,
            "text": self.text,
            "mediaUrl": self.media_url,
            "mimeType": self.mime_type,
            "messageId": self.message_id,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class OutgoingMessage:
    to: str
    text: str


@dataclass
class DeliveryResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class MessagingProvider(Protocol):
    def parse_incoming(self, form: Mapping[str, str]) -> IncomingMessage:
        ...

    def send_text(self, message: OutgoingMessage) -> DeliveryResult:
        ...

    def validate_webhook(self, form: Mapping[str, str], url: str = "", signature: Optional[str] = None) -> bool:
        ...

    def media_auth(self) -> Optional[tuple[str, str]]:
        ...


def _strip_channel(address: str) -> str:
    value = (address or "").strip()
    if value.startswith(WHATSAPP_PREFIX):
        value = value[len(WHATSAPP_PREFIX) :]
    return value


def _with_channel(number: str) -> str:
    return number if number.startswith(WHATSAPP_PREFIX) else f"{WHATSAPP_PREFIX}{number}"


class TwilioProvider:
    def __init__(
        self,
        account_sid: str = TWILIO_ACCOUNT_SID,
        auth_token: str = TWILIO_AUTH_TOKEN,
        from_number: str = TWILIO_PHONE_NUMBER,
        validate_signature: bool = TWILIO_VALIDATE_SIGNATURE,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.validate_signature = validate_signature
        self._client: Optional[Client] = None

    def _get_client(self) -> Client:
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def media_auth(self) -> Optional[tuple[str, str]]:
        if not self.account_sid or not self.auth_token:
            return None
        return self.account_sid, self.auth_token

    def parse_incoming(self, form: Mapping[str, str]) -> IncomingMessage:
        sender = normalize_phone_number(_strip_channel(form.get("From", "")))
        body = (form.get("Body") or "").strip() or None
        media_url = form.get("MediaUrl0") or None
        message_id = form.get("MessageSid") or None

        if media_url:
            mime_type = form.get("MediaContentType0") or ""
            family = media_family(mime_type)
            if family is None:
                raise UnsupportedMediaError(mime_type, sender)
            return IncomingMessage(
                sender=sender,
                type=family,
                text=body,
                media_url=media_url,
                mime_type=mime_type,
                message_id=message_id,
            )
        return IncomingMessage(sender=sender, type="text", text=body, message_id=message_id)

    def send_text(self, message: OutgoingMessage) -> DeliveryResult:
        try:
            sent = self._get_client().messages.create(
                from_=_with_channel(self.from_number),
                to=_with_channel(message.to),
                body=message.text,
            )
        except (TwilioException, OSError) as exc:
            logger.exception("whatsapp_send_failed to=%s", message.to)
            return DeliveryResult(success=False, error=str(exc)[:220])
        logger.info("whatsapp_sent to=%s message_id=%s", message.to, sent.sid)
        return DeliveryResult(success=True, message_id=sent.sid)

    def validate_webhook(self, form: Mapping[str, str], url: str = "", signature: Optional[str] = None) -> bool:
        if not (form.get("From") or "").strip():
            return False
        if not (form.get("Body") or "").strip() and not form.get("MediaUrl0"):
            return False
        if self.validate_signature:
            if not signature or not self.auth_token:
                return False
            return RequestValidator(self.auth_token).validate(url, dict(form), signature)
        return True


def get_messaging_provider() -> MessagingProvider:
    return TwilioProvider()
