import logging
import re
from dataclasses import dataclass
from typing import Optional

from food_coach.core.config import (
    DEFAULT_TRANSCRIPTION_LANG,
    MAX_AUDIO_BYTES,
    MIN_AUDIO_BYTES,
    TRANSCRIPTION_TIMEOUT_SECONDS,
)
from food_coach.core.text import truncate_text
from food_coach.services.llm import LLMClient, LLMRequestError

logger = logging.getLogger("uvicorn.error")

SUPPORTED_AUDIO_MIME_TYPES = (
    "audio/ogg",
    "audio/opus",
    "audio/m4a",
    "audio/mp4",
    "audio/wav",
    "audio/mpeg",
    "audio/mp3",
)

LANGUAGE_SCRIPTS = {
    "he": re.compile(r"[\u0590-\u05FF]"),
    "ar": re.compile(r"[\u0600-\u06FF]"),
    "ru": re.compile(r"[\u0400-\u04FF]"),
}

HEBREW_SPEECH_WORDS = {
    "אני", "אתה", "את", "הוא", "היא", "אנחנו", "אתם", "אתן", "הם", "הן",
    "אכלתי", "אכל", "אכלה", "אכלנו", "אכלתם", "אכלתן", "אכלו",
    "אוכל", "אוכלת", "אוכלים", "אוכלות",
    "סלט", "עוף", "בשר", "דג", "אורז", "לחם", "ירקות", "פירות",
    "בוקר", "צהריים", "ערב", "לילה",
    "ארוחת", "ארוחה", "מזון",
}

ENGLISH_SPEECH_WORDS = {
    "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "i", "you", "he", "she", "it", "we", "they",
    "is", "are", "was", "were", "am", "been",
    "food", "meal", "eat", "hungry", "lunch", "dinner", "breakfast",
}


@dataclass
class TranscriptionResult:
    success: bool
    text: Optional[str] = None
    language: Optional[str] = None
    error: Optional[str] = None


def base_mime_type(mime_type: str) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def matches_language_script(text: str, language: str) -> bool:
    pattern = LANGUAGE_SCRIPTS.get(language)
    if pattern is None:
        return True
    return bool(pattern.search(text))


def has_meaningful_speech(transcript: Optional[str]) -> bool:
    if not transcript or not transcript.strip():
        return False
    words = transcript.lower().split()
    meaningful = [
        word for word in words if len(word) > 2 and (word in HEBREW_SPEECH_WORDS or word in ENGLISH_SPEECH_WORDS)
    ]
    return len(meaningful) >= 2


class Transcriber:
    def __init__(
        self,
        llm_client: LLMClient,
        default_language: str = DEFAULT_TRANSCRIPTION_LANG,
        timeout_seconds: float = TRANSCRIPTION_TIMEOUT_SECONDS,
    ):
        self.llm_client = llm_client
        self.default_language = default_language
        self.timeout_seconds = timeout_seconds

    def _reject(self, error: str, **context) -> TranscriptionResult:
        details = " ".join(f"{key}={value}" for key, value in context.items())
        logger.warning("transcription_rejected error=%s %s", error, details)
        return TranscriptionResult(success=False, error=error)

    def transcribe(
        self,
        audio: bytes,
        mime_type: str = "audio/ogg",
        filename: str = "voice-message.ogg",
        language: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> TranscriptionResult:
        lang = language or self.default_language
        mime = base_mime_type(mime_type)
        size = len(audio)

        if size < MIN_AUDIO_BYTES:
            return self._reject(
                f"Audio file too small ({size} bytes). Minimum size is {MIN_AUDIO_BYTES} bytes.", user_id=user_id
            )
        if size > MAX_AUDIO_BYTES:
            return self._reject(
                f"Audio file too large ({size} bytes). Maximum size is {MAX_AUDIO_BYTES} bytes.", user_id=user_id
            )
        if mime not in SUPPORTED_AUDIO_MIME_TYPES:
            return self._reject(
                f"Unsupported audio format: {mime}. Supported formats: {', '.join(SUPPORTED_AUDIO_MIME_TYPES)}",
                user_id=user_id,
            )

        logger.info("transcription_started size=%s mime=%s language=%s user_id=%s", size, mime, lang, user_id)
        try:
            text = self.llm_client.transcribe_audio(audio, filename, mime, lang, self.timeout_seconds)
        except LLMRequestError as exc:
            logger.exception("transcription_failed user_id=%s", user_id)
            return TranscriptionResult(success=False, error=str(exc))

        text = (text or "").strip()
        if not text:
            return self._reject("Empty transcription returned", user_id=user_id)
        if not matches_language_script(text, lang):
            return self._reject("Empty/invalid transcription", language=lang, text=truncate_text(text), user_id=user_id)

        logger.info("transcription_completed length=%s user_id=%s", len(text), user_id)
        return TranscriptionResult(success=True, text=text, language=lang)
