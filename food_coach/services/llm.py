import logging
import os
import time
from typing import Any, Optional, Protocol

import httpx

from food_coach.core.config import (
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    TRANSCRIPTION_MODEL,
    TRANSCRIPTION_TIMEOUT_SECONDS,
)

logger = logging.getLogger("uvicorn.error")

LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
LLM_CONNECT_TIMEOUT_SECONDS = float(os.getenv("LLM_CONNECT_TIMEOUT_SECONDS", "10"))
LLM_WRITE_TIMEOUT_SECONDS = float(os.getenv("LLM_WRITE_TIMEOUT_SECONDS", "30"))
LLM_POOL_TIMEOUT_SECONDS = float(os.getenv("LLM_POOL_TIMEOUT_SECONDS", "30"))
LLM_RETRY_COUNT = int(os.getenv("LLM_RETRY_COUNT", "1"))
LLM_RETRY_BACKOFF_SECONDS = float(os.getenv("LLM_RETRY_BACKOFF_SECONDS", "0.75"))


def _http_timeout(read: Optional[float] = None) -> httpx.Timeout:
    read_timeout = LLM_TIMEOUT_SECONDS if read is None else read
    return httpx.Timeout(
        connect=min(LLM_CONNECT_TIMEOUT_SECONDS, read_timeout),
        read=read_timeout,
        write=LLM_WRITE_TIMEOUT_SECONDS,
        pool=LLM_POOL_TIMEOUT_SECONDS,
    )


class LLMRequestError(RuntimeError):
    def __init__(self, provider: str, model: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code


def _status_error(exc: httpx.HTTPStatusError, model: str) -> LLMRequestError:
    status = exc.response.status_code if exc.response is not None else None
    detail = ""
    if exc.response is not None:
        detail = (exc.response.text or "").strip()[:220]
    return LLMRequestError(
        provider="openai",
        model=model,
        status_code=status,
        message=f"OpenAI request failed (status={status}): {detail or 'no response body'}",
    )


def _openai_chat_request(api_key: str, payload: dict[str, Any]) -> dict[str, Any]:
    model = str(payload.get("model", ""))
    attempts = max(1, LLM_RETRY_COUNT + 1)
    last_error = "unknown error"
    for idx in range(attempts):
        try:
            response = httpx.post(
                f"{OPENAI_BASE_URL}/chat/completions",
                headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
                json=payload,
                timeout=_http_timeout(),
            )
            response.raise_for_status()
            data = response.json()
            choices = data.get("choices") if isinstance(data, dict) else None
            if not choices:
                raise ValueError("OpenAI chat completion returned no choices")
            message = choices[0].get("message")
            if not isinstance(message, dict):
                raise ValueError("OpenAI chat completion returned no message")
            return message
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code if exc.response is not None else None
            # Only throttling and server errors are worth another attempt.
            if status is not None and (status == 429 or status >= 500) and idx < attempts - 1:
                last_error = f"status={status}"
                time.sleep(LLM_RETRY_BACKOFF_SECONDS * (idx + 1))
                continue
            raise _status_error(exc, model) from exc
        except httpx.TimeoutException as exc:
            last_error = "timeout"
            if idx < attempts - 1:
                time.sleep(LLM_RETRY_BACKOFF_SECONDS * (idx + 1))
                continue
            raise LLMRequestError(
                provider="openai",
                model=model,
                message="OpenAI request timed out while waiting for response.",
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            last_error = str(exc)[:220]
            if idx < attempts - 1:
                time.sleep(LLM_RETRY_BACKOFF_SECONDS * (idx + 1))
                continue
            raise LLMRequestError(
                provider="openai",
                model=model,
                message=f"OpenAI request failed: {last_error}",
            ) from exc
    raise LLMRequestError(provider="openai", model=model, message=f"OpenAI request failed: {last_error}")


def _openai_transcription_request(
    api_key: str,
    audio: bytes,
    filename: str,
    mime_type: str,
    language: Optional[str],
    timeout_seconds: float,
) -> str:
    data = {"model": TRANSCRIPTION_MODEL, "response_format": "json"}
    if language:
        data["language"] = language
    try:
        response = httpx.post(
            f"{OPENAI_BASE_URL}/audio/transcriptions",
            headers={"Authorization": f"Bearer {api_key}"},
            data=data,
            files={"file": (filename, audio, mime_type)},
            timeout=_http_timeout(read=timeout_seconds),
        )
        response.raise_for_status()
        body = response.json()
    except httpx.TimeoutException as exc:
        raise LLMRequestError(
            provider="openai",
            model=TRANSCRIPTION_MODEL,
            message=f"Transcription timeout after {timeout_seconds:g}s",
        ) from exc
    except httpx.HTTPStatusError as exc:
        raise _status_error(exc, TRANSCRIPTION_MODEL) from exc
    except (httpx.HTTPError, ValueError) as exc:
        raise LLMRequestError(
            provider="openai",
            model=TRANSCRIPTION_MODEL,
            message=f"Transcription request failed: {str(exc)[:220]}",
        ) from exc
    return str(body.get("text", "") if isinstance(body, dict) else "").strip()


class LLMClient(Protocol):
    def chat_completion(self, payload: dict[str, Any]) -> dict[str, Any]:
        ...

    def transcribe_audio(
        self,
        audio: bytes,
        filename: str,
        mime_type: str,
        language: Optional[str] = None,
        timeout_seconds: float = TRANSCRIPTION_TIMEOUT_SECONDS,
    ) -> str:
        ...


class OpenAIClient:
    def __init__(self, api_key: str = OPENAI_API_KEY):
        self.api_key = api_key

    def _require_key(self, model: str) -> None:
        if not self.api_key:
            raise LLMRequestError(provider="openai", model=model, message="OPENAI_API_KEY is not configured")

    def chat_completion(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Run one chat completion and return the first choice's message dict."""
        self._require_key(str(payload.get("model", "")))
        return _openai_chat_request(self.api_key, payload)

    def transcribe_audio(
        self,
        audio: bytes,
        filename: str,
        mime_type: str,
        language: Optional[str] = None,
        timeout_seconds: float = TRANSCRIPTION_TIMEOUT_SECONDS,
    ) -> str:
        self._require_key(TRANSCRIPTION_MODEL)
        return _openai_transcription_request(self.api_key, audio, filename, mime_type, language, timeout_seconds)


def get_llm_client() -> LLMClient:
    return OpenAIClient()
