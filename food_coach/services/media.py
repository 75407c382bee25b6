import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from food_coach.core.messages import MESSAGES
from food_coach.services.llm import LLMClient, LLMRequestError, _http_timeout
from food_coach.services.transcriber import Transcriber
from food_coach.services.vision import VisionAnalyzer

logger = logging.getLogger("uvicorn.error")


class MediaDownloadError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class MediaResult:
    success: bool
    text: Optional[str] = None
    error: Optional[str] = None


def media_family(mime_type: str) -> Optional[str]:
    mime = (mime_type or "").lower()
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("audio/"):
        return "voice"
    return None


class MediaProcessor:
    def __init__(
        self,
        vision: VisionAnalyzer,
        transcriber: Transcriber,
        auth: Optional[tuple[str, str]] = None,
    ):
        self.vision = vision
        self.transcriber = transcriber
        self.auth = auth

    def download(self, url: str) -> bytes:
        logger.info("media_download_started url=%s", url)
        try:
            response = httpx.get(url, auth=self.auth, follow_redirects=True, timeout=_http_timeout())
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise MediaDownloadError(f"Failed to download media: {status}", status_code=status) from exc
        except httpx.HTTPError as exc:
            raise MediaDownloadError(f"Failed to download media: {str(exc)[:220]}") from exc
        logger.info("media_download_completed size=%s", len(response.content))
        return response.content

    def process_image(self, image: bytes, mime_type: str, caption: Optional[str] = None) -> MediaResult:
        try:
            return MediaResult(success=True, text=self.vision.describe_food(image, mime_type, caption))
        except LLMRequestError:
            logger.exception("vision_analysis_failed has_caption=%s", bool(caption))
        if caption:
            return MediaResult(success=True, text=f'Image received with caption: "{caption}"')
        return MediaResult(success=True, text=MESSAGES["image_unavailable"])

    def process_voice(self, audio: bytes, mime_type: str, user_id: Optional[int] = None) -> MediaResult:
        result = self.transcriber.transcribe(audio, mime_type=mime_type, user_id=user_id)
        if not result.success:
            logger.warning("voice_fallback user_id=%s error=%s", user_id, result.error)
            return MediaResult(success=True, text=MESSAGES["voice_unavailable"])
        return MediaResult(success=True, text=result.text)

    def process_media(
        self,
        url: str,
        mime_type: str,
        caption: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> MediaResult:
        """Turn an inbound image or voice note into text for the router.

        Remote analysis failures still succeed with a canned text; only download
        failures and unsupported MIME types report success=False.
        """
        family = media_family(mime_type)
        if family is None:
            return MediaResult(success=False, error=f"Unsupported media type: {mime_type}")
        try:
            content = self.download(url)
        except MediaDownloadError as exc:
            logger.exception("media_download_failed user_id=%s status=%s", user_id, exc.status_code)
            return MediaResult(success=False, error=str(exc))

        if family == "image":
            return self.process_image(content, mime_type, caption)
        return self.process_voice(content, mime_type, user_id)


def build_media_processor(llm_client: LLMClient, auth: Optional[tuple[str, str]] = None) -> MediaProcessor:
    return MediaProcessor(VisionAnalyzer(llm_client), Transcriber(llm_client), auth=auth)
