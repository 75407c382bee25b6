import re

from food_coach.core.config import DEFAULT_PHONE_COUNTRY_CODE, MAX_MESSAGE_LENGTH

_NON_PHONE_CHARS = re.compile(r"[^\d+]")


def normalize_phone_number(phone: str, country_code: str = DEFAULT_PHONE_COUNTRY_CODE) -> str:
    cleaned = _NON_PHONE_CHARS.sub("", phone or "")
    if cleaned.startswith("+"):
        return cleaned
    if cleaned.startswith("0"):
        return f"+{country_code}{cleaned[1:]}"
    if not cleaned.startswith(country_code):
        return f"+{country_code}{cleaned}"
    return f"+{cleaned}"


def validate_message_length(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> bool:
    return bool(text.strip()) and len(text) <= max_length


def truncate_text(text: str, max_length: int = 100) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
