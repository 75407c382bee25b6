import os

APP_ENV = os.getenv("APP_ENV", "development").strip().lower()
APP_VERSION = "1.0.0"

DB_PATH = os.getenv("DB_PATH", "./food_coach.db")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.1"))
OPENAI_MAX_TOKENS = int(os.getenv("OPENAI_MAX_TOKENS", "500"))

TRANSCRIPTION_MODEL = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")
DEFAULT_TRANSCRIPTION_LANG = os.getenv("DEFAULT_TRANSCRIPTION_LANG", "he")
TRANSCRIPTION_TIMEOUT_SECONDS = float(os.getenv("TRANSCRIPTION_TIMEOUT_SECONDS", "10"))
MAX_AUDIO_BYTES = int(os.getenv("MAX_AUDIO_BYTES", "8000000"))
MIN_AUDIO_BYTES = int(os.getenv("MIN_AUDIO_BYTES", "2048"))

TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID", "")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN", "")
TWILIO_PHONE_NUMBER = os.getenv("TWILIO_PHONE_NUMBER", "")
TWILIO_VALIDATE_SIGNATURE = os.getenv("TWILIO_VALIDATE_SIGNATURE", "false").strip().lower() in {"1", "true", "yes"}
WEBHOOK_BASE_URL = os.getenv("WEBHOOK_BASE_URL", "").rstrip("/")

MEAL_ANALYSIS_STRATEGY = os.getenv("MEAL_ANALYSIS_STRATEGY", "keyword").strip().lower()

DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "he")
DEFAULT_PHONE_COUNTRY_CODE = os.getenv("DEFAULT_PHONE_COUNTRY_CODE", "972")

MAX_MESSAGE_LENGTH = 1000
LATE_EATING_HOUR = 21

DEFAULT_GOAL = "general"
DEFAULT_TONE = "friendly"
DEFAULT_REPORT_TIME = "21:30"
DEFAULT_REPORT_FORMAT = "text"
DEFAULT_THRESHOLDS = {"lateHour": LATE_EATING_HOUR}

REQUIRED_SETTINGS = {
    "OPENAI_API_KEY": OPENAI_API_KEY,
    "TWILIO_ACCOUNT_SID": TWILIO_ACCOUNT_SID,
    "TWILIO_AUTH_TOKEN": TWILIO_AUTH_TOKEN,
    "TWILIO_PHONE_NUMBER": TWILIO_PHONE_NUMBER,
}


def debug_routes_enabled() -> bool:
    # Read per call, not at import.
    return os.getenv("APP_ENV", APP_ENV).strip().lower() == "development"


def scheduler_enabled() -> bool:
    return os.getenv("REPORT_SCHEDULER_ENABLED", "true").strip().lower() in {"1", "true", "yes"}


def missing_settings() -> list[str]:
    return [name for name, value in REQUIRED_SETTINGS.items() if not value]
