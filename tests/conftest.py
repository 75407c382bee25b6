import json
import os
import random
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Optional

os.environ.setdefault("APP_ENV", "development")
os.environ["REPORT_SCHEDULER_ENABLED"] = "false"
os.environ["MEAL_ANALYSIS_STRATEGY"] = "keyword"
os.environ["TWILIO_VALIDATE_SIGNATURE"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from food_coach.db.models import Preferences, User
from food_coach.db.session import SessionLocal, configure_database, create_tables
from food_coach.services.llm import LLMRequestError, get_llm_client
from food_coach.services.media import MediaResult
from food_coach.services.messaging import DeliveryResult, OutgoingMessage, TwilioProvider, get_messaging_provider


def tool_call(name: str, args: dict[str, Any]) -> dict[str, Any]:
    return {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {
                "id": "call_test",
                "type": "function",
                "function": {"name": name, "arguments": json.dumps(args)},
            }
        ],
    }


class FakeLLMClient:
    """Routes like a well-behaved model: explicit routes first, then simple keyword rules."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.routes: dict[str, dict[str, Any]] = {}
        self.error: Optional[Exception] = None
        self.transcript = "אכלתי סלט עם עוף"

    def chat_completion(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(payload)
        if self.error is not None:
            raise self.error
        text = payload["messages"][-1]["content"]
        if text in self.routes:
            return self.routes[text]
        lowered = text.lower()
        if lowered.startswith("set goal:"):
            return tool_call("set_preferences", {"goal": text.split(":", 1)[1].strip()})
        if "report" in lowered or "summary" in lowered:
            return tool_call("request_summary", {"period": "daily"})
        if lowered.endswith("?"):
            return tool_call("ask_coach", {"question": text})
        return tool_call("log_meal", {"text": text})

    def transcribe_audio(self, audio, filename, mime_type, language=None, timeout_seconds=10.0) -> str:
        if self.error is not None:
            raise self.error
        return self.transcript


class FakeMessagingProvider(TwilioProvider):
    def __init__(self) -> None:
        super().__init__(account_sid="ACtest", auth_token="test-token", from_number="+15550001111")
        self.sent: list[OutgoingMessage] = []
        self.fail_for: set[str] = set()
        self.raise_for: set[str] = set()

    def send_text(self, message: OutgoingMessage) -> DeliveryResult:
        if message.to in self.raise_for:
            raise RuntimeError("provider exploded")
        if message.to in self.fail_for:
            return DeliveryResult(success=False, error="delivery failed")
        self.sent.append(message)
        return DeliveryResult(success=True, message_id=f"SM{len(self.sent)}")

    def texts_to(self, phone: str) -> list[str]:
        return [message.text for message in self.sent if message.to == phone]


class FakeMediaProcessor:
    def __init__(self, result: MediaResult) -> None:
        self.result = result
        self.calls: list[tuple] = []

    def process_media(self, url, mime_type, caption=None, user_id=None) -> MediaResult:
        self.calls.append((url, mime_type, caption, user_id))
        return self.result


@pytest.fixture(scope="session")
def test_db_path(tmp_path_factory: pytest.TempPathFactory) -> Path:
    db_path = tmp_path_factory.mktemp("db") / "food_coach_test.db"
    configure_database(str(db_path))
    create_tables()
    return db_path


@pytest.fixture(scope="session")
def app(test_db_path: Path):
    from food_coach.main import app as fastapi_app

    return fastapi_app


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def fake_provider() -> FakeMessagingProvider:
    return FakeMessagingProvider()


@pytest.fixture
def client(app, fake_llm: FakeLLMClient, fake_provider: FakeMessagingProvider):
    app.dependency_overrides = {
        get_llm_client: lambda: fake_llm,
        get_messaging_provider: lambda: fake_provider,
    }
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides = {}


@pytest.fixture
def db_session(test_db_path: Path):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def random_phone() -> str:
    return f"+9725{random.randint(10_000_000, 99_999_999)}"


@pytest.fixture
def create_user(db_session: Session) -> Callable[..., User]:
    def _create_user(
        with_preferences: bool = True,
        goal: str = "general",
        tone: str = "friendly",
        report_time: str = "21:30",
        focus: Optional[list[str]] = None,
    ) -> User:
        user = User(phone=random_phone(), language="he")
        db_session.add(user)
        db_session.flush()
        if with_preferences:
            db_session.add(
                Preferences(
                    user_id=user.id,
                    goal=goal,
                    tone=tone,
                    report_time=report_time,
                    report_format="text",
                    focus_json=json.dumps(focus or []),
                    dietary_restrictions_json="[]",
                    thresholds_json='{"lateHour": 21}',
                )
            )
        db_session.commit()
        db_session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def transport_error() -> LLMRequestError:
    return LLMRequestError(provider="openai", model="gpt-4o-mini", message="simulated outage", status_code=503)


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 5, 21, 30)


@pytest.fixture
def make_tool_call() -> Callable[[str, dict[str, Any]], dict[str, Any]]:
    return tool_call


@pytest.fixture
def override_media(app) -> Callable[[MediaResult], FakeMediaProcessor]:
    from food_coach.api.webhook import get_media_processor

    def _override(result: MediaResult) -> FakeMediaProcessor:
        processor = FakeMediaProcessor(result)
        app.dependency_overrides[get_media_processor] = lambda: processor
        return processor

    return _override
