import json

from food_coach.core.messages import MESSAGES
from food_coach.db.models import Meal, MessageLog, Preferences, User
from food_coach.services.llm import LLMRequestError


def _form(phone: str, body: str = "", **extra) -> dict[str, str]:
    form = {"From": f"whatsapp:{phone}", "Body": body, "MessageSid": "SMtest"}
    form.update(extra)
    return form


def _user(db_session, phone: str):
    db_session.expire_all()
    return db_session.query(User).filter(User.phone == phone).first()


def test_missing_sender_is_rejected_without_side_effects(client, db_session) -> None:
    users_before = db_session.query(User).count()
    logs_before = db_session.query(MessageLog).count()
    response = client.post("/webhooks/whatsapp", data={"Body": "hello"})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid webhook request"}
    assert db_session.query(User).count() == users_before
    assert db_session.query(MessageLog).count() == logs_before


def test_empty_payload_is_rejected(client) -> None:
    response = client.post("/webhooks/whatsapp", data={"From": "whatsapp:+972501111111"})
    assert response.status_code == 400


def test_too_long_message(client, db_session, fake_provider) -> None:
    phone = "+972502222001"
    response = client.post("/webhooks/whatsapp", data=_form(phone, "a" * 1001))
    assert response.status_code == 200
    assert response.json() == {"status": "error", "message": "Message too long"}
    assert fake_provider.texts_to(phone) == ["Message too long. Please keep it under 1000 characters."]
    assert _user(db_session, phone) is None
    assert db_session.query(Meal).join(User).filter(User.phone == phone).count() == 0


def test_exactly_max_length_is_accepted(client, fake_provider) -> None:
    phone = "+972502222002"
    response = client.post("/webhooks/whatsapp", data=_form(phone, "b" * 1000))
    assert response.status_code == 200
    assert response.json()["status"] == "success"


def test_first_contact_creates_user_with_defaults(client, db_session, fake_provider) -> None:
    phone = "+972502222003"
    response = client.post("/webhooks/whatsapp", data=_form(phone, "What should I eat for breakfast?"))
    assert response.json() == {"status": "success", "type": "coaching_advice"}

    user = _user(db_session, phone)
    assert user is not None
    prefs = db_session.get(Preferences, user.id)
    assert (prefs.goal, prefs.tone, prefs.report_time) == ("general", "friendly", "21:30")
    assert json.loads(prefs.thresholds_json) == {"lateHour": 21}

    logs = db_session.query(MessageLog).filter(MessageLog.user_id == user.id).order_by(MessageLog.id).all()
    assert [log.direction for log in logs] == ["IN", "OUT"]
    assert json.loads(logs[1].payload)["type"] == "coaching_advice"
    assert fake_provider.texts_to(phone)[0].startswith("Start with protein and fiber!")


def test_set_goal_scenario(client, db_session, fake_provider) -> None:
    phone = "+972502222004"
    response = client.post("/webhooks/whatsapp", data=_form(phone, "set goal: fat_loss"))
    assert response.json() == {"status": "success", "type": "preference_update"}
    user = _user(db_session, phone)
    assert db_session.get(Preferences, user.id).goal == "fat_loss"
    assert "goal: fat_loss" in fake_provider.texts_to(phone)[0]


def test_log_meal_scenario(client, db_session, fake_provider) -> None:
    phone = "+972502222005"
    response = client.post("/webhooks/whatsapp", data=_form(phone, "grilled chicken and salad"))
    assert response.json() == {"status": "success", "type": "meal_logged"}
    user = _user(db_session, phone)
    meal = db_session.query(Meal).filter(Meal.user_id == user.id).one()
    tags = json.loads(meal.tags_json)
    assert tags["protein"] is True
    assert tags["veggies"] is True
    assert meal.source_type == "TEXT"


def test_router_outage_falls_back_to_coach(client, fake_llm, fake_provider) -> None:
    phone = "+972502222006"
    fake_llm.error = LLMRequestError("openai", "gpt-4o-mini", "down")
    response = client.post("/webhooks/whatsapp", data=_form(phone, "any tips on water intake"))
    assert response.json() == {"status": "success", "type": "coaching_advice"}
    assert "hydrated" in fake_provider.texts_to(phone)[0]


def test_free_text_reply(client, fake_llm, fake_provider) -> None:
    phone = "+972502222007"
    fake_llm.routes["hello there"] = {"role": "assistant", "content": "Hi! Tell me what you ate."}
    response = client.post("/webhooks/whatsapp", data=_form(phone, "hello there"))
    assert response.json() == {"status": "success", "type": "ai_response"}
    assert fake_provider.texts_to(phone) == ["Hi! Tell me what you ate."]


def test_unhandled_error_returns_500_and_apologizes(client, fake_provider, monkeypatch) -> None:
    from food_coach.services import pipeline

    def explode(*args, **kwargs):
        raise RuntimeError("database is on fire")

    monkeypatch.setattr(pipeline, "get_or_create_user", explode)
    phone = "+972502222008"
    response = client.post("/webhooks/whatsapp", data=_form(phone, "grilled fish"))
    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert fake_provider.texts_to(phone) == [MESSAGES["internal_error"]]


def test_unsupported_media(client, fake_provider) -> None:
    phone = "+972502222009"
    response = client.post(
        "/webhooks/whatsapp",
        data=_form(phone, MediaUrl0="https://api.twilio.com/media/ME1", MediaContentType0="video/mp4"),
    )
    assert response.status_code == 200
    assert response.json() == {"status": "error", "message": "Unsupported media type"}
    assert fake_provider.texts_to(phone) == [MESSAGES["unsupported_media"]]
