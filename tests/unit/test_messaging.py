import pytest
from twilio.request_validator import RequestValidator

from food_coach.services.messaging import OutgoingMessage, TwilioProvider, UnsupportedMediaError


def _provider(**kwargs) -> TwilioProvider:
    options = {"account_sid": "ACtest", "auth_token": "secret", "from_number": "+15550001111"}
    options.update(kwargs)
    return TwilioProvider(**options)


def test_parse_text_message() -> None:
    message = _provider().parse_incoming(
        {"From": "whatsapp:+972501234567", "Body": "  grilled chicken  ", "MessageSid": "SM1"}
    )
    assert message.sender == "+972501234567"
    assert message.type == "text"
    assert message.text == "grilled chicken"
    assert message.message_id == "SM1"


def test_parse_image_and_voice_messages() -> None:
    image = _provider().parse_incoming(
        {"From": "whatsapp:+972501234567", "MediaUrl0": "https://m/1", "MediaContentType0": "image/jpeg", "Body": "lunch"}
    )
    assert (image.type, image.media_url, image.text) == ("image", "https://m/1", "lunch")

    voice = _provider().parse_incoming(
        {"From": "whatsapp:+972501234567", "MediaUrl0": "https://m/2", "MediaContentType0": "audio/ogg"}
    )
    assert voice.type == "voice"
    assert voice.text is None


def test_parse_unsupported_media_raises() -> None:
    with pytest.raises(UnsupportedMediaError) as exc_info:
        _provider().parse_incoming(
            {"From": "whatsapp:+972501234567", "MediaUrl0": "https://m/3", "MediaContentType0": "video/mp4"}
        )
    assert exc_info.value.sender == "+972501234567"


@pytest.mark.parametrize(
    "form,valid",
    [
        ({"From": "whatsapp:+972501234567", "Body": "hi"}, True),
        ({"From": "whatsapp:+972501234567", "MediaUrl0": "https://m/1"}, True),
        ({"Body": "hi"}, False),
        ({"From": "whatsapp:+972501234567", "Body": "   "}, False),
    ],
)
def test_validate_webhook_fields(form: dict, valid: bool) -> None:
    assert _provider().validate_webhook(form) is valid


def test_validate_webhook_signature() -> None:
    provider = _provider(validate_signature=True)
    url = "https://coach.example.com/webhooks/whatsapp"
    form = {"From": "whatsapp:+972501234567", "Body": "hi"}
    signature = RequestValidator("secret").compute_signature(url, form)
    assert provider.validate_webhook(form, url, signature) is True
    assert provider.validate_webhook(form, url, "bogus") is False
    assert provider.validate_webhook(form, url, None) is False


def test_send_text_uses_whatsapp_channel() -> None:
    created = {}

    class FakeMessages:
        def create(self, **kwargs):
            created.update(kwargs)
            return type("Sent", (), {"sid": "SM42"})()

    provider = _provider()
    provider._client = type("FakeClient", (), {"messages": FakeMessages()})()
    result = provider.send_text(OutgoingMessage(to="+972501234567", text="hello"))
    assert result.success is True
    assert result.message_id == "SM42"
    assert created == {"from_": "whatsapp:+15550001111", "to": "whatsapp:+972501234567", "body": "hello"}


def test_send_text_without_credentials_reports_failure() -> None:
    result = _provider(account_sid="", auth_token="").send_text(OutgoingMessage(to="+972501234567", text="hi"))
    assert result.success is False
    assert result.error
