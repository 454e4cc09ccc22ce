"""Tests for notification channels (SMTP and HTTP mocked)."""

import base64
import hashlib
import hmac
import smtplib
from unittest.mock import MagicMock, Mock
from urllib.parse import quote_plus

import pytest
import requests

from tradepulse.components.config import (
    ChatSettings,
    EmailSettings,
    TradingSettings,
    WebhookSettings,
)
from tradepulse.components.errors import ChannelDeliveryError
from tradepulse.components.notify import (
    ChatAlertChannel,
    DocumentLogChannel,
    EmailChannel,
    TaskTrackerChannel,
    build_channels,
)
from tradepulse.components.signals.signal_models import SignalAction


def _ok(body=None):
    response = Mock()
    response.ok = True
    response.status_code = 200
    response.json.return_value = body if body is not None else {}
    return response


@pytest.fixture
def email_settings():
    return EmailSettings(
        smtp_host="smtp.example.com",
        sender="bot@example.com",
        recipients=["alex@example.com", "sam@example.com"],
        password_env="TEST_SMTP_PASSWORD",
    )


class TestEmailChannel:
    """SMTP delivery."""

    def test_sends_briefing(self, email_settings, briefings, make_signal, monkeypatch):
        monkeypatch.delenv("TEST_SMTP_PASSWORD", raising=False)
        factory = MagicMock()
        server = factory.return_value.__enter__.return_value
        briefing = briefings.hourly_update(make_signal())

        EmailChannel(email_settings, smtp_factory=factory).deliver(None, briefing)

        factory.assert_called_once_with("smtp.example.com", 465, timeout=10.0)
        server.login.assert_not_called()
        msg = server.send_message.call_args.args[0]
        assert msg["Subject"] == "[TradePulse] Hourly Update - AAPL BUY Signal"
        assert msg["To"] == "alex@example.com, sam@example.com"
        assert msg["From"] == "bot@example.com"

    def test_login_when_password_set(self, email_settings, briefings, make_signal, monkeypatch):
        monkeypatch.setenv("TEST_SMTP_PASSWORD", "s3cret")
        factory = MagicMock()
        server = factory.return_value.__enter__.return_value
        EmailChannel(email_settings, smtp_factory=factory).deliver(None, briefings.hourly_update(make_signal()))
        server.login.assert_called_once_with("bot@example.com", "s3cret")

    def test_smtp_error(self, email_settings, briefings, make_signal):
        factory = MagicMock()
        factory.return_value.__enter__.return_value.send_message.side_effect = smtplib.SMTPException("550 rejected")
        with pytest.raises(ChannelDeliveryError, match="550 rejected") as exc:
            EmailChannel(email_settings, smtp_factory=factory).deliver(None, briefings.hourly_update(make_signal()))
        assert exc.value.channel == "email"

    def test_connection_error(self, email_settings, briefings, make_signal):
        factory = MagicMock(side_effect=ConnectionRefusedError("Connection refused"))
        with pytest.raises(ChannelDeliveryError, match="Connection refused"):
            EmailChannel(email_settings, smtp_factory=factory).deliver(None, briefings.hourly_update(make_signal()))

    def test_not_configured(self, briefings, make_signal):
        factory = MagicMock()
        with pytest.raises(ChannelDeliveryError, match="channel not configured"):
            EmailChannel(EmailSettings(), smtp_factory=factory).deliver(None, briefings.hourly_update(make_signal()))
        factory.assert_not_called()


class TestDocumentLogChannel:
    """Journal webhook."""

    def test_posts_signal_and_briefing(self, briefings, make_signal, monkeypatch):
        monkeypatch.setenv("TEST_DOC_TOKEN", "tok")
        session = Mock()
        session.post.return_value = _ok()
        signal = make_signal()
        briefing = briefings.hourly_update(signal)
        settings = WebhookSettings(url="https://docs.example/hook", token_env="TEST_DOC_TOKEN", timeout=5.0)

        DocumentLogChannel(settings, session).deliver(signal, briefing)

        args, kwargs = session.post.call_args
        assert args[0] == "https://docs.example/hook"
        assert kwargs["timeout"] == 5.0
        assert kwargs["headers"] == {"Authorization": "Bearer tok"}
        assert kwargs["json"]["signal"]["id"] == signal.id
        assert kwargs["json"]["briefing"]["subject"] == briefing.subject
        assert kwargs["json"]["title"].startswith("AAPL BUY - ")

    def test_http_error(self, briefings, make_signal):
        session = Mock()
        session.post.return_value = Mock(ok=False, status_code=500, text="boom")
        signal = make_signal()
        with pytest.raises(ChannelDeliveryError, match="HTTP 500: boom"):
            DocumentLogChannel(WebhookSettings(url="https://docs.example/hook"), session).deliver(
                signal, briefings.hourly_update(signal))

    def test_timeout(self, briefings, make_signal):
        session = Mock()
        session.post.side_effect = requests.Timeout("read timed out")
        signal = make_signal()
        with pytest.raises(ChannelDeliveryError, match="timeout after 10.0s"):
            DocumentLogChannel(WebhookSettings(url="https://docs.example/hook"), session).deliver(
                signal, briefings.hourly_update(signal))

    def test_requires_signal(self, briefings):
        session = Mock()
        with pytest.raises(ChannelDeliveryError):
            DocumentLogChannel(WebhookSettings(url="https://docs.example/hook"), session).deliver(
                None, briefings.morning_briefing([]))
        session.post.assert_not_called()


class TestTaskTrackerChannel:
    """Follow-up task."""

    def test_task_payload(self, briefings, make_signal):
        session = Mock()
        session.post.return_value = _ok()
        signal = make_signal(SignalAction.SELL, confidence=88, price=200.0)
        TaskTrackerChannel(WebhookSettings(url="https://tasks.example/api"), session).deliver(
            signal, briefings.hourly_update(signal))

        payload = session.post.call_args.kwargs["json"]
        assert payload["name"] == "SELL AAPL @ $200.00 (88%)"
        assert payload["due_on"] == "2024-01-02"
        assert payload["tags"] == ["AAPL", "SELL", "LOW"]
        assert payload["external_id"] == signal.id
        assert "target $204.00" in payload["summary"]
        assert session.post.call_args.kwargs["headers"] == {}


class TestChatAlertChannel:
    """Signed markdown webhook."""

    URL = "https://chat.example/robot/send?access_token=abc"

    def test_unsigned_without_secret(self, clock, monkeypatch):
        monkeypatch.delenv("TEST_CHAT_SECRET", raising=False)
        channel = ChatAlertChannel(ChatSettings(webhook_url=self.URL, secret_env="TEST_CHAT_SECRET"), Mock(), clock)
        assert channel.signed_url() == self.URL

    def test_signed_url(self, clock, monkeypatch):
        monkeypatch.setenv("TEST_CHAT_SECRET", "SECabc")
        channel = ChatAlertChannel(ChatSettings(webhook_url=self.URL, secret_env="TEST_CHAT_SECRET"), Mock(), clock)
        timestamp = "1704209400000"
        digest = hmac.new(b"SECabc", f"{timestamp}\nSECabc".encode(), digestmod=hashlib.sha256).digest()
        expected_sign = quote_plus(base64.b64encode(digest))
        assert channel.signed_url() == f"{self.URL}&timestamp={timestamp}&sign={expected_sign}"

    def test_signed_url_without_query(self, clock, monkeypatch):
        monkeypatch.setenv("TEST_CHAT_SECRET", "SECabc")
        channel = ChatAlertChannel(
            ChatSettings(webhook_url="https://chat.example/hook", secret_env="TEST_CHAT_SECRET"), Mock(), clock)
        assert channel.signed_url().startswith("https://chat.example/hook?timestamp=")

    def test_markdown_payload(self, clock, briefings, make_signal):
        session = Mock()
        session.post.return_value = _ok({"errcode": 0, "errmsg": "ok"})
        signal = make_signal(SignalAction.BUY, confidence=91)
        briefing = briefings.hourly_update(signal)
        ChatAlertChannel(ChatSettings(webhook_url=self.URL, secret_env=""), session, clock).deliver(signal, briefing)

        payload = session.post.call_args.kwargs["json"]
        assert payload["msgtype"] == "markdown"
        assert payload["markdown"]["title"] == briefing.subject
        assert "**BUY AAPL** at $150.00" in payload["markdown"]["text"]
        assert "- Confidence: 91%" in payload["markdown"]["text"]

    def test_errcode_is_failure(self, clock, briefings, make_signal):
        session = Mock()
        session.post.return_value = _ok({"errcode": 310000, "errmsg": "sign not match"})
        signal = make_signal()
        with pytest.raises(ChannelDeliveryError, match="sign not match"):
            ChatAlertChannel(ChatSettings(webhook_url=self.URL, secret_env=""), session, clock).deliver(
                signal, briefings.hourly_update(signal))


class TestBuildChannels:
    """Only configured integrations are built."""

    def test_none_configured(self):
        assert build_channels(TradingSettings()) == {}

    def test_configured_subset(self, email_settings):
        settings = TradingSettings(
            email=email_settings,
            chat=ChatSettings(webhook_url="https://chat.example/hook"),
        )
        channels = build_channels(settings, session=Mock())
        assert sorted(channels) == ["chat_alert", "email"]
        assert isinstance(channels["email"], EmailChannel)
        assert isinstance(channels["chat_alert"], ChatAlertChannel)
