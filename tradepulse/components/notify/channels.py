"""
Notification channels: email, document log, task tracker, chat alert.

Each channel exposes one operation, deliver(signal, briefing), and raises ChannelDeliveryError on
any failure (network, timeout, non-2xx, SMTP error). Channels never retry; the workflow records
the failure and moves on to the next channel.

Classes:
    NotificationChannel   ABC: .name, .deliver(signal, briefing)
    EmailChannel          SMTP over SSL (smtplib), briefing subject/content as plain text
    DocumentLogChannel    POST signal + briefing JSON to a document-log webhook (bearer token)
    TaskTrackerChannel    POST a follow-up task for an actionable signal (bearer token)
    ChatAlertChannel      Signed markdown webhook (timestamp + HMAC-SHA256 sign query params)

Functions:
    build_channels(settings: TradingSettings) -> dict[str, NotificationChannel]
        Only integrations with a configured endpoint are built
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Callable, Optional
from urllib.parse import quote_plus

import requests

from ..briefing.briefing import Briefing
from ..config import ChatSettings, EmailSettings, TradingSettings, WebhookSettings
from ..control.clock import Clock, get_clock
from ..errors import ChannelDeliveryError
from ..signals.signal_models import TradingSignal

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """One outbound notification integration."""

    name: str = "base"

    @abstractmethod
    def deliver(self, signal: Optional[TradingSignal], briefing: Briefing) -> None:
        """Deliver; raise ChannelDeliveryError on failure."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"


def _post_json(
    channel: str,
    session: requests.Session,
    url: str,
    payload: dict[str, Any],
    timeout: float,
    headers: Optional[dict[str, str]] = None,
) -> requests.Response:
    try:
        response = session.post(url, json=payload, headers=headers or {}, timeout=timeout)
    except requests.Timeout as e:
        raise ChannelDeliveryError(channel, f"timeout after {timeout}s") from e
    except requests.RequestException as e:
        raise ChannelDeliveryError(channel, str(e)) from e
    if not response.ok:
        raise ChannelDeliveryError(channel, f"HTTP {response.status_code}: {response.text[:200]}")
    return response


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"} if token else {}


class EmailChannel(NotificationChannel):
    """Send the briefing by email (SMTP over SSL)."""

    name = "email"

    def __init__(
        self,
        settings: EmailSettings,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP_SSL,
    ):
        self.settings = settings
        self._smtp_factory = smtp_factory

    def build_message(self, briefing: Briefing) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg["From"] = self.settings.sender
        msg["To"] = ", ".join(self.settings.recipients)
        msg["Subject"] = f"{self.settings.subject_prefix} {briefing.subject}".strip()
        msg.attach(MIMEText(briefing.content, "plain", "utf-8"))
        return msg

    def deliver(self, signal: Optional[TradingSignal], briefing: Briefing) -> None:
        if not self.settings.is_configured:
            raise ChannelDeliveryError(self.name, "channel not configured")
        msg = self.build_message(briefing)
        try:
            with self._smtp_factory(
                self.settings.smtp_host,
                self.settings.smtp_port,
                timeout=self.settings.timeout,
            ) as server:
                password = self.settings.password
                if password:
                    server.login(self.settings.username or self.settings.sender, password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise ChannelDeliveryError(self.name, str(e) or e.__class__.__name__) from e
        logger.info("Email sent: %s -> %s", briefing.subject, ", ".join(self.settings.recipients))


class DocumentLogChannel(NotificationChannel):
    """Append the signal and briefing to an external trading journal."""

    name = "document_log"

    def __init__(self, settings: WebhookSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self._session = session or requests.Session()

    def deliver(self, signal: Optional[TradingSignal], briefing: Briefing) -> None:
        if signal is None:
            raise ChannelDeliveryError(self.name, "no signal to log")
        payload = {
            "title": f"{signal.symbol} {signal.action.value} - {signal.timestamp.isoformat()}",
            "signal": signal.to_dict(),
            "briefing": {
                "id": briefing.id,
                "subject": briefing.subject,
                "summary": briefing.summary,
                "content": briefing.content,
            },
        }
        _post_json(self.name, self._session, self.settings.url, payload,
                   self.settings.timeout, _bearer(self.settings.token))
        logger.info("Document log updated for signal %s", signal.id)


class TaskTrackerChannel(NotificationChannel):
    """Create a follow-up task for an actionable signal."""

    name = "task_tracker"

    def __init__(self, settings: WebhookSettings, session: Optional[requests.Session] = None):
        self.settings = settings
        self._session = session or requests.Session()

    def deliver(self, signal: Optional[TradingSignal], briefing: Briefing) -> None:
        if signal is None:
            raise ChannelDeliveryError(self.name, "no signal for task")
        targets = []
        if signal.target_price is not None:
            targets.append(f"target ${signal.target_price:.2f}")
        if signal.stop_loss is not None:
            targets.append(f"stop ${signal.stop_loss:.2f}")
        payload = {
            "name": f"{signal.action.value} {signal.symbol} @ ${signal.price:.2f} ({signal.confidence}%)",
            "notes": signal.reasoning,
            "due_on": signal.timestamp.date().isoformat(),
            "tags": [signal.symbol, signal.action.value, signal.risk_level.value],
            "summary": ", ".join(targets),
            "external_id": signal.id,
        }
        _post_json(self.name, self._session, self.settings.url, payload,
                   self.settings.timeout, _bearer(self.settings.token))
        logger.info("Task created for signal %s", signal.id)


class ChatAlertChannel(NotificationChannel):
    """Markdown alert to a signed chat webhook."""

    name = "chat_alert"

    def __init__(
        self,
        settings: ChatSettings,
        session: Optional[requests.Session] = None,
        clock: Optional[Clock] = None,
    ):
        self.settings = settings
        self._session = session or requests.Session()
        self._clock = clock or get_clock()

    def signed_url(self) -> str:
        """Webhook URL with timestamp and sign params (unchanged when no secret is set)."""
        secret = self.settings.secret
        if not secret:
            return self.settings.webhook_url
        timestamp = str(int(self._clock.now().timestamp() * 1000))
        string_to_sign = f"{timestamp}\n{secret}"
        hmac_code = hmac.new(
            secret.encode("utf-8"),
            string_to_sign.encode("utf-8"),
            digestmod=hashlib.sha256,
        ).digest()
        sign = quote_plus(base64.b64encode(hmac_code))
        sep = "&" if "?" in self.settings.webhook_url else "?"
        return f"{self.settings.webhook_url}{sep}timestamp={timestamp}&sign={sign}"

    def deliver(self, signal: Optional[TradingSignal], briefing: Briefing) -> None:
        if signal is None:
            raise ChannelDeliveryError(self.name, "no signal to alert")
        lines = [
            f"**{signal.action.value} {signal.symbol}** at ${signal.price:.2f}",
            f"- Confidence: {signal.confidence}%",
            f"- Risk: {signal.risk_level.value}",
        ]
        if signal.target_price is not None:
            lines.append(f"- Target: ${signal.target_price:.2f}")
        if signal.stop_loss is not None:
            lines.append(f"- Stop: ${signal.stop_loss:.2f}")
        payload = {
            "msgtype": "markdown",
            "markdown": {"title": briefing.subject, "text": "\n".join(lines)},
        }
        response = _post_json(self.name, self._session, self.signed_url(), payload, self.settings.timeout)
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("errcode", 0) != 0:
            raise ChannelDeliveryError(self.name, f"errcode {body.get('errcode')}: {body.get('errmsg', '')}")
        logger.info("Chat alert sent for signal %s", signal.id)


def build_channels(
    settings: TradingSettings,
    session: Optional[requests.Session] = None,
) -> dict[str, NotificationChannel]:
    """
    Build the channel integrations that have an endpoint configured.

    Returns:
        Mapping channel name -> channel; missing names are "not configured"
    """
    channels: dict[str, NotificationChannel] = {}
    if settings.email.is_configured:
        channels[EmailChannel.name] = EmailChannel(settings.email)
    if settings.document_log.is_configured:
        channels[DocumentLogChannel.name] = DocumentLogChannel(settings.document_log, session)
    if settings.task_tracker.is_configured:
        channels[TaskTrackerChannel.name] = TaskTrackerChannel(settings.task_tracker, session)
    if settings.chat.is_configured:
        channels[ChatAlertChannel.name] = ChatAlertChannel(settings.chat, session)
    logger.info("Notification channels configured: %s", sorted(channels) or "none")
    return channels
