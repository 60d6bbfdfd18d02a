from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formatdate
from html import escape as html_escape
from typing import Callable

import boto3
import resend
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError, NoCredentialsError

from app.core.config import settings

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10


class EmailNotConfiguredError(RuntimeError):
    pass


class EmailDeliveryError(RuntimeError):
    """
    The provider is configured but refused or failed the send. Recorded on the
    notification log, never surfaced to the candidate.
    """


def _setting(name: str, *, hint: str = "") -> str:
    value = str(getattr(settings, name, "") or "").strip()
    if not value:
        raise EmailNotConfiguredError(f"{name} is not set{hint}")
    return value


def _send_resend(to_email: str, subject: str, body: str) -> str | None:
    resend.api_key = _setting("RESEND_API_KEY")
    params = {
        "from": _setting("FROM_EMAIL"),
        "to": [to_email],
        "subject": subject,
        "text": body,
        "html": f"<pre>{html_escape(body)}</pre>",
    }
    try:
        res = resend.Emails.send(params)
    except Exception as e:  # noqa: BLE001
        raise EmailDeliveryError(f"Resend send failed: {e}") from e

    if not isinstance(res, dict):
        return None
    if res.get("error"):
        raise EmailDeliveryError(f"Resend API error: {res['error']}")
    msg_id = res.get("id")
    if isinstance(msg_id, str) and msg_id.strip():
        return msg_id.strip()
    return None


def _describe_boto_error(e: Exception) -> str:
    if isinstance(e, NoCredentialsError):
        return "AWS credentials not available"
    if isinstance(e, EndpointConnectionError):
        return "could not connect to SES endpoint"
    if isinstance(e, ClientError):
        return (e.response or {}).get("Error", {}).get("Code", "ClientError")
    return type(e).__name__


def _send_ses(to_email: str, subject: str, body: str) -> str | None:
    region = _setting("AWS_REGION", hint=" (required for SES)")
    sender = _setting("FROM_EMAIL")
    try:
        res = boto3.client("ses", region_name=region).send_email(
            Source=sender,
            Destination={"ToAddresses": [to_email]},
            Message={
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": {"Text": {"Data": body, "Charset": "UTF-8"}},
            },
        )
    except (BotoCoreError, ClientError) as e:
        raise EmailDeliveryError(f"SES email failed: {_describe_boto_error(e)}") from e
    return res.get("MessageId")


def _send_smtp(to_email: str, subject: str, body: str) -> str | None:
    host = _setting("SMTP_HOST")
    sender = _setting("SMTP_FROM_EMAIL")

    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = to_email
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)
    msg.set_content(body)

    smtp_cls = smtplib.SMTP_SSL if settings.SMTP_USE_SSL else smtplib.SMTP
    try:
        with smtp_cls(host, settings.SMTP_PORT, timeout=SMTP_TIMEOUT_SECONDS) as server:
            if settings.SMTP_USE_TLS and not settings.SMTP_USE_SSL:
                server.starttls()
            if settings.SMTP_USERNAME:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        raise EmailDeliveryError(f"SMTP send failed: {e}") from e
    return None


_PROVIDERS: dict[str, Callable[[str, str, str], str | None]] = {
    "resend": _send_resend,
    "ses": _send_ses,
    "gmail": _send_smtp,
}


def _normalize_provider(raw: str | None) -> str:
    """resend (default) | ses | gmail, with `smtp` accepted for gmail."""
    provider = (raw or "").strip().lower() or "resend"
    provider = "gmail" if provider == "smtp" else provider
    if provider not in _PROVIDERS:
        raise EmailNotConfiguredError(
            f"Unsupported EMAIL_PROVIDER={provider!r}. Supported: {', '.join(sorted(_PROVIDERS))}."
        )
    return provider


def send_email(to_email: str, subject: str, body: str) -> str | None:
    """
    Plaintext send through EMAIL_PROVIDER. Returns the provider message id when
    the provider reports one.
    """
    provider = _normalize_provider(settings.EMAIL_PROVIDER)
    msg_id = _PROVIDERS[provider](to_email, subject, body)
    logger.info("Email sent: provider=%s to=%s msg_id=%s", provider, to_email, msg_id)
    return msg_id
