"""
Outbound email. Resend is tried first when an API key and sender are set,
then plain SMTP. Callers get ``(ok, error)`` and decide whether to log.
"""
import logging
import os
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage

import resend

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _SmtpConfig:
    host: str
    port: int
    username: str
    password: str
    sender: str


def _env(name: str) -> str:
    return (os.getenv(name) or "").strip()


def _resend_config() -> tuple[str, str] | None:
    api_key, sender = _env("RESEND_API_KEY"), _env("RESEND_FROM")
    return (api_key, sender) if api_key and sender else None


def _smtp_config() -> _SmtpConfig | None:
    host = _env("SMTP_HOST")
    username = _env("SMTP_USERNAME")
    sender = _env("SMTP_FROM") or username
    if not host or not sender:
        return None
    return _SmtpConfig(
        host=host,
        port=int(_env("SMTP_PORT") or "587"),
        username=username,
        password=_env("SMTP_PASSWORD"),
        sender=sender,
    )


def email_configured() -> bool:
    return _resend_config() is not None or _smtp_config() is not None


def _as_html(body: str) -> str:
    if "<" in body:
        return body
    return "<p>" + body.replace("\n", "<br/>") + "</p>"


def _send_resend(api_key: str, sender: str, to_email: str, subject: str, body: str) -> None:
    resend.api_key = api_key
    resend.Emails.send({"from": sender, "to": to_email, "subject": subject, "html": _as_html(body)})


def _send_smtp(cfg: _SmtpConfig, to_email: str, subject: str, body: str) -> None:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = cfg.sender
    msg["To"] = to_email
    msg.set_content(body)
    with smtplib.SMTP(cfg.host, cfg.port, timeout=10) as server:
        server.starttls()
        if cfg.username and cfg.password:
            server.login(cfg.username, cfg.password)
        server.send_message(msg)


def send_email(to_email: str, subject: str, body: str) -> tuple[bool, str | None]:
    error: str | None = "Email is not configured"

    resend_cfg = _resend_config()
    if resend_cfg is not None:
        try:
            _send_resend(*resend_cfg, to_email, subject, body)
            _logger.info("email_sent via=resend to=%s", to_email)
            return True, None
        except Exception as exc:  # resend raises its own error hierarchy plus transport errors
            error = str(exc)
            _logger.warning("email_send_failed via=resend to=%s error=%s", to_email, error)

    smtp_cfg = _smtp_config()
    if smtp_cfg is not None:
        try:
            _send_smtp(smtp_cfg, to_email, subject, body)
            _logger.info("email_sent via=smtp to=%s", to_email)
            return True, None
        except (smtplib.SMTPException, OSError) as exc:
            error = str(exc)
            _logger.warning("email_send_failed via=smtp to=%s error=%s", to_email, error)

    return False, error
