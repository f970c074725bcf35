"""Outbound notifications: email via Resend, SMS via an HTTP gateway.

Senders are fire-and-forget. They return True on success, log and return
False on any failure, and never raise into the workflow that triggered them.
"""

from __future__ import annotations

import logging

import httpx

from app.config import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()

STATUS_LABELS = {
    "pending": "Pending",
    "scheduled": "Scheduled",
    "assigned": "Assigned to technician",
    "in_progress": "In progress",
    "waiting_parts": "Waiting for parts",
    "completed": "Completed",
    "cancelled": "Cancelled",
}


def _send_email(to: str, subject: str, html: str) -> bool:
    """Send an email via Resend. Returns True on success."""
    cfg = _settings.notifications
    if not cfg.enabled:
        logger.debug("Notifications disabled, email to %s skipped: %s", to, subject)
        return False
    if not to:
        logger.warning("No recipient address, email not sent: %s", subject)
        return False
    if not cfg.resend_api_key:
        logger.warning("RESEND API key not set, email to %s not sent: %s", to, subject)
        return False

    import resend
    resend.api_key = cfg.resend_api_key

    try:
        resend.Emails.send({
            "from": cfg.email_from,
            "to": [to],
            "subject": subject,
            "html": html,
        })
        return True
    except Exception:
        logger.exception("Failed to send email to %s", to)
        return False


def _send_sms(to: str, message: str) -> bool:
    """Post a text message to the configured SMS gateway. Returns True on success."""
    cfg = _settings.notifications
    if not cfg.enabled:
        logger.debug("Notifications disabled, SMS to %s skipped", to)
        return False
    if not to:
        logger.warning("No phone number, SMS not sent")
        return False
    if not cfg.sms_gateway_url:
        logger.warning("SMS gateway not configured, SMS to %s not sent", to)
        return False

    headers = {}
    if cfg.sms_api_key:
        headers["Authorization"] = f"Bearer {cfg.sms_api_key}"
    try:
        resp = httpx.post(
            cfg.sms_gateway_url,
            json={"to": to, "message": message},
            headers=headers,
            timeout=cfg.sms_timeout,
        )
        resp.raise_for_status()
        return True
    except httpx.HTTPError:
        logger.exception("Failed to send SMS to %s", to)
        return False


def notify_part_requested(
    service_id: int, order_id: int, part_name: str, quantity: int, urgency: str,
) -> dict:
    """Tell the office a technician needs a part."""
    cfg = _settings.notifications
    label = "URGENT " if urgency == "urgent" else ""
    subject = f"{label}Spare part requested for service #{service_id}"
    html = f"""
    <h2>Spare part request</h2>
    <p>Service <strong>#{service_id}</strong> is now waiting for parts.</p>
    <p>Order #{order_id}: {quantity} x <strong>{part_name}</strong> (urgency: {urgency})</p>
    <p><a href="{_settings.app_url}/admin/spare-parts">Open pending orders</a></p>
    """
    sms = f"Service #{service_id}: {label}part request {quantity} x {part_name} (order #{order_id})"
    return {
        "email_sent": _send_email(cfg.admin_email, subject, html),
        "sms_sent": _send_sms(cfg.admin_phone, sms),
    }


def notify_part_received(technician_phone: str, technician_name: str, service_id: int, part_name: str) -> bool:
    message = (
        f"{technician_name}, the part '{part_name}' for service #{service_id} "
        f"has arrived. The service is ready to continue."
    )
    return _send_sms(technician_phone, message)


def notify_technician_assigned(
    technician_phone: str, technician_name: str, service_id: int, description: str,
) -> bool:
    short = description if len(description) <= 80 else description[:77] + "..."
    return _send_sms(technician_phone, f"{technician_name}, you were assigned service #{service_id}: {short}")


def notify_status_change(client_email: str, client_name: str, service_id: int, status: str) -> bool:
    """Email the client whenever their service reaches a status they care about."""
    label = STATUS_LABELS.get(status, status)
    html = f"""
    <h2>Service #{service_id} update</h2>
    <p>Dear {client_name},</p>
    <p>The status of your service is now: <strong>{label}</strong>.</p>
    """
    return _send_email(client_email, f"Service #{service_id}: {label}", html)
