"""
Email alerts to the management team.
Sent from background tasks after the response; failures are logged and never reach the caller.
"""
import smtplib
from datetime import datetime, timezone
from email.message import EmailMessage
from html import escape
from typing import List, Optional

import httpx

from ..config import Settings
from ..logging import structlog
from ..models.models import BreakdownReport, BreakRequest


log = structlog.get_logger(__name__)


def _iso(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _send_via_api(settings: Settings, to: List[str], subject: str, body: str, html: bool) -> None:
    payload = {
        "personalizations": [{"to": [{"email": e} for e in to], "subject": subject}],
        "from": {"email": settings.email_from},
        "content": [{"type": "text/html" if html else "text/plain", "value": body}],
    }
    resp = httpx.post(
        settings.email_api_url,
        json=payload,
        headers={"Authorization": f"Bearer {settings.email_api_key}"},
        timeout=15.0,
    )
    resp.raise_for_status()


def _send_via_smtp(settings: Settings, to: List[str], subject: str, body: str, html: bool) -> None:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.email_from
    msg["To"] = ", ".join(to)
    if html:
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(body, subtype="html")
    else:
        msg.set_content(body)
    if settings.email_secure:
        with smtplib.SMTP_SSL(settings.email_host, settings.email_port) as s:
            if settings.email_user and settings.email_pass:
                s.login(settings.email_user, settings.email_pass)
            s.send_message(msg)
    else:
        with smtplib.SMTP(settings.email_host, settings.email_port) as s:
            s.starttls()
            if settings.email_user and settings.email_pass:
                s.login(settings.email_user, settings.email_pass)
            s.send_message(msg)


def send_email(settings: Settings, subject: str, body: str, html: bool = False, to: Optional[List[str]] = None) -> bool:
    """
    Send one email to ``to`` (defaults to the management list).

    Returns True when a transport accepted the message, False when sending was skipped.
    Transport errors propagate to the caller.
    """
    if not settings.enable_email:
        return False
    recipients = to if to is not None else settings.management_email_list
    if not recipients:
        log.warning("email_skipped", reason="no recipients", subject=subject)
        return False
    if settings.email_api_key:
        _send_via_api(settings, recipients, subject, body, html)
        return True
    if settings.email_host:
        _send_via_smtp(settings, recipients, subject, body, html)
        return True
    log.warning("email_skipped", reason="no transport configured", subject=subject)
    return False


def break_request_message(settings: Settings, br: BreakRequest):
    subject = settings.break_request_email_subject or "New Break Request Submitted"
    body = settings.break_request_email_body or (
        "A new break request has been submitted.\n\n"
        f"Type: {br.break_type}\n"
        f"Duration: {br.break_duration:g} minutes\n"
        f"Driver: {br.driver_name}\n"
        f"Company: {br.company_name}\n"
        f"Location: {br.location}\n"
        f"User ID: {br.user_id}\n"
        f"Submission Date: {_iso(br.submission_date)}"
    )
    return subject, body


def breakdown_report_message(report: BreakdownReport):
    subject = f"URGENT: Truck Breakdown Report - {report.truck_registration_number}"
    rows = [
        ("Truck Registration Number", report.truck_registration_number),
        ("Fleet Number", report.fleet_number),
        ("Driver", report.driver_full_names),
        ("Driver Phone", report.cellphone_number),
        ("Supervisor", report.supervisor_name),
        ("Supervisor Phone", report.supervisor_cellphone_number),
        ("Company", report.company_name),
        ("Location", report.breakdown_location),
        ("Issue Description", report.issue_description),
        ("Reported By", f"User ID {report.user_id}"),
        ("Report Time", _iso(report.submission_date)),
        ("Status", report.status),
        ("Slip Picture", report.slip_picture),
        ("Seal 1 Picture", report.seal_1_picture),
        ("Seal 2 Picture", report.seal_2_picture),
    ]
    lines = "\n".join(f"<p><strong>{label}:</strong> {escape(str(value))}</p>" for label, value in rows)
    return subject, f"<h2>Truck Breakdown Alert</h2>\n{lines}"


def notify_break_request(settings: Settings, br: BreakRequest) -> None:
    subject, body = break_request_message(settings, br)
    try:
        if send_email(settings, subject, body):
            log.info("break_request_email_sent", break_request_id=br.id)
    except (smtplib.SMTPException, httpx.HTTPError, OSError) as e:
        log.error("break_request_email_failed", break_request_id=br.id, error=str(e))


def notify_breakdown_report(settings: Settings, report: BreakdownReport) -> None:
    subject, body = breakdown_report_message(report)
    try:
        if send_email(settings, subject, body, html=True):
            log.info("breakdown_email_sent", breakdown_report_id=report.id)
    except (smtplib.SMTPException, httpx.HTTPError, OSError) as e:
        log.error("breakdown_email_failed", breakdown_report_id=report.id, error=str(e))
