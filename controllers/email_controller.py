"""
Booking confirmation and reminder emails.

Each company can switch either email off (email_settings) and override the
subject and the text around the booking details (email_templates). Every
attempt is written to email_logs; a reminder is never sent twice for the
same booking. Without SMTP_HOST nothing leaves the server and the attempt is
logged as simulated.
"""
import asyncio
import smtplib
import logging
from email.mime.text import MIMEText
from datetime import datetime, timezone, timedelta
from typing import Optional, Tuple

from fastapi import HTTPException

from config import (
    SMTP_HOST, SMTP_PORT, SMTP_USERNAME, SMTP_PASSWORD, SMTP_USE_TLS,
    SMTP_FROM_EMAIL, SMTP_FROM_NAME, REMINDER_DEFAULT_HOURS, REMINDER_LOOKAHEAD_HOURS,
)
from database import db
from models.auth import Profile, UserRole
from models.booking import BookingStatus
from models.email import EmailLog, EmailResult, EmailStatus, EmailType, ReminderRunResult
from controllers.booking_controller import parse_datetime

logger = logging.getLogger(__name__)

WEEKDAYS_IT = ["lunedì", "martedì", "mercoledì", "giovedì", "venerdì", "sabato", "domenica"]
MONTHS_IT = [
    "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno",
    "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre",
]

FOOTER = "Questa email è stata inviata automaticamente da Bravo! - La piattaforma per il volontariato aziendale"


# ── Formatting ──────────────────────────────────────────

def format_date_it(dt: datetime) -> str:
    return f"{WEEKDAYS_IT[dt.weekday()]} {dt.day} {MONTHS_IT[dt.month - 1]} {dt.year}"


def format_time(dt: datetime) -> str:
    return dt.strftime("%H:%M")


def default_texts(email_type: str, profile: dict, experience: dict) -> Tuple[str, str, str]:
    name = profile.get("first_name") or ""
    title = experience.get("title", "")
    if email_type == EmailType.BOOKING_REMINDER:
        return (
            f"Promemoria: {title} - Domani!",
            f"Ciao {name},\n\nTi ricordiamo che domani hai un'esperienza di volontariato!",
            "Non vediamo l'ora di vederti! Grazie per il tuo impegno.\n\nIl team Bravo!",
        )
    return (
        f"Conferma prenotazione: {title}",
        f"Ciao {name},\n\nLa tua prenotazione è stata confermata con successo!",
        "Ti aspettiamo! Grazie per il tuo impegno nel volontariato.\n\nIl team Bravo!",
    )


def build_booking_email(email_type: str, profile: dict, experience: dict, exp_date: dict, template: Optional[dict] = None) -> Tuple[str, str]:
    """Subject and plain-text body; template fields that are empty fall back to the defaults."""
    template = template or {}
    subject, intro, closing = default_texts(email_type, profile, experience)
    subject = template.get("subject") or subject
    intro = template.get("intro_text") or intro
    closing = template.get("closing_text") or closing

    start = parse_datetime(exp_date["start_datetime"])
    end = parse_datetime(exp_date["end_datetime"])

    lines = [intro, "", experience.get("title", "")]
    if experience.get("category"):
        lines.append(f"Categoria: {experience['category']}")
    if experience.get("association_name"):
        lines.append(f"Associazione: {experience['association_name']}")
    lines.append(f"Data: {format_date_it(start)}")
    lines.append(f"Orario: {format_time(start)} - {format_time(end)}")
    place = ", ".join(p for p in (experience.get("city"), experience.get("address")) if p)
    if place:
        lines.append(f"Luogo: {place}")
    if experience.get("description"):
        lines += ["", experience["description"]]
    lines += ["", closing, "", "--", FOOTER]
    return subject, "\n".join(lines)


def is_reminder_due(start: datetime, now: datetime, hours_before: float) -> bool:
    """True inside the one-hour slot that ends `hours_before` hours before the start."""
    hours_until = (start - now).total_seconds() / 3600
    return hours_before - 1 <= hours_until <= hours_before


# ── Delivery ────────────────────────────────────────────

def deliver(to_email: str, subject: str, body: str) -> str:
    """Send one plain-text email; returns the status to log. SMTP errors propagate."""
    if not SMTP_HOST:
        logger.info(f"SMTP not configured, simulating email to {to_email}: {subject}")
        return EmailStatus.SIMULATED

    msg = MIMEText(body, "plain", "utf-8")
    msg["Subject"] = subject
    msg["From"] = f"{SMTP_FROM_NAME} <{SMTP_FROM_EMAIL}>"
    msg["To"] = to_email
    server = None
    try:
        if SMTP_USE_TLS:
            server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=10)
            server.starttls()
        else:
            server = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, timeout=10)
        if SMTP_USERNAME:
            server.login(SMTP_USERNAME, SMTP_PASSWORD)
        server.sendmail(SMTP_FROM_EMAIL, [to_email], msg.as_string())
        server.quit()
    except (smtplib.SMTPException, OSError):
        if server is not None:
            server.close()
        raise
    return EmailStatus.SENT


async def _log(booking_id: str, email_type: str, status: str, error: Optional[str] = None):
    await db.email_logs.insert_one(EmailLog(booking_id=booking_id, email_type=email_type, status=status, error=error).model_dump())


async def _send_and_log(booking_id: str, email_type: str, to_email: str, subject: str, body: str) -> str:
    try:
        status = await asyncio.to_thread(deliver, to_email, subject, body)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Sending {email_type} for booking {booking_id} to {to_email} failed: {e}")
        await _log(booking_id, email_type, EmailStatus.FAILED, str(e))
        return EmailStatus.FAILED
    await _log(booking_id, email_type, status)
    return status


async def _template(company_id: Optional[str], email_type: str) -> Optional[dict]:
    if not company_id:
        return None
    return await db.email_templates.find_one({"company_id": company_id, "template_type": email_type}, {"_id": 0})


# ── Jobs ────────────────────────────────────────────────

async def send_booking_confirmation(booking_id: str, current_user: Optional[Profile] = None) -> EmailResult:
    booking = await db.bookings.find_one({"id": booking_id}, {"_id": 0})
    if not booking or (current_user and current_user.role != UserRole.SUPER_ADMIN and booking["user_id"] != current_user.id):
        raise HTTPException(status_code=404, detail="Prenotazione non trovata")

    profile = await db.profiles.find_one({"id": booking["user_id"]}, {"_id": 0})
    exp_date = await db.experience_dates.find_one({"id": booking["experience_date_id"]}, {"_id": 0})
    experience = await db.experiences.find_one({"id": exp_date["experience_id"]}, {"_id": 0}) if exp_date else None
    if not profile or not experience:
        raise HTTPException(status_code=404, detail="Dati della prenotazione incompleti")

    settings = await db.email_settings.find_one({"company_id": profile.get("company_id")}, {"_id": 0}) if profile.get("company_id") else None
    if settings and not settings.get("confirmation_enabled", True):
        logger.info(f"Confirmation emails disabled for company {profile.get('company_id')}")
        return EmailResult(success=True, status="disabled", message="Email di conferma disattivate")

    template = await _template(profile.get("company_id"), EmailType.BOOKING_CONFIRMATION)
    subject, body = build_booking_email(EmailType.BOOKING_CONFIRMATION, profile, experience, exp_date, template)
    status = await _send_and_log(booking_id, EmailType.BOOKING_CONFIRMATION, profile["email"], subject, body)
    return EmailResult(success=status != EmailStatus.FAILED, status=status, to=profile["email"])


async def send_booking_reminders(now: Optional[datetime] = None) -> ReminderRunResult:
    """Remind every confirmed participant whose date falls in their company's reminder slot."""
    now = now or datetime.now(timezone.utc)
    settings_map = {s["company_id"]: s for s in await db.email_settings.find({}, {"_id": 0}).to_list(1000) if s.get("company_id")}

    dates = await db.experience_dates.find({
        "start_datetime": {"$gte": now.isoformat(), "$lte": (now + timedelta(hours=REMINDER_LOOKAHEAD_HOURS)).isoformat()},
    }, {"_id": 0}).to_list(1000)
    logger.info(f"Reminder run at {now.isoformat()}: {len(dates)} upcoming dates")

    result = ReminderRunResult()
    for exp_date in dates:
        settings = settings_map.get(exp_date.get("company_id")) or {}
        if not settings.get("reminder_enabled", True):
            continue
        hours_before = settings.get("reminder_hours_before") or REMINDER_DEFAULT_HOURS
        if not is_reminder_due(parse_datetime(exp_date["start_datetime"]), now, hours_before):
            continue

        experience = await db.experiences.find_one({"id": exp_date["experience_id"]}, {"_id": 0}) or {}
        bookings = await db.bookings.find(
            {"experience_date_id": exp_date["id"], "status": BookingStatus.CONFIRMED}, {"_id": 0}
        ).to_list(1000)
        for booking in bookings:
            already_sent = await db.email_logs.find_one({
                "booking_id": booking["id"],
                "email_type": EmailType.BOOKING_REMINDER,
                "status": {"$in": [EmailStatus.SENT, EmailStatus.SIMULATED]},
            })
            if already_sent:
                result.emails_skipped += 1
                continue
            profile = await db.profiles.find_one({"id": booking["user_id"]}, {"_id": 0})
            if not profile:
                logger.error(f"Profile not found for user {booking['user_id']}")
                continue
            template = await _template(profile.get("company_id"), EmailType.BOOKING_REMINDER)
            subject, body = build_booking_email(EmailType.BOOKING_REMINDER, profile, experience, exp_date, template)
            status = await _send_and_log(booking["id"], EmailType.BOOKING_REMINDER, profile["email"], subject, body)
            if status != EmailStatus.FAILED:
                result.emails_sent += 1

    logger.info(f"Reminder run complete. Sent: {result.emails_sent}, Skipped: {result.emails_skipped}")
    return result
