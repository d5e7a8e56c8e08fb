"""
Booking email composition, reminder timing and SMTP delivery.
"""
import asyncio
import smtplib
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from controllers import email_controller
from controllers.email_controller import build_booking_email, deliver, format_date_it, is_reminder_due
from models.email import EmailStatus, EmailType

PROFILE = {"email": "anna@acme.it", "first_name": "Anna", "company_id": "co1"}
EXPERIENCE = {
    "title": "Pulizia del parco",
    "category": "Ambiente",
    "association_name": "Verde Vivo",
    "city": "Milano",
    "address": "Via Roma 1",
    "description": "Raccolta rifiuti nel parco.",
}
EXP_DATE = {"start_datetime": "2025-06-14T09:00:00+00:00", "end_datetime": "2025-06-14T13:30:00+00:00"}


# ═══════════════════════════════════════════════════════════════
# 1. COMPOSITION
# ═══════════════════════════════════════════════════════════════
class TestBuildEmail:

    def test_italian_date(self):
        assert format_date_it(datetime(2025, 6, 14, 9, 0)) == "sabato 14 giugno 2025"
        assert format_date_it(datetime(2025, 12, 1)) == "lunedì 1 dicembre 2025"

    def test_confirmation_defaults(self):
        subject, body = build_booking_email(EmailType.BOOKING_CONFIRMATION, PROFILE, EXPERIENCE, EXP_DATE)
        assert subject == "Conferma prenotazione: Pulizia del parco"
        assert body.startswith("Ciao Anna,\n\nLa tua prenotazione è stata confermata con successo!")
        assert "Data: sabato 14 giugno 2025" in body
        assert "Orario: 09:00 - 13:30" in body
        assert "Luogo: Milano, Via Roma 1" in body
        assert "Associazione: Verde Vivo" in body
        assert "Il team Bravo!" in body

    def test_reminder_defaults(self):
        subject, body = build_booking_email(EmailType.BOOKING_REMINDER, PROFILE, EXPERIENCE, EXP_DATE)
        assert subject == "Promemoria: Pulizia del parco - Domani!"
        assert "Ti ricordiamo che domani" in body

    def test_company_template_overrides(self):
        template = {"subject": "Grazie!", "intro_text": "Benvenuta", "closing_text": ""}
        subject, body = build_booking_email(EmailType.BOOKING_CONFIRMATION, PROFILE, EXPERIENCE, EXP_DATE, template)
        assert subject == "Grazie!"
        assert body.startswith("Benvenuta")
        # empty closing falls back to the default
        assert "Ti aspettiamo!" in body

    def test_optional_fields_omitted(self):
        _, body = build_booking_email(EmailType.BOOKING_CONFIRMATION, {"email": "x@acme.it"}, {"title": "Corsa"}, EXP_DATE)
        assert "Categoria" not in body
        assert "Luogo" not in body
        assert body.startswith("Ciao ,")


class TestReminderWindow:

    NOW = datetime(2025, 6, 13, 9, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("hours_until,due", [(24, True), (23.5, True), (23, True), (22.9, False), (24.1, False), (2, False)])
    def test_default_slot(self, hours_until, due):
        assert is_reminder_due(self.NOW + timedelta(hours=hours_until), self.NOW, 24) is due

    def test_custom_hours(self):
        assert is_reminder_due(self.NOW + timedelta(hours=47.5), self.NOW, 48) is True
        assert is_reminder_due(self.NOW + timedelta(hours=23.5), self.NOW, 48) is False


# ═══════════════════════════════════════════════════════════════
# 2. DELIVERY
# ═══════════════════════════════════════════════════════════════
class TestDeliver:

    def test_simulated_without_smtp_host(self, monkeypatch):
        monkeypatch.setattr(email_controller, "SMTP_HOST", "")
        smtp = MagicMock()
        monkeypatch.setattr(smtplib, "SMTP", smtp)
        assert deliver("anna@acme.it", "Ciao", "Body") == EmailStatus.SIMULATED
        smtp.assert_not_called()

    def test_sends_over_starttls(self, monkeypatch):
        monkeypatch.setattr(email_controller, "SMTP_HOST", "smtp.acme.it")
        monkeypatch.setattr(email_controller, "SMTP_USE_TLS", True)
        monkeypatch.setattr(email_controller, "SMTP_USERNAME", "bot")
        monkeypatch.setattr(email_controller, "SMTP_PASSWORD", "secret")
        server = MagicMock()
        monkeypatch.setattr(smtplib, "SMTP", MagicMock(return_value=server))

        assert deliver("anna@acme.it", "Conferma", "Testo") == EmailStatus.SENT
        server.starttls.assert_called_once()
        server.login.assert_called_once_with("bot", "secret")
        from_addr, to_addrs, raw = server.sendmail.call_args[0]
        assert to_addrs == ["anna@acme.it"]
        assert "Subject: Conferma" in raw
        server.quit.assert_called_once()

    def test_smtp_errors_propagate_and_close(self, monkeypatch):
        monkeypatch.setattr(email_controller, "SMTP_HOST", "smtp.acme.it")
        monkeypatch.setattr(email_controller, "SMTP_USE_TLS", True)
        server = MagicMock()
        server.sendmail.side_effect = smtplib.SMTPRecipientsRefused({"anna@acme.it": (550, b"no")})
        monkeypatch.setattr(smtplib, "SMTP", MagicMock(return_value=server))

        with pytest.raises(smtplib.SMTPException):
            deliver("anna@acme.it", "Conferma", "Testo")
        server.close.assert_called_once()
        server.quit.assert_not_called()

    def test_failed_starttls_closes_connection(self, monkeypatch):
        monkeypatch.setattr(email_controller, "SMTP_HOST", "smtp.acme.it")
        monkeypatch.setattr(email_controller, "SMTP_USE_TLS", True)
        server = MagicMock()
        server.starttls.side_effect = smtplib.SMTPNotSupportedError("STARTTLS extension not supported by server.")
        monkeypatch.setattr(smtplib, "SMTP", MagicMock(return_value=server))

        with pytest.raises(smtplib.SMTPException):
            deliver("anna@acme.it", "Conferma", "Testo")
        server.close.assert_called_once()
        server.sendmail.assert_not_called()

    def test_unreachable_host_propagates(self, monkeypatch):
        monkeypatch.setattr(email_controller, "SMTP_HOST", "smtp.acme.it")
        monkeypatch.setattr(email_controller, "SMTP_USE_TLS", False)
        monkeypatch.setattr(smtplib, "SMTP_SSL", MagicMock(side_effect=ConnectionRefusedError()))

        with pytest.raises(OSError):
            deliver("anna@acme.it", "Conferma", "Testo")


class TestSendAndLog:

    def test_failure_is_logged_not_raised(self, monkeypatch):
        fake_db = MagicMock()
        fake_db.email_logs.insert_one = AsyncMock()
        monkeypatch.setattr(email_controller, "db", fake_db)
        monkeypatch.setattr(email_controller, "deliver", MagicMock(side_effect=smtplib.SMTPServerDisconnected("gone")))

        status = asyncio.run(email_controller._send_and_log("b1", EmailType.BOOKING_CONFIRMATION, "anna@acme.it", "s", "b"))

        assert status == EmailStatus.FAILED
        logged = fake_db.email_logs.insert_one.call_args[0][0]
        assert logged["status"] == EmailStatus.FAILED
        assert logged["error"] == "gone"

    def test_delivery_runs_off_the_event_loop(self, monkeypatch):
        fake_db = MagicMock()
        fake_db.email_logs.insert_one = AsyncMock()
        monkeypatch.setattr(email_controller, "db", fake_db)
        threads = []

        def fake_deliver(to_email, subject, body):
            threads.append(threading.current_thread())
            return EmailStatus.SENT

        monkeypatch.setattr(email_controller, "deliver", fake_deliver)
        status = asyncio.run(email_controller._send_and_log("b1", EmailType.BOOKING_REMINDER, "anna@acme.it", "s", "b"))

        assert status == EmailStatus.SENT
        assert threads and threads[0] is not threading.main_thread()
