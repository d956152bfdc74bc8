import smtplib

import pytest

from app.core.config import Config, MailSettings, NotificationSettings
from app.models.notification import Notification
from app.services.notification import (
    CompositeNotifier,
    EmailNotifier,
    InAppNotifier,
    NotificationKind,
    Notifier,
    build_notifier,
    render,
)

PAYLOAD = {
    "application_id": 1,
    "leave_type": "CASUAL_LEAVE",
    "start_date": "2025-02-03",
    "end_date": "2025-02-05",
    "number_of_days": 3.0,
    "status": "APPROVED",
    "employee_name": "Emp",
    "employee_email": "emp@alphacorp.com",
}


class Recorder(Notifier):
    def __init__(self):
        self.calls = 0

    def notify(self, recipient_employee_id, kind, payload):
        self.calls += 1


class Broken(Notifier):
    def notify(self, recipient_employee_id, kind, payload):
        raise RuntimeError("channel down")


def _config(**mail):
    return Config(
        mail=MailSettings(**mail),
        notifications=NotificationSettings(in_app_enabled=False, email_enabled=True, retry_attempts=2),
    )


def test_render_templates():
    title, message, ui_type = render(NotificationKind.LEAVE_APPROVED, PAYLOAD)
    assert title == "Leave Approved"
    assert "3.0 days" in message
    assert ui_type == "success"

    _, message, ui_type = render(NotificationKind.LEAVE_REJECTED, PAYLOAD)
    assert message.endswith("Reason: not specified")
    assert ui_type == "error"


def test_render_unknown_kind():
    with pytest.raises(ValueError):
        render("leave_exploded", PAYLOAD)


def test_in_app_notifier_writes_row(db_session, session_factory, employee):
    payload = {**PAYLOAD, "application_id": None, "link": "/api/leave-applications/1"}
    InAppNotifier(session_factory).notify(employee.id, NotificationKind.LEAVE_AWAITING_HR, payload)

    notification = db_session.query(Notification).filter_by(employee_id=employee.id).one()
    assert notification.kind == NotificationKind.LEAVE_AWAITING_HR
    assert notification.type == "info"
    assert notification.is_read is False
    assert notification.link == "/api/leave-applications/1"


def test_notifier_interface_requires_notify():
    class Silent(Notifier):
        pass

    with pytest.raises(TypeError):
        Silent()


def test_composite_survives_one_failing_channel():
    recorder = Recorder()
    CompositeNotifier([Broken(), recorder]).notify(1, NotificationKind.LEAVE_APPROVED, PAYLOAD)
    assert recorder.calls == 1


def test_composite_raises_when_every_channel_fails():
    with pytest.raises(RuntimeError):
        CompositeNotifier([Broken(), Broken()]).notify(1, NotificationKind.LEAVE_APPROVED, PAYLOAD)


def test_email_notifier_without_smtp_only_logs(monkeypatch):
    notifier = EmailNotifier(_config(host=None, username=None, password=None))
    monkeypatch.setattr(notifier, "_send", lambda msg: pytest.fail("SMTP must not be used"))

    notifier.notify(1, NotificationKind.LEAVE_APPROVED, PAYLOAD)


def test_email_notifier_skips_missing_address(monkeypatch):
    notifier = EmailNotifier(_config(host="smtp.local", username="u", password="p"))
    monkeypatch.setattr(notifier, "_send", lambda msg: pytest.fail("no recipient"))

    notifier.notify(1, NotificationKind.LEAVE_APPROVED, {**PAYLOAD, "employee_email": None})


def test_email_notifier_retries_transient_failures(monkeypatch):
    notifier = EmailNotifier(_config(host="smtp.local", username="u", password="p"))
    monkeypatch.setattr("tenacity.nap.time.sleep", lambda seconds: None)
    sent = []

    def flaky_send(msg):
        if not sent:
            sent.append(None)
            raise smtplib.SMTPServerDisconnected("dropped")
        sent.append(msg)

    monkeypatch.setattr(notifier, "_send", flaky_send)
    notifier.notify(1, NotificationKind.LEAVE_APPROVED, PAYLOAD)

    msg = sent[-1]
    assert msg["To"] == "emp@alphacorp.com"
    assert msg["Subject"] == "Leave Approved"
    assert msg.get_content().startswith("Hello Emp,")


def test_build_notifier_respects_toggles():
    notifier = build_notifier(_config())
    assert isinstance(notifier, CompositeNotifier)
    assert [type(n) for n in notifier.notifiers] == [EmailNotifier]
