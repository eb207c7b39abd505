import threading

from accessgate.adapters.dev_email import DevEmailAdapter
from accessgate.adapters.email_dispatch import (
    TimedEmailDispatcher,
    render_code_email,
    render_emergency_email,
)
from accessgate.core.ports.email import EmailResult


class HangingEmail:
    def __init__(self) -> None:
        self.release = threading.Event()

    def send_email(self, recipient, subject, body_html, body_text=None) -> EmailResult:
        self.release.wait(timeout=5)
        return EmailResult.success(recipient)


class FailingEmail:
    def send_email(self, recipient, subject, body_html, body_text=None) -> EmailResult:
        return EmailResult.failed(recipient, "mailbox full")


class RaisingEmail:
    def send_email(self, recipient, subject, body_html, body_text=None) -> EmailResult:
        raise ConnectionError("smtp down")


def test_render_code_email():
    subject, body_html, body_text = render_code_email("042917", 300)

    assert "setup code" in subject
    assert "042917" in body_text
    assert "5 minutes" in body_text
    assert body_html.startswith("<p>")


def test_render_emergency_email_escapes_html():
    _, body_html, body_text = render_emergency_email("a<b>@x.com", "tok", 24)

    assert "a<b>@x.com" in body_text
    assert "a&lt;b&gt;@x.com" in body_html


def test_send_delivers():
    email = DevEmailAdapter()
    dispatcher = TimedEmailDispatcher(email, timeout_seconds=2)
    try:
        assert dispatcher.send("a@x.com", "s", "<p>b</p>", "b") is True
    finally:
        dispatcher.shutdown()
    assert email.get_last_email().recipient == "a@x.com"


def test_send_times_out():
    email = HangingEmail()
    dispatcher = TimedEmailDispatcher(email, timeout_seconds=0.05)
    try:
        assert dispatcher.send("a@x.com", "s", "b") is False
    finally:
        email.release.set()
        dispatcher.shutdown()


def test_failed_and_raising_transports_report_false():
    for transport in (FailingEmail(), RaisingEmail()):
        dispatcher = TimedEmailDispatcher(transport, timeout_seconds=1)
        try:
            assert dispatcher.send("a@x.com", "s", "b") is False
        finally:
            dispatcher.shutdown()


def test_dev_adapter_hides_bodies_by_default(caplog):
    caplog.set_level("INFO")
    DevEmailAdapter().send_email("a@x.com", "Code", "<p>123456</p>")

    assert "a@x.com" in caplog.text
    assert "123456" not in caplog.text
