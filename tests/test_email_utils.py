import pytest

import config
import email_utils
from email_utils import EmailNotifier, driver_credentials_message, supervisor_credentials_message


def test_supervisor_message_carries_credentials_and_area():
    message = supervisor_credentials_message({
        "name": "Nimal <Perera>",
        "supervisorId": "SUPAB12CD",
        "password": "5678abcd",
        "municipalCouncil": "colombo",
        "district": "Colombo",
        "ward": "Ward-01",
    })

    assert message["subject"] == "Your Supervisor Account Credentials"
    assert "SUPAB12CD" in message["html"]
    assert "5678abcd" in message["html"]
    assert "Ward: Ward-01" in message["html"]
    assert "Nimal &lt;Perera&gt;" in message["html"]
    assert "Phone Number" not in message["html"]


def test_driver_message_includes_vehicle_number():
    message = driver_credentials_message({
        "driverName": "Kamal",
        "truckId": "TRUCKX1Y2Z3",
        "password": "678Vabcd",
        "licensePlate": "WP AB-1234",
        "phoneNumber": "0712345678",
    })

    assert message["subject"] == "Your Driver Account Credentials"
    assert "Vehicle Number: WP AB-1234" in message["html"]
    assert "Phone Number: 0712345678" in message["html"]
    assert "truck driver account" in message["html"]


def test_notifier_hands_rendered_message_to_sender():
    sent = []
    notifier = EmailNotifier(sender=lambda to, subject, body: sent.append((to, subject, body)))

    notifier.send_credentials("driver", "kamal@vatelanka.lk", {
        "driverName": "Kamal", "truckId": "TRUCKX1Y2Z3", "password": "pw",
    })

    assert sent[0][0] == "kamal@vatelanka.lk"
    assert sent[0][1] == "Your Driver Account Credentials"


def test_send_mail_requires_smtp_settings(monkeypatch):
    monkeypatch.setattr(config, "SMTP_HOST", None)

    with pytest.raises(RuntimeError):
        email_utils.send_mail("a@vatelanka.lk", "subject", "<p>hi</p>")


def test_send_mail_over_ssl(monkeypatch):
    monkeypatch.setattr(config, "SMTP_HOST", "smtp.vatelanka.lk")
    monkeypatch.setattr(config, "SMTP_PORT", 465)
    monkeypatch.setattr(config, "SMTP_USER", "noreply@vatelanka.lk")
    monkeypatch.setattr(config, "SMTP_PASSWORD", "secret")
    monkeypatch.setattr(config, "SMTP_USE_SSL", True)

    calls = []

    class _SMTP:
        def __init__(self, host, port):
            calls.append(("connect", host, port))

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def login(self, user, password):
            calls.append(("login", user))

        def send_message(self, msg):
            calls.append(("send", msg["To"], msg["Subject"]))

    monkeypatch.setattr(email_utils.smtplib, "SMTP_SSL", _SMTP)

    email_utils.send_mail("a@vatelanka.lk", "Welcome", "<p>hi</p>")

    assert calls == [
        ("connect", "smtp.vatelanka.lk", 465),
        ("login", "noreply@vatelanka.lk"),
        ("send", "a@vatelanka.lk", "Welcome"),
    ]


def test_send_mail_refuses_unparseable_port(monkeypatch):
    monkeypatch.setattr(config, "SMTP_HOST", "smtp.vatelanka.lk")
    monkeypatch.setattr(config, "SMTP_USER", "noreply@vatelanka.lk")
    monkeypatch.setattr(config, "SMTP_PASSWORD", "secret")
    monkeypatch.setattr(config, "SMTP_PORT", None)

    with pytest.raises(RuntimeError):
        email_utils.send_mail("a@vatelanka.lk", "subject", "<p>hi</p>")
