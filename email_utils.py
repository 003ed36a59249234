# email_utils.py
import logging
import smtplib
from email.message import EmailMessage
from html import escape
from typing import Any, Dict

import config

logger = logging.getLogger(__name__)


# ----------------------------- Templates -----------------------------

def _details_list(items: Dict[str, Any]) -> str:
    return "\n".join(
        f"<li>{escape(label)}: {escape(str(value))}</li>" for label, value in items.items() if value
    )


def _credentials_html(greeting_name: str, account_label: str, details: Dict[str, Any],
                      user_id: str, password: str) -> str:
    return f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background-color: #f8f9fa; padding: 20px; border-radius: 5px;">
      <h2 style="color: #2c3e50; margin-top: 0;">Welcome to VateLanka Service Portal</h2>
      <p style="font-size: 16px;">Dear {escape(greeting_name)},</p>
      <p>Your {escape(account_label)} account has been created successfully.</p>

      <div style="background-color: #fff; padding: 15px; border-radius: 5px; margin: 15px 0;">
        <p style="margin: 5px 0;"><strong>Assignment Details:</strong></p>
        <ul style="list-style: none; padding-left: 0;">
{_details_list(details)}
        </ul>
      </div>

      <div style="background-color: #fff; padding: 15px; border-radius: 5px; margin: 15px 0; border: 2px solid #e74c3c;">
        <p style="margin: 5px 0; color: #e74c3c;"><strong>Your Login Credentials:</strong></p>
        <p style="margin: 5px 0;">User ID: <strong>{escape(user_id)}</strong></p>
        <p style="margin: 5px 0;">Password: <strong>{escape(password)}</strong></p>
      </div>

      <div style="background-color: #fff4e6; padding: 15px; border-radius: 5px; margin: 15px 0;">
        <p style="color: #fd7e14; margin: 0;"><strong>Important:</strong></p>
        <ul>
          <li>You will be asked to change this password on first login</li>
          <li>If you forgot your password please contact Admin Help</li>
          <li>Do not share your login information</li>
        </ul>
      </div>

      <hr style="border: none; border-top: 1px solid #eee; margin: 20px 0;">
      <p style="color: #666;">Best regards,<br>VateLanka</p>
    </div>
  </div>
</body>
</html>
"""


def supervisor_credentials_message(data: Dict[str, Any]) -> Dict[str, str]:
    details = {
        "Municipal Council": data.get("municipalCouncil"),
        "District": data.get("district"),
        "Ward": data.get("ward"),
        "Phone Number": data.get("phoneNumber"),
    }
    return {
        "subject": "Your Supervisor Account Credentials",
        "html": _credentials_html(data["name"], "supervisor", details, data["supervisorId"], data["password"]),
    }


def driver_credentials_message(data: Dict[str, Any]) -> Dict[str, str]:
    details = {
        "Municipal Council": data.get("municipalCouncil"),
        "District": data.get("district"),
        "Ward": data.get("ward"),
        "Vehicle Number": data.get("licensePlate"),
        "Phone Number": data.get("phoneNumber"),
    }
    return {
        "subject": "Your Driver Account Credentials",
        "html": _credentials_html(data["driverName"], "truck driver", details, data["truckId"], data["password"]),
    }


CREDENTIAL_TEMPLATES = {
    "supervisor": supervisor_credentials_message,
    "driver": driver_credentials_message,
}


# ----------------------------- Sending -----------------------------

def send_mail(to_email: str, subject: str, html_body: str):
    if not config.SMTP_HOST or not config.SMTP_USER or not config.SMTP_PASSWORD:
        raise RuntimeError("Set SMTP_HOST, SMTP_USER and SMTP_PASSWORD env vars first")
    if config.SMTP_PORT is None:
        raise RuntimeError("SMTP_PORT must be a number")
    if not to_email:
        raise ValueError("Receiver email is missing")

    msg = EmailMessage()
    msg["From"] = f'"{config.MAIL_SENDER_NAME}" <{config.SMTP_USER}>'
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content("Your account has been created. Please view this message in an HTML capable mail client.")
    msg.add_alternative(html_body, subtype="html")

    if config.SMTP_USE_SSL:
        with smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT) as smtp:
            smtp.login(config.SMTP_USER, config.SMTP_PASSWORD)
            smtp.send_message(msg)
    else:
        with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT) as smtp:
            smtp.starttls()
            smtp.login(config.SMTP_USER, config.SMTP_PASSWORD)
            smtp.send_message(msg)


class EmailNotifier:
    """Sends the onboarding credential mail for an entity kind."""

    def __init__(self, sender=send_mail):
        self.sender = sender

    def send_credentials(self, kind: str, to_email: str, data: Dict[str, Any]) -> None:
        message = CREDENTIAL_TEMPLATES[kind](data)
        self.sender(to_email, message["subject"], message["html"])
        logger.info("Credentials sent to %s %s", kind, to_email)
