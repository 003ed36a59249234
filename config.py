# config.py

import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _csv(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def _flag(name: str, default: str = "1") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _port(name: str, default: int) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return None


# ----------------------------- Directory Store -----------------------------
DIRECTORY_BACKEND = os.getenv("DIRECTORY_BACKEND", "firestore").lower()  # firestore | mongo | memory

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "vatelanka")
MONGODB_COLLECTION = os.getenv("MONGODB_COLLECTION", "directory")

# ----------------------------- Firebase -----------------------------
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")
FIREBASE_CLIENT_EMAIL = os.getenv("FIREBASE_CLIENT_EMAIL")
FIREBASE_PRIVATE_KEY = os.getenv("FIREBASE_PRIVATE_KEY")

# ----------------------------- HTTP / CORS -----------------------------
CORS_ALLOW_ORIGINS = _csv(
    "CORS_ALLOW_ORIGINS",
    "http://localhost:3000,https://vatelanka.lk,https://vate-lanka-lk.vercel.app",
)
CORS_ALLOW_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = [
    "X-CSRF-Token",
    "X-Requested-With",
    "Accept",
    "Accept-Version",
    "Content-Length",
    "Content-MD5",
    "Content-Type",
    "Date",
    "X-Api-Version",
    "Authorization",
]

# ----------------------------- Onboarding Rules -----------------------------
COUNTRY_CALLING_CODE = os.getenv("COUNTRY_CALLING_CODE", "94")
PLATE_REGION = os.getenv("PLATE_REGION", "WP")

# Empty list means any district is accepted
ALLOWED_DISTRICTS = _csv("ALLOWED_DISTRICTS")

# ward | council | global
NAME_UNIQUENESS_SCOPE = os.getenv("NAME_UNIQUENESS_SCOPE", "ward").lower()

# ----------------------------- Email -----------------------------
SEND_CREDENTIAL_EMAILS = _flag("SEND_CREDENTIAL_EMAILS", "1")

SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = _port("SMTP_PORT", 465)  # None when the value is not a number
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_USE_SSL = _flag("SMTP_USE_SSL", "1")
MAIL_SENDER_NAME = os.getenv("MAIL_SENDER_NAME", "VateLanka - Waste Management System")


def validate_config() -> List[str]:
    """
    Returns a list of configuration problems (empty if everything looks usable).
    """
    errors = []

    if DIRECTORY_BACKEND not in ("firestore", "mongo", "memory"):
        errors.append(f"DIRECTORY_BACKEND must be firestore, mongo or memory (got {DIRECTORY_BACKEND!r})")

    if NAME_UNIQUENESS_SCOPE not in ("ward", "council", "global"):
        errors.append(f"NAME_UNIQUENESS_SCOPE must be ward, council or global (got {NAME_UNIQUENESS_SCOPE!r})")

    if not FIREBASE_PROJECT_ID:
        errors.append("FIREBASE_PROJECT_ID not set")

    if SEND_CREDENTIAL_EMAILS and not (SMTP_HOST and SMTP_USER and SMTP_PASSWORD):
        errors.append("SEND_CREDENTIAL_EMAILS is on but SMTP_HOST / SMTP_USER / SMTP_PASSWORD are not all set")

    if SMTP_PORT is None:
        errors.append("SMTP_PORT must be a number")

    if not COUNTRY_CALLING_CODE.isdigit():
        errors.append("COUNTRY_CALLING_CODE must be digits only")

    return errors
