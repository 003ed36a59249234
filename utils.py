import re
import secrets
import string
from typing import Optional

from pydantic.networks import validate_email

import config

# ----------------------------- Patterns -----------------------------
NIC_PATTERN = re.compile(r"^(\d{12}|\d{9}[VvXx])$")
PHONE_DIGITS = 10

_BASE36 = string.digits + string.ascii_lowercase


def plate_pattern(region: Optional[str] = None) -> re.Pattern:
    region = region or config.PLATE_REGION
    return re.compile(rf"^{re.escape(region)} [A-Z]{{2,3}}-\d{{4}}$")


# ----------------------------- Field Validation -----------------------------
def is_valid_nic(nic: str) -> bool:
    return bool(NIC_PATTERN.match(nic))


def normalize_email(raw: str) -> Optional[str]:
    """Lower-cased bare address, or None when it is not a local@domain.tld address."""
    if "<" in raw or " " in raw.strip():
        return None
    try:
        _, address = validate_email(raw.strip())
    except ValueError:
        return None
    return address.lower()


def normalize_phone(raw: str) -> Optional[str]:
    """
    Strips everything but digits. Returns None unless exactly 10 digits remain.

    "071-234-5678" -> "0712345678"
    """
    digits = re.sub(r"\D", "", raw or "")
    return digits if len(digits) == PHONE_DIGITS else None


def to_international(local_digits: str, country_code: Optional[str] = None) -> str:
    """"0712345678" -> "+94712345678" (trunk zero dropped, calling code prepended)."""
    country_code = country_code or config.COUNTRY_CALLING_CODE
    if local_digits.startswith("0"):
        local_digits = local_digits[1:]
    return f"+{country_code}{local_digits}"


def is_valid_plate(plate: str, region: Optional[str] = None) -> bool:
    return bool(plate_pattern(region).match(plate))


def clean_segment(value: str) -> Optional[str]:
    """Trims a location path segment; None if it cannot be used as a document id."""
    value = (value or "").strip()
    if not value or "/" in value or value in (".", ".."):
        return None
    return value


# ----------------------------- Generators -----------------------------
def random_token(length: int, alphabet: str = _BASE36) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_entity_id(prefix: str) -> str:
    """SUP4K9Q2Z, TRUCKX81LMA ..."""
    return f"{prefix}{random_token(6).upper()}"


def generate_initial_password(nic: str) -> str:
    # Last four NIC characters plus a short random suffix. Not a strong secret.
    return f"{nic[-4:]}{random_token(4)}"
