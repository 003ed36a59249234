# schemas.py

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===================== Directory Records =====================
class EntityRecord(BaseModel):
    """
    Fields shared by every onboarded account filed under a ward.
    """
    nic: str = Field(..., description="National identity card number.")
    email: Optional[EmailStr] = None
    phoneNumber: Optional[str] = Field(None, description="Local 10-digit form.")
    municipalCouncil: str
    district: str
    ward: str

    status: str = Field(default="active", description="Lifecycle flag.")
    passwordChangeRequired: bool = Field(
        True,
        description="The generated password must be replaced on first login."
    )
    createdAt: datetime = Field(default_factory=_utcnow)


class SupervisorRecord(EntityRecord):
    supervisorId: str
    name: str


class DriverRecord(EntityRecord):
    truckId: str
    driverName: str
    licensePlate: str
    supervisorId: str = Field(..., description="Owning supervisor.")


class IndexEntry(BaseModel):
    """Secondary uniqueness index document (nationalIds/*, licensePlates/*)."""
    entityId: str
    kind: str
    path: str
    createdAt: datetime = Field(default_factory=_utcnow)


# ===================== API Envelopes =====================
class SuccessResponse(BaseModel):
    success: bool = True
    data: Dict[str, Any]


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
