# workflow.py
"""
Onboarding workflow shared by every entity kind.

validate -> check location -> check uniqueness -> create account
-> write records -> notify

Steps before account creation only read. Index documents for the NIC and the
licence plate are reserved with create-if-absent writes, so two concurrent
requests for the same NIC cannot both be filed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Type

from fastapi.concurrency import run_in_threadpool

import config
import db
from db import DirectoryStore, DocumentExists
from email_utils import EmailNotifier
from identity import AccountExistsError, IdentityError, IdentityProvider
from schemas import DriverRecord, EntityRecord, IndexEntry, SupervisorRecord
from utils import (
    clean_segment,
    generate_entity_id,
    generate_initial_password,
    is_valid_nic,
    is_valid_plate,
    normalize_email,
    normalize_phone,
    to_international,
)

logger = logging.getLogger(__name__)

LOCATION_FIELDS = ("municipalCouncil", "district", "ward")
SCOPES = ("ward", "council", "global")


# ----------------------------- Errors -----------------------------
class OnboardingError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingFieldsError(OnboardingError):
    status_code = 400

    def __init__(self, fields: List[str]):
        super().__init__(f"Missing required fields: {', '.join(fields)}")
        self.fields = fields


class InvalidFieldError(OnboardingError):
    status_code = 400

    def __init__(self, field_name: str, message: str):
        super().__init__(message)
        self.field = field_name


class LocationNotFoundError(OnboardingError):
    status_code = 404


class DuplicateEntityError(OnboardingError):
    status_code = 400

    def __init__(self, field_name: str, message: str):
        super().__init__(message)
        self.field = field_name


class AccountCreationError(OnboardingError):
    status_code = 500


class RecordWriteError(OnboardingError):
    status_code = 500


# ----------------------------- Entity Kinds -----------------------------
@dataclass(frozen=True)
class EntityKind:
    key: str
    label: str
    id_prefix: str
    id_field: str
    name_field: str
    collection: str
    record_model: Type[EntityRecord]
    extra_required: Tuple[str, ...] = ()
    has_plate: bool = False

    @property
    def required_fields(self) -> Tuple[str, ...]:
        return (self.name_field, "nic") + self.extra_required + LOCATION_FIELDS


KINDS: Dict[str, EntityKind] = {
    "supervisor": EntityKind(
        key="supervisor",
        label="supervisor",
        id_prefix="SUP",
        id_field="supervisorId",
        name_field="name",
        collection=db.SUPERVISORS,
        record_model=SupervisorRecord,
    ),
    "driver": EntityKind(
        key="driver",
        label="truck driver",
        id_prefix="TRUCK",
        id_field="truckId",
        name_field="driverName",
        collection=db.TRUCKS,
        record_model=DriverRecord,
        extra_required=("licensePlate", "supervisorId"),
        has_plate=True,
    ),
}

OPTIONAL_FIELDS = ("email", "phoneNumber")


@dataclass
class OnboardingResult:
    entity_id: str
    password: str
    path: str
    data: Dict[str, Any] = field(default_factory=dict)


def _text(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


# ----------------------------- Workflow -----------------------------
class OnboardingWorkflow:
    def __init__(
        self,
        store: DirectoryStore,
        identity: IdentityProvider,
        notifier: Optional[EmailNotifier] = None,
        name_scope: Optional[str] = None,
        allowed_districts: Optional[List[str]] = None,
        country_code: Optional[str] = None,
        plate_region: Optional[str] = None,
        send_emails: Optional[bool] = None,
    ):
        self.store = store
        self.identity = identity
        self.notifier = notifier
        self.name_scope = (name_scope or config.NAME_UNIQUENESS_SCOPE).lower()
        if self.name_scope not in SCOPES:
            raise ValueError(f"Unknown uniqueness scope: {self.name_scope}")
        self.allowed_districts = config.ALLOWED_DISTRICTS if allowed_districts is None else allowed_districts
        self.country_code = country_code or config.COUNTRY_CALLING_CODE
        self.plate_region = plate_region or config.PLATE_REGION
        self.send_emails = config.SEND_CREDENTIAL_EMAILS if send_emails is None else send_emails

    async def onboard(self, kind_key: str, payload: Dict[str, Any]) -> OnboardingResult:
        kind = KINDS[kind_key]

        fields = self._validate(kind, payload or {})
        council, district, ward = (fields[f] for f in LOCATION_FIELDS)
        ward_path = db.ward_path(council, district, ward)

        parent_path = await self._check_location(kind, fields, ward_path)
        await self._check_uniqueness(kind, fields, ward_path)

        entity_id = generate_entity_id(kind.id_prefix)
        password = generate_initial_password(fields["nic"])
        await self._create_account(kind, fields, entity_id, password)

        record_path = db.join_path(parent_path, kind.collection, entity_id)
        await self._write_records(kind, fields, entity_id, record_path)
        logger.info("Onboarded %s %s at %s", kind.key, entity_id, record_path)

        data = {kind.id_field: entity_id, "password": password}
        data.update({k: v for k, v in fields.items() if v is not None})

        await self._notify(kind, fields.get("email"), data)
        return OnboardingResult(entity_id=entity_id, password=password, path=record_path, data=data)

    # ================= VALIDATION ====================

    def _validate(self, kind: EntityKind, payload: Dict[str, Any]) -> Dict[str, Optional[str]]:
        fields = {name: _text(payload.get(name)) for name in kind.required_fields + OPTIONAL_FIELDS}

        missing = [name for name in kind.required_fields if not fields[name]]
        if missing:
            raise MissingFieldsError(missing)

        if not is_valid_nic(fields["nic"]):
            raise InvalidFieldError(
                "nic", "Invalid NIC format. NIC should be 12 digits, or 9 digits followed by V or X"
            )
        fields["nic"] = fields["nic"].upper()

        if fields["email"] is not None:
            email = normalize_email(fields["email"])
            if email is None:
                raise InvalidFieldError("email", "Invalid email format")
            fields["email"] = email

        if fields["phoneNumber"] is not None:
            phone = normalize_phone(fields["phoneNumber"])
            if phone is None:
                raise InvalidFieldError(
                    "phoneNumber", "Invalid phone number. Phone number should contain exactly 10 digits"
                )
            fields["phoneNumber"] = phone

        if kind.has_plate and not is_valid_plate(fields["licensePlate"], self.plate_region):
            raise InvalidFieldError(
                "licensePlate",
                f'Invalid license plate format. Format should be "{self.plate_region} XX-YYYY" '
                f"(e.g., {self.plate_region} AB-1234)",
            )

        for name in LOCATION_FIELDS + (("supervisorId",) if kind.key == "driver" else ()):
            segment = clean_segment(fields[name])
            if segment is None:
                raise InvalidFieldError(name, f"Invalid {name}: {fields[name]!r}")
            fields[name] = segment
        fields["municipalCouncil"] = fields["municipalCouncil"].lower()

        if self.allowed_districts and fields["district"] not in self.allowed_districts:
            raise InvalidFieldError(
                "district", f"District {fields['district']} is not open for onboarding"
            )

        return fields

    # ================= EXISTENCE ====================

    async def _check_location(self, kind: EntityKind, fields: Dict[str, Optional[str]], ward_path: str) -> str:
        """Returns the path new records of this kind are filed under."""
        location = f"{fields['municipalCouncil']}/{fields['district']}/{fields['ward']}"

        if await self.store.get(ward_path) is None:
            raise LocationNotFoundError(f"Path not found: {location}")

        if kind.key != "driver":
            return ward_path

        supervisor_path = db.join_path(ward_path, db.SUPERVISORS, fields["supervisorId"])
        if await self.store.get(supervisor_path) is None:
            raise LocationNotFoundError(
                f"Supervisor not found: {fields['supervisorId']} in path {location}"
            )
        return supervisor_path

    # ================= UNIQUENESS ====================

    async def _check_uniqueness(self, kind: EntityKind, fields: Dict[str, Optional[str]], ward_path: str):
        await self._check_nic(fields["nic"])
        await self._check_name(kind, fields[kind.name_field], fields["municipalCouncil"], ward_path)

        if fields["email"]:
            await self._check_kind_global(kind, "email", fields["email"], "email")
            if await self.identity.find_account_by_email(fields["email"]):
                raise DuplicateEntityError("email", "An account with this email already exists")

        if fields["phoneNumber"]:
            await self._check_kind_global(kind, "phoneNumber", fields["phoneNumber"], "phone number")

        if kind.has_plate:
            await self._check_plate(fields["licensePlate"])

    async def _check_nic(self, nic: str):
        entry = await self.store.get(db.join_path(db.NATIONAL_ID_INDEX, nic))
        if entry:
            raise DuplicateEntityError("nic", self._nic_conflict(entry.get("kind"), entry.get("path", "")))

        # Records filed before the shared index existed
        for other in KINDS.values():
            matches = await self.store.query_group(other.collection, "nic", nic)
            if matches:
                raise DuplicateEntityError("nic", self._nic_conflict(other.key, matches[0][0]))

    @staticmethod
    def _nic_conflict(kind_key: Optional[str], path: str) -> str:
        label = KINDS[kind_key].label if kind_key in KINDS else "user"
        location = db.location_of(path)
        if location:
            return f"This NIC is already registered to a {label} in {location}"
        return f"This NIC is already registered to a {label}"

    async def _check_name(self, kind: EntityKind, name: str, council: str, ward_path: str):
        matches = await self.store.query_group(kind.collection, kind.name_field, name)

        if self.name_scope == "ward":
            prefix, where = ward_path + "/", "in this ward"
        elif self.name_scope == "council":
            prefix, where = db.join_path(db.COUNCILS, council) + "/", "in this municipal council"
        else:
            prefix, where = "", None

        for path, _ in matches:
            if path.startswith(prefix):
                if where is None:
                    where = f"in {db.location_of(path) or 'another area'}"
                raise DuplicateEntityError(
                    kind.name_field, f"A {kind.label} with this name already exists {where}"
                )

    async def _check_kind_global(self, kind: EntityKind, field_name: str, value: str, label: str):
        matches = await self.store.query_group(kind.collection, field_name, value)
        if matches:
            location = db.location_of(matches[0][0]) or "another area"
            raise DuplicateEntityError(
                field_name, f"A {kind.label} with this {label} already exists in {location}"
            )

    async def _check_plate(self, plate: str):
        entry = await self.store.get(db.join_path(db.PLATE_INDEX, plate))
        matches = [] if entry else await self.store.query_group(db.TRUCKS, "licensePlate", plate)
        if entry or matches:
            path = entry.get("path", "") if entry else matches[0][0]
            location = db.location_of(path)
            suffix = f" in {location}" if location else ""
            raise DuplicateEntityError("licensePlate", f"A truck with this license plate already exists{suffix}")

    # ================= ACCOUNT ====================

    async def _create_account(self, kind: EntityKind, fields: Dict[str, Optional[str]], entity_id: str, password: str):
        phone = fields["phoneNumber"]
        try:
            await self.identity.create_account(
                uid=entity_id,
                password=password,
                display_name=fields[kind.name_field],
                email=fields["email"],
                phone_number=to_international(phone, self.country_code) if phone else None,
            )
        except AccountExistsError as e:
            logger.error("Auth account for %s %s rejected, %s already exists", kind.key, entity_id, e.field)
            if e.field in ("email", "phone number"):
                raise DuplicateEntityError(e.field, f"An account with this {e.field} already exists")
            raise AccountCreationError(f"Failed to create authentication account for {kind.label}")
        except IdentityError as e:
            logger.error("Error creating auth user %s: %s", entity_id, e)
            raise AccountCreationError(f"Failed to create authentication account for {kind.label}")

    # ================= RECORDS ====================

    async def _write_records(self, kind: EntityKind, fields: Dict[str, Optional[str]], entity_id: str, record_path: str):
        indexes = [(db.join_path(db.NATIONAL_ID_INDEX, fields["nic"]), "nic")]
        if kind.has_plate:
            indexes.append((db.join_path(db.PLATE_INDEX, fields["licensePlate"]), "licensePlate"))

        reserved: List[str] = []
        try:
            record_fields = {k: v for k, v in fields.items() if k in kind.record_model.model_fields}
            record_fields[kind.id_field] = entity_id
            record = kind.record_model(**record_fields)

            for index_path, _ in indexes:
                entry = IndexEntry(entityId=entity_id, kind=kind.key, path=record_path)
                await self.store.create(index_path, entry.model_dump())
                reserved.append(index_path)
            await self.store.create(record_path, record.model_dump())
        except DocumentExists as e:
            await self._rollback(entity_id, reserved)
            field_name = dict(indexes).get(e.path, "id")
            if field_name == "nic":
                existing = await self.store.get(e.path) or {}
                raise DuplicateEntityError("nic", self._nic_conflict(existing.get("kind"), existing.get("path", "")))
            if field_name == "licensePlate":
                raise DuplicateEntityError("licensePlate", "A truck with this license plate already exists")
            raise RecordWriteError(f"Failed to create {kind.label}: {e}")
        except Exception as e:
            logger.exception("Writing %s records for %s failed", kind.key, entity_id)
            await self._rollback(entity_id, reserved)
            raise RecordWriteError(f"Failed to create {kind.label}: {e}")

    async def _rollback(self, entity_id: str, reserved: List[str]):
        for path in reversed(reserved):
            try:
                await self.store.delete(path)
            except Exception:
                logger.exception("Rollback: could not remove index document %s", path)
        try:
            await self.identity.delete_account(entity_id)
        except Exception:
            logger.exception("Rollback: auth account %s is orphaned and must be removed by hand", entity_id)

    # ================= NOTIFICATION ====================

    async def _notify(self, kind: EntityKind, email: Optional[str], data: Dict[str, Any]):
        if not email or not self.send_emails or self.notifier is None:
            return
        try:
            await run_in_threadpool(self.notifier.send_credentials, kind.key, email, data)
        except Exception:
            logger.exception("Failed to send %s credentials email to %s", kind.key, email)
