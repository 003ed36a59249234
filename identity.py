# identity.py

import logging
from typing import Any, Dict, Optional

from fastapi.concurrency import run_in_threadpool
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Account operation rejected by the identity provider."""


class AccountExistsError(IdentityError):
    """The uid, email or phone number is already taken by another account."""

    def __init__(self, field: str, message: str = ""):
        super().__init__(message or f"An account with this {field} already exists")
        self.field = field


# ================= IDENTITY PROVIDER ====================

class IdentityProvider:
    async def create_account(
        self,
        uid: str,
        password: str,
        display_name: str,
        email: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Dict[str, Any]:
        raise NotImplementedError

    async def find_account_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    async def delete_account(self, uid: str) -> None:
        raise NotImplementedError


class FirebaseIdentityProvider(IdentityProvider):
    """Firebase Auth accounts through the Admin SDK."""

    def __init__(self, app=None):
        self.app = app

    async def create_account(self, uid, password, display_name, email=None, phone_number=None):
        kwargs = {"uid": uid, "password": password, "display_name": display_name, "app": self.app}
        if email:
            kwargs["email"] = email
        if phone_number:
            kwargs["phone_number"] = phone_number

        try:
            record = await run_in_threadpool(firebase_auth.create_user, **kwargs)
        except firebase_auth.UidAlreadyExistsError as e:
            raise AccountExistsError("id", str(e))
        except firebase_auth.EmailAlreadyExistsError as e:
            raise AccountExistsError("email", str(e))
        except firebase_auth.PhoneNumberAlreadyExistsError as e:
            raise AccountExistsError("phone number", str(e))
        except (firebase_exceptions.FirebaseError, ValueError) as e:
            raise IdentityError(str(e))

        return {"uid": record.uid, "email": record.email, "phoneNumber": record.phone_number}

    async def find_account_by_email(self, email):
        try:
            record = await run_in_threadpool(firebase_auth.get_user_by_email, email, app=self.app)
        except firebase_auth.UserNotFoundError:
            return None
        except firebase_exceptions.FirebaseError as e:
            raise IdentityError(str(e))
        return {"uid": record.uid, "email": record.email}

    async def delete_account(self, uid):
        try:
            await run_in_threadpool(firebase_auth.delete_user, uid, app=self.app)
        except firebase_auth.UserNotFoundError:
            logger.warning("delete_account: %s was already gone", uid)
        except firebase_exceptions.FirebaseError as e:
            raise IdentityError(str(e))


def get_identity_provider() -> IdentityProvider:
    from firebase_client import init_firebase_admin

    return FirebaseIdentityProvider(init_firebase_admin())
