import asyncio
from types import SimpleNamespace

import pytest
from firebase_admin import auth as firebase_auth

import identity
from identity import AccountExistsError, FirebaseIdentityProvider, IdentityError


def test_create_account_passes_optional_contact_fields(monkeypatch):
    seen = {}

    def _create_user(**kwargs):
        seen.update(kwargs)
        return SimpleNamespace(uid=kwargs["uid"], email=kwargs.get("email"), phone_number=kwargs.get("phone_number"))

    monkeypatch.setattr(identity.firebase_auth, "create_user", _create_user)

    result = asyncio.run(FirebaseIdentityProvider().create_account("SUPAB12CD", "5678abcd", "Nimal"))

    assert result["uid"] == "SUPAB12CD"
    assert "email" not in seen
    assert "phone_number" not in seen
    assert seen["display_name"] == "Nimal"


@pytest.mark.parametrize(
    "error, field_name",
    [
        (firebase_auth.UidAlreadyExistsError("taken", None, None), "id"),
        (firebase_auth.EmailAlreadyExistsError("taken", None, None), "email"),
        (firebase_auth.PhoneNumberAlreadyExistsError("taken", None, None), "phone number"),
    ],
)
def test_create_account_maps_already_exists(monkeypatch, error, field_name):
    def _create_user(**kwargs):
        raise error

    monkeypatch.setattr(identity.firebase_auth, "create_user", _create_user)

    with pytest.raises(AccountExistsError) as exc:
        asyncio.run(FirebaseIdentityProvider().create_account("SUP1", "pw123456", "N", email="n@vatelanka.lk"))

    assert exc.value.field == field_name


def test_create_account_other_errors(monkeypatch):
    def _create_user(**kwargs):
        raise ValueError("Invalid phone number")

    monkeypatch.setattr(identity.firebase_auth, "create_user", _create_user)

    with pytest.raises(IdentityError) as exc:
        asyncio.run(FirebaseIdentityProvider().create_account("SUP1", "pw123456", "N", phone_number="+94"))

    assert not isinstance(exc.value, AccountExistsError)


def test_find_account_by_email_returns_none_when_missing(monkeypatch):
    def _get_user_by_email(email, app=None):
        raise firebase_auth.UserNotFoundError("nope")

    monkeypatch.setattr(identity.firebase_auth, "get_user_by_email", _get_user_by_email)

    assert asyncio.run(FirebaseIdentityProvider().find_account_by_email("x@vatelanka.lk")) is None


def test_delete_account_tolerates_missing_user(monkeypatch):
    def _delete_user(uid, app=None):
        raise firebase_auth.UserNotFoundError("nope")

    monkeypatch.setattr(identity.firebase_auth, "delete_user", _delete_user)

    asyncio.run(FirebaseIdentityProvider().delete_account("SUP1"))
