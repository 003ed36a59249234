from __future__ import annotations

import pytest

from db import MemoryDirectoryStore
from tests.fakes import FakeIdentityProvider, FakeNotifier, seeded_documents
from workflow import OnboardingWorkflow


@pytest.fixture
def store() -> MemoryDirectoryStore:
    return MemoryDirectoryStore(seeded_documents())


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def workflow(store, identity, notifier) -> OnboardingWorkflow:
    return OnboardingWorkflow(
        store=store,
        identity=identity,
        notifier=notifier,
        name_scope="ward",
        allowed_districts=[],
        country_code="94",
        plate_region="WP",
        send_emails=True,
    )
