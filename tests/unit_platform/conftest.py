"""
Shared fixtures: memory-backed tenancy platform and the gateway test client.
"""
from __future__ import annotations

import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tenancy_core.auth import PasswordHasher
from tenancy_core.config import Settings
from tenancy_core.core import build_platform
from tenancy_core.storage import MemoryDocumentStore

TEST_SECRET = b"unit-test-signing-key-0123456789abcdef"


@pytest.fixture
def settings():
    return Settings(jwt_secret=TEST_SECRET, token_lifetime_sec=3600, copy_batch_size=2)


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def hasher():
    # minimum bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture
def platform(settings, store, hasher):
    return build_platform(settings, store=store, hasher=hasher)


@pytest.fixture
def gateway_app(platform):
    from tenancy_core.gateway.app import create_app
    app = create_app(platform)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def gateway_client(gateway_app):
    with gateway_app.test_client() as c:
        yield c
