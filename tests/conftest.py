"""
Pytest config.

Every test runs against an app built around a BackendContext whose Supabase
collaborators are MagicMocks, so no network access is needed. The session
resolver and events hub are the real implementations.
"""
from __future__ import annotations

from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from lastbite.access.events import ProfileEvents
from lastbite.access.session import SessionResolver
from lastbite.config.settings import Settings
from lastbite.core.context import BackendContext
from lastbite.core.rate_limit import limiter
from lastbite.main import create_app
from lastbite.modules.auth.service import AuthService
from lastbite.modules.profiles.schemas import Profile
from lastbite.modules.profiles.service import ProfileService

ACCESS_TOKEN = "access-token-for-tests"
REFRESH_TOKEN = "refresh-token-for-tests"


def make_user(user_id: str = "user-1", **overrides: Any) -> Dict[str, Any]:
    user = {
        "id": user_id,
        "email": f"{user_id}@example.com",
        "phone": None,
        "user_metadata": {},
        "app_metadata": {},
        "created_at": None,
        "updated_at": None,
    }
    user.update(overrides)
    return user


def make_profile(user_id: str = "user-1", role: str = "buyer", **overrides: Any) -> Profile:
    data: Dict[str, Any] = {
        "id": f"profile-{user_id}",
        "user_id": user_id,
        "role": role,
        "is_verified": role == "buyer",
    }
    data.update(overrides)
    return Profile(**data)


@pytest.fixture(autouse=True)
def _reset_shared_state() -> None:
    limiter.reset()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        supabase_url="https://example.supabase.co",
        supabase_key="anon-key",
        site_url="http://testserver",
        verification_wait_seconds=0.2,
    )


@pytest.fixture
def auth_service() -> MagicMock:
    return MagicMock(spec=AuthService)


@pytest.fixture
def profiles() -> MagicMock:
    service = MagicMock(spec=ProfileService)
    service.get_profile.return_value = None
    return service


@pytest.fixture
def events() -> ProfileEvents:
    return ProfileEvents()


@pytest.fixture
def backend(settings, auth_service, profiles, events) -> BackendContext:
    return BackendContext(
        settings=settings,
        auth=auth_service,
        profiles=profiles,
        events=events,
        session_resolver=SessionResolver(auth_service, settings),
    )


@pytest.fixture
def client(backend) -> TestClient:
    return TestClient(create_app(backend), follow_redirects=False)


@pytest.fixture
def sign_in(client, settings, auth_service, profiles):
    """Make the test client an authenticated user, optionally with a profile."""

    def _sign_in(user: Optional[Dict[str, Any]] = None, profile: Optional[Profile] = None) -> Dict[str, Any]:
        user = user or make_user()
        auth_service.validate_session.return_value = user
        profiles.get_profile.return_value = profile
        client.cookies.set(settings.access_token_cookie, ACCESS_TOKEN)
        return user

    return _sign_in
