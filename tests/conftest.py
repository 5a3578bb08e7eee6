import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from webauth.app import create_app
from webauth.auth.passwords import CredentialHasher
from webauth.errors import AuthFailure
from webauth.infra.oauth_client import ProviderProfile
from webauth.infra.user_repo import YamlUserStore
from webauth.settings import Settings


class FakeMailer:
    def __init__(self, ok: bool = True) -> None:
        self.ok = ok
        self.sent: List[Tuple[str, str]] = []

    def send(self, to_address: str, reset_link: str) -> bool:
        self.sent.append((to_address, reset_link))
        return self.ok


class FakeOAuthClient:
    """Stands in for the provider: codes map to canned profiles."""

    def __init__(self) -> None:
        self.profiles = {}
        self.states: List[str] = []

    def authorization_url(self, state: str) -> str:
        self.states.append(state)
        return f"https://provider.test/authorize?state={state}"

    def fetch_profile(self, code: str) -> ProviderProfile:
        if code not in self.profiles:
            raise AuthFailure("federated login failed")
        return self.profiles[code]


class Clock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def clock() -> Clock:
    return Clock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def hasher() -> CredentialHasher:
    # Cheap parameters: the tests exercise behaviour, not cost.
    return CredentialHasher(time_cost=1, memory_cost=1024)


@pytest.fixture()
def users_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "users.yml"


@pytest.fixture()
def store(users_path: Path) -> YamlUserStore:
    return YamlUserStore(users_path)


@pytest.fixture()
def settings(users_path: Path) -> Settings:
    return Settings(
        secret_key="unit-test-secret",
        users_path=users_path,
        public_origin="https://app.test",
        argon2_time_cost=1,
        argon2_memory_cost=1024,
    )


@pytest.fixture()
def oauth_settings(settings: Settings) -> Settings:
    from dataclasses import replace

    return replace(settings, google_client_id="client-id", google_client_secret="client-secret")


@pytest.fixture()
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def oauth_client() -> FakeOAuthClient:
    return FakeOAuthClient()


@pytest.fixture()
def client(settings, store, mailer) -> TestClient:
    app = create_app(settings, users=store, mailer=mailer)
    return TestClient(app)


@pytest.fixture()
def oauth_app_client(oauth_settings, store, mailer, oauth_client) -> TestClient:
    app = create_app(oauth_settings, users=store, mailer=mailer, oauth_client=oauth_client)
    return TestClient(app, follow_redirects=False)
