import pytest

from webauth.auth.federated import FederatedAuthenticator
from webauth.errors import NO_PROVIDER_EMAIL, AuthFailure, ConfigurationError
from webauth.infra.oauth_client import OAuthProviderConfig, ProviderProfile, profile_from_userinfo

CONFIG = OAuthProviderConfig(client_id="cid", client_secret="secret", redirect_uri="https://app.test/cb")


@pytest.fixture()
def federated(store, hasher, oauth_client):
    return FederatedAuthenticator(CONFIG, store, hasher, client=oauth_client)


def test_first_login_creates_one_federated_identity(federated, store):
    u = federated.complete_oauth_login(ProviderProfile(subject="g-1", email="New@X.com", email_verified=True))
    assert u.email == "new@x.com"
    assert u.federated_only

    again = federated.complete_oauth_login(ProviderProfile(subject="g-1", email="new@x.com", email_verified=True))
    assert again.id == u.id
    assert store.get_user_by_email("new@x.com").id == u.id


def test_existing_local_account_is_linked_by_email(federated, store, hasher):
    local = store.create_user("a@x.com", hasher.hash("Aa1!aaaa"))
    u = federated.complete_oauth_login(ProviderProfile(subject="g-2", email="a@x.com"))
    assert u.id == local.id
    assert not u.federated_only


def test_federated_password_is_unusable(federated, hasher):
    u = federated.complete_oauth_login(ProviderProfile(subject="g-3", email="f@x.com"))
    assert u.password_hash.startswith("$argon2id$")
    assert not hasher.verify("", u.password_hash)


@pytest.mark.parametrize(
    "profile",
    [
        ProviderProfile(subject="g", email=None),
        ProviderProfile(subject="g", email="   "),
        ProviderProfile(subject="g", email="a@x.com", email_verified=False),
    ],
)
def test_profile_without_usable_email_fails(federated, store, profile):
    with pytest.raises(AuthFailure) as exc:
        federated.complete_oauth_login(profile)
    assert exc.value.message == NO_PROVIDER_EMAIL
    assert store.get_user_by_email("a@x.com") is None


def test_login_with_code_uses_client(federated, oauth_client):
    oauth_client.profiles["code-1"] = ProviderProfile(subject="g", email="c@x.com", email_verified=True)
    assert federated.login_with_code("code-1").email == "c@x.com"
    with pytest.raises(AuthFailure):
        federated.login_with_code("unknown-code")


def test_disabled_without_config(store, hasher):
    fed = FederatedAuthenticator(None, store, hasher)
    assert not fed.enabled
    with pytest.raises(ConfigurationError):
        fed.authorization_url("state")


def test_profile_from_userinfo():
    p = profile_from_userinfo({"sub": "1", "email": "a@x.com", "email_verified": "true", "name": "A"})
    assert p == ProviderProfile(subject="1", email="a@x.com", email_verified=True, name="A")
    assert profile_from_userinfo({"sub": "1"}).email is None


def test_provider_config_repr_hides_secret():
    assert "secret" not in repr(CONFIG)


class _RacingStore:
    """Wraps a store so create_user loses to a concurrent first login."""

    def __init__(self, inner, hasher):
        self.inner = inner
        self.hasher = hasher
        self.winner = None

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def get_user_by_email(self, email):
        if self.winner is None:
            return None
        return self.inner.get_user_by_email(email)

    def create_user(self, email, password_hash, *, federated_only=False):
        self.winner = self.inner.create_user(email, self.hasher.unusable_hash(), federated_only=True)
        return self.inner.create_user(email, password_hash, federated_only=federated_only)


def test_lost_creation_race_returns_existing_identity(store, hasher, oauth_client):
    racing = _RacingStore(store, hasher)
    fed = FederatedAuthenticator(CONFIG, racing, hasher, client=oauth_client)

    u = fed.complete_oauth_login(ProviderProfile(subject="g", email="race@x.com", email_verified=True))

    assert u.id == racing.winner.id
    assert u.federated_only
    assert store.get_user_by_email("race@x.com").id == u.id
