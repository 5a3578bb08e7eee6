import logging
from pathlib import Path

import pytest

from webauth.app_logging import RedactSecretsFilter, redact
from webauth.errors import ConfigurationError
from webauth.infra.mailer import build_reset_message
from webauth.settings import Settings


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("WEBAUTH_SECRET_KEY", "s3cret")
    monkeypatch.setenv("WEBAUTH_USERS_PATH", str(tmp_path / "u.yml"))
    monkeypatch.setenv("WEBAUTH_SESSION_MAX_AGE", "120")
    monkeypatch.setenv("WEBAUTH_COOKIE_SECURE", "yes")
    monkeypatch.setenv("WEBAUTH_GOOGLE_CLIENT_ID", "cid")
    monkeypatch.setenv("WEBAUTH_GOOGLE_CLIENT_SECRET", "csecret")
    monkeypatch.setenv("WEBAUTH_PUBLIC_ORIGIN", "https://app.test")

    s = Settings.from_env()
    assert s.users_path == Path(tmp_path / "u.yml").resolve()
    assert s.session_max_age == 120
    assert s.cookie_settings() == {"httponly": True, "samesite": "lax", "secure": True}
    provider = s.oauth_provider()
    assert provider.redirect_uri == "https://app.test/api/auth/google/callback"
    assert "s3cret" not in repr(s) and "csecret" not in repr(s)


def test_from_env_without_secret(monkeypatch):
    monkeypatch.delenv("WEBAUTH_SECRET_KEY", raising=False)
    monkeypatch.delenv("SECRET_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        Settings.from_env()


def test_from_env_bad_integer(monkeypatch):
    monkeypatch.setenv("WEBAUTH_SECRET_KEY", "x")
    monkeypatch.setenv("WEBAUTH_RESET_TOKEN_TTL", "soon")
    with pytest.raises(ConfigurationError):
        Settings.from_env()


def test_oauth_disabled_by_default(settings):
    assert settings.oauth_provider() is None


def test_redact_hides_tokens():
    line = 'GET /reset-password?token=abcdef0123&x=1 HTTP/1.1'
    assert "abcdef0123" not in redact(line)
    assert "token=[redacted]" in redact(line)


def test_filter_rewrites_record():
    rec = logging.LogRecord("t", logging.INFO, __file__, 1, "link %s", ("https://a/reset-password?token=zzz",), None)
    assert RedactSecretsFilter().filter(rec)
    assert "zzz" not in rec.getMessage()


def test_reset_message_contents():
    msg = build_reset_message("a@x.com", "https://app.test/reset-password?token=t", from_address="noreply@example.com")
    assert msg["Subject"] == "Password Reset Request"
    assert msg["To"] == "a@x.com"
    text = msg.get_body(preferencelist=("plain",)).get_content()
    assert "https://app.test/reset-password?token=t" in text
    assert "1 hour" in text


def test_redact_hides_oauth_callback_parameters():
    line = 'GET /api/auth/google/callback?code=4/0Abc-xyz&state=s7at3Value HTTP/1.1'
    clean = redact(line)
    assert "4/0Abc-xyz" not in clean
    assert "s7at3Value" not in clean
    assert "code=[redacted]" in clean and "state=[redacted]" in clean


def test_direct_imports_are_declared_dependencies():
    tomllib = pytest.importorskip("tomllib")
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    deps = tomllib.loads(pyproject.read_text(encoding="utf-8"))["project"]["dependencies"]
    names = {d.split(">")[0].split("=")[0].split("<")[0].strip().lower() for d in deps}
    for dist in ("fastapi", "pydantic", "argon2-cffi", "itsdangerous", "pyyaml", "authlib", "requests", "python-json-logger"):
        assert dist in names
