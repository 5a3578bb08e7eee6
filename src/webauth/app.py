# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import hmac
import logging
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from webauth.auth.federated import FederatedAuthenticator
from webauth.auth.local import LocalAuthenticator
from webauth.auth.passwords import CredentialHasher
from webauth.auth.reset import PasswordResetFlow
from webauth.auth.session import SessionManager
from webauth.auth.tokens import TokenIssuer
from webauth.domain import UserIdentity
from webauth.errors import (
    OAUTH_EXCHANGE_FAILED,
    OAUTH_STATE_MISMATCH,
    AuthFailure,
    ConfigurationError,
    TransientError,
    ValidationError,
)
from webauth.infra.mailer import LogMailer, Mailer, SmtpMailer
from webauth.infra.oauth_client import OAuthClient
from webauth.infra.session_repo import MemorySessionStore, SessionStore
from webauth.infra.user_repo import UserStore, YamlUserStore
from webauth.permissions import Services, require_user, services, session_cookie
from webauth.schemas import CredentialsIn, ForgotPasswordIn, ResetPasswordIn
from webauth.settings import Settings

logger = logging.getLogger(__name__)

OAUTH_STATE_COOKIE = "webauth_oauth_state"
OAUTH_STATE_MAX_AGE = 600  # seconds between start and callback

router = APIRouter(prefix="/api")


# ------------------ Helpers ------------------


def _error(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"code": code, "message": message, **extra})


def _set_session_cookie(resp: Response, svc: Services, value: str) -> None:
    resp.set_cookie(
        svc.settings.cookie_name,
        value,
        max_age=svc.settings.session_max_age,
        **svc.settings.cookie_settings(),
    )


def _state_serializer(svc: Services) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key=svc.settings.secret_key, salt="webauth.oauth-state")


def _login(request: Request, resp: Response, user: UserIdentity) -> None:
    svc = services(request)
    cookie = svc.sessions.establish(user.id, previous_cookie=session_cookie(request))
    _set_session_cookie(resp, svc, cookie)
    request.state.user = user


# ------------------ Local accounts ------------------


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(body: CredentialsIn, request: Request, response: Response):
    svc = services(request)
    user = svc.local.register(body.email, body.password)
    _login(request, response, user)
    return user.public()


@router.post("/login")
def login(body: CredentialsIn, request: Request, response: Response):
    svc = services(request)
    user = svc.local.authenticate(body.email, body.password)
    _login(request, response, user)
    return user.public()


@router.post("/logout")
def logout(request: Request, response: Response):
    svc = services(request)
    svc.sessions.destroy(session_cookie(request))
    response.delete_cookie(svc.settings.cookie_name, **svc.settings.cookie_settings())
    return {"message": "Logged out"}


@router.get("/user")
def current_user(user: UserIdentity = Depends(require_user)):
    return user.public()


# ------------------ Password reset ------------------


@router.post("/forgot-password")
def forgot_password(body: ForgotPasswordIn, request: Request):
    ack = services(request).reset.request(body.email)
    return {"message": ack}


@router.post("/reset-password")
def reset_password(body: ResetPasswordIn, request: Request):
    try:
        services(request).reset.confirm(body.token, body.password)
    except AuthFailure as exc:
        return _error(status.HTTP_400_BAD_REQUEST, exc.code, exc.message)
    return {"message": "Password updated successfully"}


# ------------------ Federated login ------------------


def _require_federated(svc: Services) -> FederatedAuthenticator:
    if not svc.federated.enabled:
        raise HTTPException(status_code=404, detail="Federated login is not configured")
    return svc.federated


@router.get("/auth/google")
def federated_start(request: Request):
    svc = services(request)
    fed = _require_federated(svc)
    state = secrets.token_urlsafe(32)
    resp = RedirectResponse(url=fed.authorization_url(state), status_code=302)
    resp.set_cookie(
        OAUTH_STATE_COOKIE,
        _state_serializer(svc).dumps(state),
        max_age=OAUTH_STATE_MAX_AGE,
        **svc.settings.cookie_settings(),
    )
    return resp


def _check_state(svc: Services, request: Request, presented: str) -> None:
    raw = request.cookies.get(OAUTH_STATE_COOKIE, "")
    try:
        expected = _state_serializer(svc).loads(raw, max_age=OAUTH_STATE_MAX_AGE) if raw else ""
    except (BadSignature, BadTimeSignature):
        expected = ""
    if not expected or not presented or not hmac.compare_digest(str(expected), presented):
        raise AuthFailure(OAUTH_STATE_MISMATCH)


@router.get("/auth/google/callback")
def federated_callback(request: Request, code: str = "", state: str = "", error: str = ""):
    svc = services(request)
    fed = _require_federated(svc)
    try:
        if error or not code:
            logger.warning("federated callback without code error=%s", error or "-")
            raise AuthFailure(OAUTH_EXCHANGE_FAILED)
        _check_state(svc, request, state)
        user = fed.login_with_code(code)
    except (AuthFailure, TransientError) as exc:
        logger.warning("federated login failed: %s", exc.message)
        resp = RedirectResponse(url=svc.settings.oauth_failure_redirect, status_code=302)
        resp.delete_cookie(OAUTH_STATE_COOKIE, **svc.settings.cookie_settings())
        return resp

    resp = RedirectResponse(url=svc.settings.oauth_success_redirect, status_code=302)
    _login(request, resp, user)
    resp.delete_cookie(OAUTH_STATE_COOKIE, **svc.settings.cookie_settings())
    return resp


# ------------------ Error handlers ------------------


async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(status.HTTP_400_BAD_REQUEST, exc.code, exc.message, errors=exc.errors)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(item) for item in err.get("loc", []) if item != "body"),
            "message": err.get("msg"),
        }
        for err in exc.errors()
    ]
    return _error(status.HTTP_400_BAD_REQUEST, ValidationError.code, "Invalid request", errors=errors)


async def auth_failure_handler(request: Request, exc: AuthFailure):
    return _error(status.HTTP_401_UNAUTHORIZED, exc.code, exc.message)


async def transient_error_handler(request: Request, exc: TransientError):
    logger.error("transient failure on %s: %s", request.url.path, exc.message)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        exc.code,
        "Temporary failure, please retry",
        retryable=True,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": "HTTP_ERROR", "message": message},
        headers=getattr(exc, "headers", None),
    )


async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s", request.url.path)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Internal server error")


# ------------------ Factory ------------------


def create_app(
    settings: Optional[Settings] = None,
    *,
    users: Optional[UserStore] = None,
    session_store: Optional[SessionStore] = None,
    mailer: Optional[Mailer] = None,
    oauth_client: Optional[OAuthClient] = None,
    token_issuer: Optional[TokenIssuer] = None,
) -> FastAPI:
    """Build the application. Configuration problems raise ConfigurationError here."""
    if settings is None:
        settings = Settings.from_env()
    settings.validate()
    provider = settings.oauth_provider()
    if oauth_client is not None and provider is None:
        raise ConfigurationError("An OAuth client was supplied but no provider is configured")

    if users is None:
        users = YamlUserStore(settings.users_path)
    hasher = CredentialHasher(time_cost=settings.argon2_time_cost, memory_cost=settings.argon2_memory_cost)
    if session_store is None:
        session_store = MemorySessionStore(ttl_seconds=settings.session_max_age)
    if token_issuer is None:
        token_issuer = TokenIssuer()
    if mailer is None:
        if settings.smtp_host:
            mailer = SmtpMailer(
                settings.smtp_host,
                settings.smtp_port,
                from_address=settings.mail_from,
                username=settings.smtp_username,
                password=settings.smtp_password,
                starttls=settings.smtp_starttls,
            )
        else:
            mailer = LogMailer()

    svc = Services(
        settings=settings,
        users=users,
        hasher=hasher,
        sessions=SessionManager(
            session_store,
            users,
            secret_key=settings.secret_key,
            max_age=settings.session_max_age,
        ),
        local=LocalAuthenticator(users, hasher),
        federated=FederatedAuthenticator(provider, users, hasher, client=oauth_client),
        reset=PasswordResetFlow(
            users,
            hasher,
            token_issuer,
            mailer,
            public_origin=settings.public_origin,
            ttl=timedelta(seconds=settings.reset_token_ttl),
        ),
    )

    app = FastAPI(title="webauth")
    app.state.services = svc
    app.include_router(router)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(AuthFailure, auth_failure_handler)
    app.add_exception_handler(TransientError, transient_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)
    logger.info("webauth ready federated=%s", svc.federated.enabled)
    return app
