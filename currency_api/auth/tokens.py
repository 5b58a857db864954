"""JWT issuance, verification and role policies for API callers."""

from __future__ import annotations

import hmac
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import wraps
from typing import Any, Callable

import jwt
from flask import current_app, g, request

from currency_api.errors import AuthenticationError, AuthorizationError
from currency_api.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TYPE = "Bearer"

ROLE_USER = "User"
ROLE_ADMIN = "Admin"

POLICY_USER = "User"
POLICY_ADMIN = "Admin"

# Roles accepted by each named policy.
POLICIES: dict[str, frozenset[str]] = {
    POLICY_USER: frozenset({ROLE_USER, ROLE_ADMIN}),
    POLICY_ADMIN: frozenset({ROLE_ADMIN}),
}


@dataclass(frozen=True)
class TokenSettings:
    secret_key: str
    issuer: str
    audience: str
    expiration_minutes: int = 60
    api_key: str = "demo_api_key"

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise ValueError("JWT secret key must not be empty")
        if self.expiration_minutes <= 0:
            raise ValueError("JWT expiration must be positive")

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> TokenSettings:
        return cls(
            secret_key=str(config["JWT_SECRET_KEY"]),
            issuer=str(config["JWT_ISSUER"]),
            audience=str(config["JWT_AUDIENCE"]),
            expiration_minutes=int(config.get("JWT_EXPIRATION_MINUTES", 60)),
            api_key=str(config["API_KEY"]),
        )


@dataclass(frozen=True)
class IssuedToken:
    access_token: str
    issued_at: datetime
    expires_at: datetime
    token_type: str = TOKEN_TYPE

    @property
    def expires_in(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())


@dataclass(frozen=True)
class Principal:
    """Authenticated caller resolved from a bearer token."""

    client_id: str
    roles: tuple[str, ...]
    expires_at: datetime | None = None

    def satisfies(self, policy: str) -> bool:
        allowed = POLICIES.get(policy)
        if allowed is None:
            raise KeyError(f"Unknown authorization policy '{policy}'")
        return any(role in allowed for role in self.roles)


def roles_for(client_id: str) -> tuple[str, ...]:
    """Every caller is a user; client ids containing ``admin`` are also admins."""

    if "admin" in client_id.lower():
        return (ROLE_USER, ROLE_ADMIN)
    return (ROLE_USER,)


class TokenService:
    """Issue and verify HS256 bearer tokens."""

    def __init__(self, settings: TokenSettings, clock: Callable[[], datetime] = utc_now) -> None:
        self._settings = settings
        self._clock = clock

    @property
    def settings(self) -> TokenSettings:
        return self._settings

    def verify_api_key(self, api_key: str | None) -> bool:
        if not api_key:
            return False
        return hmac.compare_digest(api_key.encode("utf-8"), self._settings.api_key.encode("utf-8"))

    def authenticate(self, client_id: str, api_key: str | None) -> IssuedToken:
        """Exchange a client id and API key for a signed token."""

        if not self.verify_api_key(api_key):
            logger.warning("Rejected token request with invalid API key", extra={"client_id": client_id})
            raise AuthenticationError("Invalid client credentials.")
        token = self.issue(client_id)
        logger.info("Issued access token", extra={"client_id": client_id})
        return token

    def issue(self, client_id: str) -> IssuedToken:
        issued_at = ensure_utc(self._clock()).replace(microsecond=0)
        expires_at = issued_at + timedelta(minutes=self._settings.expiration_minutes)
        claims = {
            "sub": client_id,
            "client_id": client_id,
            "jti": uuid.uuid4().hex,
            "roles": list(roles_for(client_id)),
            "iat": issued_at,
            "nbf": issued_at,
            "exp": expires_at,
            "iss": self._settings.issuer,
            "aud": self._settings.audience,
        }
        encoded = jwt.encode(claims, self._settings.secret_key, algorithm=ALGORITHM)
        return IssuedToken(access_token=encoded, issued_at=issued_at, expires_at=expires_at)

    def decode(self, token: str) -> Principal:
        """Verify `token` and return its principal, raising ``AuthenticationError`` if invalid."""

        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key,
                algorithms=[ALGORITHM],
                audience=self._settings.audience,
                issuer=self._settings.issuer,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Token has expired.") from exc
        except jwt.InvalidTokenError as exc:
            logger.info("Rejected invalid bearer token: %s", exc)
            raise AuthenticationError("Invalid token.") from exc

        roles = payload.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        expires_at = datetime.fromtimestamp(payload["exp"], tz=UTC)
        return Principal(
            client_id=str(payload.get("client_id") or payload["sub"]),
            roles=tuple(str(role) for role in roles),
            expires_at=expires_at,
        )


def _bearer_token() -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authentication failed. Valid token is required to access this resource.")
    return token.strip()


def current_token_service() -> TokenService:
    return current_app.extensions["token_service"]


def require_policy(policy: str | None = None) -> Callable:
    """Decorator authenticating the caller and enforcing `policy` when given.

    The resolved principal is stored on ``flask.g.principal``.
    """

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args, **kwargs):
            principal = current_token_service().decode(_bearer_token())
            g.principal = principal
            if policy is not None and not principal.satisfies(policy):
                logger.warning(
                    "Caller lacks required policy %s",
                    policy,
                    extra={"client_id": principal.client_id, "roles": list(principal.roles)},
                )
                raise AuthorizationError("You do not have permission to access this resource.")
            return view(*args, **kwargs)

        return wrapper

    return decorator


def init_token_service(app) -> TokenService:
    """Create the token service from app config and store it on the Flask app."""

    service = TokenService(TokenSettings.from_config(app.config))
    app.extensions["token_service"] = service
    return service
