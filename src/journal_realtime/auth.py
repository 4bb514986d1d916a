"""
Connection authenticator.

Validates the JWT presented at Socket.IO handshake time and derives the
caller's identity. Accepts or rejects; never touches the session registry.

Token source, in order: ``?token=`` query parameter, then ``auth={"token": ...}``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence
from urllib.parse import parse_qs

import jwt

from journal_realtime.errors import AuthError
from journal_realtime.models.session import Identity

CREDENTIAL_MISSING = "credential not provided"
AUTHENTICATION_FAILED = "authentication failed"


@dataclass(frozen=True)
class ConnectionAttempt:
    """What the server sees of a connecting client."""
    environ: dict[str, Any]
    auth: Optional[Any] = None

    @property
    def token(self) -> Optional[str]:
        return extract_token(self.environ, self.auth)


def extract_token(environ: dict[str, Any], auth: Optional[Any]) -> Optional[str]:
    """Pull the token out of a Socket.IO environ/auth pair.

    Handles both the ASGI (``asgi.scope``) and WSGI (``QUERY_STRING``) environ shapes.
    """
    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: Any = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    return None


class TokenAuthenticator:
    def __init__(self, secret: str, algorithms: Sequence[str] = ("HS256",), leeway: float = 0):
        self._secret = secret
        self._algorithms = list(algorithms)
        self._leeway = leeway

    def authenticate(self, attempt: ConnectionAttempt) -> Identity:
        return self.verify(attempt.token)

    def verify(self, token: Optional[str]) -> Identity:
        if not token:
            raise AuthError(CREDENTIAL_MISSING, code="credential_missing")
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=self._algorithms,
                leeway=self._leeway,
                options={"require": ["userId", "role"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthError(AUTHENTICATION_FAILED, code="token_expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthError(AUTHENTICATION_FAILED, code="authentication_failed") from e

        try:
            return Identity(
                user_id=int(claims["userId"]),
                role=str(claims["role"]),
                username=claims.get("username"),
            )
        except (TypeError, ValueError) as e:
            raise AuthError(AUTHENTICATION_FAILED, code="authentication_failed") from e


def issue_token(
    identity: Identity,
    secret: str,
    expires_in: timedelta = timedelta(hours=24),
    algorithm: str = "HS256",
) -> str:
    """Sign a token carrying the same claims the journal login route issues."""
    claims: dict[str, Any] = {
        "userId": identity.user_id,
        "role": identity.role,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    if identity.username:
        claims["username"] = identity.username
    return jwt.encode(claims, secret, algorithm=algorithm)
