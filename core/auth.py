"""
Access token verification.

Sign-up, sign-in and session refresh are handled by the hosted auth service;
this module only checks the bearer tokens it issues. Supabase access tokens
are HS256 JWTs signed with the project's JWT secret, with the user id in `sub`
and the audience `authenticated`.

When the service runs against the local gateway, `TokenManager.issue` mints
tokens with the same claims so the full request flow works offline.
"""

import os
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from core.exceptions import AuthenticationError
from core.logging_config import get_logger

logger = get_logger(__name__)

AUDIENCE = "authenticated"


@dataclass
class AuthenticatedUser:
    id: str
    email: Optional[str] = None
    access_token: Optional[str] = None


class TokenManager:
    """JWT verification (and local issuing) for access tokens"""

    def __init__(self, secret_key: Optional[str] = None, algorithm: str = "HS256"):
        self.secret_key = secret_key or os.getenv("SUPABASE_JWT_SECRET") or self._generate_secret_key()
        self.algorithm = algorithm
        self.access_token_expire = timedelta(hours=1)

    def _generate_secret_key(self) -> str:
        key = secrets.token_urlsafe(32)
        logger.warning(
            "Generated new JWT secret key. Set SUPABASE_JWT_SECRET to verify hosted tokens."
        )
        return key

    def issue(self, user_id: str, email: Optional[str] = None, expires_delta: Optional[timedelta] = None) -> str:
        """Create an access token with the hosted service's claim layout"""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "aud": AUDIENCE,
            "role": "authenticated",
            "iat": now,
            "exp": now + (expires_delta or self.access_token_expire),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> Dict[str, Any]:
        """Verify and decode an access token"""
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=AUDIENCE,
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {str(e)}")

        if not payload.get("sub"):
            raise AuthenticationError("Token has no subject")
        return payload

    def authenticate(self, authorization: Optional[str]) -> AuthenticatedUser:
        """Resolve an `Authorization: Bearer ...` header to a user"""
        if not authorization:
            raise AuthenticationError("Missing Authorization header")

        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise AuthenticationError("Authorization header must be 'Bearer <token>'")

        token = token.strip()
        payload = self.verify(token)
        return AuthenticatedUser(
            id=payload["sub"], email=payload.get("email"), access_token=token
        )
