"""
Authentication Providers

Sign-up, sign-in and sign-out are delegated. `SupabaseAuthProvider` forwards
them to the hosted auth endpoint. `LocalAuthProvider` keeps accounts in memory
with bcrypt password hashes and issues tokens through `TokenManager`, so the
whole request flow can run without the hosted service.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import bcrypt

from core.auth import TokenManager
from core.exceptions import AuthenticationError, BackendError
from providers.supabase_client import SupabaseHTTPClient

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    user_id: str
    email: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


class AuthProvider(ABC):
    """Abstract base class for the auth service"""

    @abstractmethod
    async def sign_up(self, email: str, password: str) -> AuthResult:
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthResult:
        pass

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        pass


class SupabaseAuthProvider(AuthProvider):
    """Hosted auth endpoint (`/auth/v1`)"""

    def __init__(self, client: SupabaseHTTPClient):
        self.client = client

    @staticmethod
    def _result(payload: Dict, email: str) -> AuthResult:
        user = payload.get("user") or payload
        user_id = user.get("id")
        if not user_id:
            raise BackendError("auth", "response did not contain a user")
        return AuthResult(
            user_id=user_id,
            email=user.get("email") or email,
            access_token=payload.get("access_token"),
            refresh_token=payload.get("refresh_token"),
        )

    async def sign_up(self, email: str, password: str) -> AuthResult:
        payload = await self.client.request(
            "POST",
            "/auth/v1/signup",
            "sign up",
            json_body={"email": email, "password": password},
        )
        return self._result(payload or {}, email)

    async def sign_in(self, email: str, password: str) -> AuthResult:
        try:
            payload = await self.client.request(
                "POST",
                "/auth/v1/token",
                "sign in",
                params={"grant_type": "password"},
                json_body={"email": email, "password": password},
            )
        except BackendError as e:
            if e.details.get("status") in (400, 401):
                raise AuthenticationError("Invalid email or password")
            raise
        return self._result(payload or {}, email)

    async def sign_out(self, access_token: str) -> None:
        await self.client.request(
            "POST", "/auth/v1/logout", "sign out", access_token=access_token
        )


class LocalAuthProvider(AuthProvider):
    """In-memory accounts for development"""

    def __init__(self, token_manager: TokenManager):
        self.token_manager = token_manager
        self._accounts: Dict[str, Dict[str, str]] = {}

    async def sign_up(self, email: str, password: str) -> AuthResult:
        key = email.strip().lower()
        if key in self._accounts:
            raise AuthenticationError("User already registered")

        user_id = str(uuid.uuid4())
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        self._accounts[key] = {"id": user_id, "password": hashed.decode("utf-8")}
        logger.info(f"Registered local account {user_id}")
        return AuthResult(
            user_id=user_id,
            email=key,
            access_token=self.token_manager.issue(user_id, key),
        )

    async def sign_in(self, email: str, password: str) -> AuthResult:
        key = email.strip().lower()
        account = self._accounts.get(key)
        if account is None or not bcrypt.checkpw(
            password.encode("utf-8"), account["password"].encode("utf-8")
        ):
            raise AuthenticationError("Invalid email or password")
        return AuthResult(
            user_id=account["id"],
            email=key,
            access_token=self.token_manager.issue(account["id"], key),
        )

    async def sign_out(self, access_token: str) -> None:
        # local tokens simply expire
        return None
