"""
Authentication Endpoints.

Sign-up, sign-in and sign-out are passed straight through to the configured
`AuthProvider` (the hosted auth service, or local accounts in development).
The only work done here is creating the minimal profile row right after a
successful sign-up.

Endpoints Provided:
- `/auth/signup`: Create an account and its `{id, email}` profile row.
- `/auth/login`: Exchange email and password for an access token.
- `/auth/logout`: End the caller's session.
- `/auth/me`: The identity behind the presented token.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from core.auth import AuthenticatedUser
from core.exceptions import BackendError
from core.logging_config import get_logger, log_function_call
from core.validation import InputValidator
from services.profile_service import ProfileService
from .dependencies import ServiceContainer, get_container, get_current_user

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


# Request/Response Models
class CredentialsRequest(BaseModel):
    email: str
    password: str


class SessionResponse(BaseModel):
    user_id: str
    email: Optional[str]
    access_token: Optional[str]
    refresh_token: Optional[str] = None
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: str
    email: Optional[str]


@router.post("/signup", response_model=SessionResponse, status_code=201)
@log_function_call(logger)
async def sign_up(
    request: CredentialsRequest,
    container: ServiceContainer = Depends(get_container),
):
    """Register a new account, then write its minimal profile row"""
    email = InputValidator.require_text("email", request.email, max_length=320)
    password = InputValidator.require_text("password", request.password, max_length=128)

    result = await container.auth_provider.sign_up(email, password)

    profiles = ProfileService(
        container.gateway.for_user(result.access_token), container.resolver
    )
    try:
        await profiles.create_minimal(result.user_id, result.email)
    except BackendError as e:
        # the account exists either way; the profile is created on first load
        logger.error(f"Error creating profile for {result.user_id}: {e}")

    logger.info(f"User signed up: {result.user_id}")
    return SessionResponse(
        user_id=result.user_id,
        email=result.email,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )


@router.post("/login", response_model=SessionResponse)
@log_function_call(logger)
async def log_in(
    request: CredentialsRequest,
    container: ServiceContainer = Depends(get_container),
):
    result = await container.auth_provider.sign_in(request.email, request.password)
    logger.info(f"User logged in: {result.user_id}")
    return SessionResponse(
        user_id=result.user_id,
        email=result.email,
        access_token=result.access_token,
        refresh_token=result.refresh_token,
    )


@router.post("/logout")
@log_function_call(logger)
async def log_out(
    current_user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
):
    await container.auth_provider.sign_out(current_user.access_token)
    logger.info(f"User logged out: {current_user.id}")
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=UserResponse)
async def who_am_i(current_user: AuthenticatedUser = Depends(get_current_user)):
    return UserResponse(id=current_user.id, email=current_user.email)
