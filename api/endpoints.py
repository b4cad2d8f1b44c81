"""
API Endpoints for Profiles, QR Codes, Chat and Preferences.

This module defines the authenticated REST surface of the NEXIA API. Every
endpoint here acts on behalf of the caller identified by the bearer token.

Endpoints Provided:
- `/api/profile`: Load (creating on first visit) and save the caller's profile.
- `/api/profile/validate`: Field errors for a draft without saving it.
- `/api/profile/image`: Upload an avatar or cover image.
- `/api/profile/social-platforms`: The catalog of platforms a link can use.
- `/api/qr`, `/api/qr/meta`: Render the caller's share QR code and its
  rendering parameters.
- `/api/qr/scan`: Interpret a string read by a QR scanner.
- `/api/chat`: Send a message to the assistant, list and delete transcript
  entries; `/api/chat/health` probes the model and table permissions.
- `/api/chat/analyze-profile`: Improvement suggestions for the caller's profile.
- `/api/contact`: Submit a support ticket.
- `/api/theme`: Read, set and toggle the light/dark preference.
- `/api/layout`: Breakpoint and sizing information for a viewport.

Architectural Design:
- Dependency Injection: Services are built per request from the application's
  `ServiceContainer` and bound to the caller's token.
- Error Handling: Services raise `NexiaAPIException` subclasses, which the
  application exception handler renders. Endpoints do not catch them.
- Not-found profiles are an empty state, never a 404.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from core.auth import AuthenticatedUser
from core.logging_config import log_function_call
from core.models import SOCIAL_PLATFORMS, ProfileData
from core.responsive import Viewport, describe
from services.chat_service import ChatService
from services.contact_service import ContactService
from services.profile_service import ProfileService, is_empty
from services.qr_service import QRConfig, QRService
from services.theme_service import ThemeStore
from .dependencies import (
    ClientContext,
    get_chat_service,
    get_client_context,
    get_contact_service,
    get_current_user,
    get_profile_service,
    get_qr_service,
    get_theme_store,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


# Request/Response Models
class ChatRequest(BaseModel):
    message: str


class ContactRequest(BaseModel):
    subject: str
    message: str


class ThemeRequest(BaseModel):
    dark: bool


class ScanRequest(BaseModel):
    data: Optional[str] = None


class FieldErrorResponse(BaseModel):
    field: str
    message: str


class ValidationResponse(BaseModel):
    valid: bool
    errors: List[FieldErrorResponse]


def viewport_from_query(
    width: float = Query(1024, gt=0),
    height: float = Query(768, gt=0),
    platform: str = Query("web", pattern="^(web|ios|android)$"),
) -> Viewport:
    return Viewport(width=width, height=height, platform=platform)


def qr_config_from_query(
    foreground_color: str = Query("#000000"),
    background_color: str = Query("#FFFFFF"),
    style: str = Query("squares"),
    corner_radius: int = Query(0),
) -> QRConfig:
    return QRConfig(
        foreground_color=foreground_color,
        background_color=background_color,
        style=style,
        corner_radius=corner_radius,
    )


# Profile
@router.get("/profile", tags=["Profile"])
@log_function_call(logger)
async def get_my_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    profile_svc: ProfileService = Depends(get_profile_service),
) -> Dict[str, Any]:
    """Caller's profile; a default one is created on first visit"""
    profile = await profile_svc.load_profile(user.id, email=user.email)
    return {**profile, "is_empty": is_empty(profile)}


@router.put("/profile", tags=["Profile"])
@log_function_call(logger)
async def save_my_profile(
    draft: ProfileData,
    user: AuthenticatedUser = Depends(get_current_user),
    client: ClientContext = Depends(get_client_context),
    profile_svc: ProfileService = Depends(get_profile_service),
) -> Dict[str, Any]:
    profile = await profile_svc.save(
        user.id, draft, origin=client.origin, native=client.native, email=user.email
    )
    logger.info(
        "Profile saved",
        extra={"user_id": user.id, "public_profile_url": profile.get("public_profile_url")},
    )
    return {**profile, "is_empty": is_empty(profile)}


@router.post("/profile/validate", response_model=ValidationResponse, tags=["Profile"])
async def validate_profile(
    draft: Dict[str, Any],
    user: AuthenticatedUser = Depends(get_current_user),
) -> ValidationResponse:
    errors = ProfileService.validate(draft)
    return ValidationResponse(
        valid=not errors,
        errors=[FieldErrorResponse(**error.to_dict()) for error in errors],
    )


@router.post("/profile/image", tags=["Profile"])
@log_function_call(logger)
async def upload_profile_image(
    kind: str = Query(..., pattern="^(avatar|cover)$"),
    file: UploadFile = File(...),
    user: AuthenticatedUser = Depends(get_current_user),
    profile_svc: ProfileService = Depends(get_profile_service),
) -> Dict[str, str]:
    data = await file.read()
    url = await profile_svc.upload_image(user.id, data, kind)
    return {"kind": kind, "url": url}


@router.get("/profile/social-platforms", tags=["Profile"])
async def list_social_platforms() -> Dict[str, str]:
    return dict(SOCIAL_PLATFORMS)


# QR codes
@router.get("/qr", tags=["QR"])
@log_function_call(logger)
async def get_qr_code(
    user: AuthenticatedUser = Depends(get_current_user),
    client: ClientContext = Depends(get_client_context),
    config: QRConfig = Depends(qr_config_from_query),
    viewport: Viewport = Depends(viewport_from_query),
    profile_svc: ProfileService = Depends(get_profile_service),
    qr_svc: QRService = Depends(get_qr_service),
) -> Response:
    """PNG of the caller's share URL"""
    url = await profile_svc.ensure_public_url(user.id, origin=client.origin)
    payload = qr_svc.encode(url, config, viewport)
    return Response(content=payload.png, media_type="image/png")


@router.post("/qr", tags=["QR"])
@log_function_call(logger)
async def render_qr_code_with_logo(
    foreground_color: str = Form("#000000"),
    background_color: str = Form("#FFFFFF"),
    style: str = Form("squares"),
    corner_radius: int = Form(0),
    logo: Optional[UploadFile] = File(None),
    user: AuthenticatedUser = Depends(get_current_user),
    client: ClientContext = Depends(get_client_context),
    viewport: Viewport = Depends(viewport_from_query),
    profile_svc: ProfileService = Depends(get_profile_service),
    qr_svc: QRService = Depends(get_qr_service),
) -> Response:
    """Same as `GET /api/qr`, with an uploaded logo in the centre"""
    logo_image = await logo.read() if logo is not None else None
    config = QRConfig(
        foreground_color=foreground_color,
        background_color=background_color,
        style=style,
        corner_radius=corner_radius,
        show_logo=bool(logo_image),
        logo_image=logo_image,
    )
    url = await profile_svc.ensure_public_url(user.id, origin=client.origin)
    payload = qr_svc.encode(url, config, viewport)
    return Response(content=payload.png, media_type="image/png")


@router.get("/qr/meta", tags=["QR"])
async def get_qr_metadata(
    show_logo: bool = Query(False),
    user: AuthenticatedUser = Depends(get_current_user),
    client: ClientContext = Depends(get_client_context),
    config: QRConfig = Depends(qr_config_from_query),
    viewport: Viewport = Depends(viewport_from_query),
    profile_svc: ProfileService = Depends(get_profile_service),
    qr_svc: QRService = Depends(get_qr_service),
) -> Dict[str, Any]:
    config.show_logo = show_logo
    url = await profile_svc.ensure_public_url(user.id, origin=client.origin)
    return qr_svc.metadata(url, config, viewport)


@router.post("/qr/scan", tags=["QR"])
async def scan_qr_code(
    request: ScanRequest,
    qr_svc: QRService = Depends(get_qr_service),
) -> Dict[str, Any]:
    """What the client should do with a scanned string"""
    return qr_svc.decode(request.data).to_dict()


# Chat
@router.post("/chat", tags=["Chat"])
@log_function_call(logger)
async def send_chat_message(
    request: ChatRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    chat_svc: ChatService = Depends(get_chat_service),
) -> Dict[str, Any]:
    return await chat_svc.send(user.id, request.message)


@router.get("/chat", tags=["Chat"])
async def list_chat_history(
    limit: int = Query(10, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    chat_svc: ChatService = Depends(get_chat_service),
) -> List[Dict[str, Any]]:
    return await chat_svc.list_recent(user.id, limit=limit)


@router.get("/chat/health", tags=["Chat"])
async def chat_health(
    user: AuthenticatedUser = Depends(get_current_user),
    chat_svc: ChatService = Depends(get_chat_service),
) -> Dict[str, Any]:
    """Probe the model and the caller's transcript permissions"""
    connected = await chat_svc.test_connection()
    permissions = await chat_svc.check_permissions(user.id)
    return {
        "ai_connected": connected,
        "model": chat_svc.ai_provider.model_name,
        "permissions": permissions,
    }


@router.post("/chat/analyze-profile", tags=["Chat"])
@log_function_call(logger)
async def analyze_my_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    profile_svc: ProfileService = Depends(get_profile_service),
    chat_svc: ChatService = Depends(get_chat_service),
) -> Dict[str, str]:
    profile = await profile_svc.load_profile(user.id, email=user.email)
    analysis = await chat_svc.analyze_profile(profile)
    return {"analysis": analysis}


@router.delete("/chat/{chat_id}", tags=["Chat"])
@log_function_call(logger)
async def delete_chat(
    chat_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    chat_svc: ChatService = Depends(get_chat_service),
) -> Dict[str, str]:
    await chat_svc.delete(user.id, chat_id)
    return {"status": "deleted", "id": chat_id}


# Support
@router.post("/contact", status_code=201, tags=["Support"])
@log_function_call(logger)
async def submit_contact_message(
    request: ContactRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    contact_svc: ContactService = Depends(get_contact_service),
) -> Dict[str, Any]:
    row = await contact_svc.submit(user.id, request.subject, request.message)
    return {
        "id": row.get("id"),
        "status": row.get("status"),
        "message": "Your message has been sent. We'll get back to you soon.",
    }


# Preferences
@router.get("/theme", tags=["Preferences"])
async def get_theme(
    user: AuthenticatedUser = Depends(get_current_user),
    theme_store: ThemeStore = Depends(get_theme_store),
) -> Dict[str, Any]:
    return await theme_store.describe(user.id)


@router.post("/theme/toggle", tags=["Preferences"])
async def toggle_theme(
    user: AuthenticatedUser = Depends(get_current_user),
    theme_store: ThemeStore = Depends(get_theme_store),
) -> Dict[str, Any]:
    await theme_store.toggle(user.id)
    return await theme_store.describe(user.id)


@router.put("/theme", tags=["Preferences"])
async def set_theme(
    request: ThemeRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    theme_store: ThemeStore = Depends(get_theme_store),
) -> Dict[str, Any]:
    await theme_store.set(user.id, request.dark)
    return await theme_store.describe(user.id)


@router.get("/layout", tags=["Layout"])
async def get_layout(viewport: Viewport = Depends(viewport_from_query)) -> Dict[str, Any]:
    """Breakpoint, orientation and component sizes for a viewport"""
    return describe(viewport)
