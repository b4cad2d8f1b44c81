"""
Service container and FastAPI dependency providers.

The container is built once in the application lifespan and stored on
`app.state.container`; nothing here is a module-level singleton. Request
handlers receive services through `Depends`, and per-request services are
bound to the caller's access token so the hosted backend sees the caller,
not this service.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncEngine

from core.auth import AuthenticatedUser, TokenManager
from core.config import Settings
from core.database import build_engine, create_db_and_tables
from core.exceptions import ConfigurationError
from providers.ai_provider import AIProvider, GeminiProvider
from providers.auth_provider import AuthProvider, LocalAuthProvider, SupabaseAuthProvider
from providers.data_gateway import SQLTableGateway, SupabaseTableGateway, TableGateway
from providers.kv_store import FileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from providers.storage_provider import (
    LocalStorageProvider,
    StorageProvider,
    SupabaseStorageProvider,
)
from providers.supabase_client import SupabaseHTTPClient
from services.chat_service import ChatService
from services.contact_service import ContactService
from services.link_resolver import LinkResolver
from services.profile_service import ProfileService
from services.qr_service import QRService
from services.theme_service import ThemeStore

logger = logging.getLogger(__name__)

NATIVE_PLATFORMS = ("ios", "android")


@dataclass
class ServiceContainer:
    settings: Settings
    gateway: TableGateway
    storage: StorageProvider
    auth_provider: AuthProvider
    token_manager: TokenManager
    resolver: LinkResolver
    theme_store: ThemeStore
    qr_service: QRService
    ai_provider: Optional[AIProvider] = None
    engine: Optional[AsyncEngine] = None

    def require_ai(self) -> AIProvider:
        if self.ai_provider is None:
            raise ConfigurationError("gemini", "missing GEMINI_API_KEY")
        return self.ai_provider

    async def close(self) -> None:
        await self.gateway.close()
        if self.ai_provider is not None:
            await self.ai_provider.close()


def build_theme_backend(settings: Settings) -> KeyValueStore:
    if settings.theme_store == "file":
        return FileKeyValueStore(settings.theme_store_path)
    return MemoryKeyValueStore()


async def build_container(settings: Settings) -> ServiceContainer:
    """Compose every provider and service for the configured backend"""
    token_manager = TokenManager(secret_key=settings.supabase_jwt_secret)
    resolver = LinkResolver(settings.app_url, scheme=settings.deep_link_scheme)

    engine = None
    if settings.backend == "supabase":
        settings.require_supabase()
        client = SupabaseHTTPClient(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout_seconds=settings.http_timeout_seconds,
        )
        gateway: TableGateway = SupabaseTableGateway(client)
        storage: StorageProvider = SupabaseStorageProvider(client)
        auth_provider: AuthProvider = SupabaseAuthProvider(client)
    elif settings.backend == "local":
        engine = build_engine(settings.database_url)
        await create_db_and_tables(engine)
        gateway = SQLTableGateway(engine)
        storage = LocalStorageProvider(settings.media_dir, settings.media_base_url)
        auth_provider = LocalAuthProvider(token_manager)
    else:
        raise ConfigurationError(
            "backend", f"unknown NEXIA_BACKEND '{settings.backend}', use local or supabase"
        )

    ai_provider = None
    if settings.gemini_api_key:
        ai_provider = GeminiProvider(settings.gemini_api_key, settings.gemini_api_url)
    else:
        logger.warning("GEMINI_API_KEY is not set; chat endpoints will be unavailable")

    logger.info(f"Service container built for the {settings.backend} backend")
    return ServiceContainer(
        settings=settings,
        gateway=gateway,
        storage=storage,
        auth_provider=auth_provider,
        token_manager=token_manager,
        resolver=resolver,
        theme_store=ThemeStore(build_theme_backend(settings)),
        qr_service=QRService(resolver),
        ai_provider=ai_provider,
        engine=engine,
    )


@dataclass(frozen=True)
class ClientContext:
    """Where a request came from, for building share URLs"""

    origin: Optional[str] = None
    native: bool = False


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise ConfigurationError("container", "application has not started")
    return container


def get_client_context(
    origin: Optional[str] = Header(None),
    x_client_platform: Optional[str] = Header(None),
) -> ClientContext:
    platform = (x_client_platform or "web").lower()
    return ClientContext(origin=origin, native=platform in NATIVE_PLATFORMS)


def get_current_user(
    authorization: Optional[str] = Header(None),
    container: ServiceContainer = Depends(get_container),
) -> AuthenticatedUser:
    return container.token_manager.authenticate(authorization)


def get_resolver(container: ServiceContainer = Depends(get_container)) -> LinkResolver:
    return container.resolver


def get_theme_store(container: ServiceContainer = Depends(get_container)) -> ThemeStore:
    return container.theme_store


def get_qr_service(container: ServiceContainer = Depends(get_container)) -> QRService:
    return container.qr_service


def get_public_profile_service(
    container: ServiceContainer = Depends(get_container),
) -> ProfileService:
    """Profile reads made without a caller identity"""
    return ProfileService(container.gateway.for_user(None), container.resolver)


def get_profile_service(
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> ProfileService:
    return ProfileService(
        container.gateway.for_user(user.access_token),
        container.resolver,
        container.storage.for_user(user.access_token),
    )


def get_chat_service(
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> ChatService:
    return ChatService(container.require_ai(), container.gateway.for_user(user.access_token))


def get_contact_service(
    user: AuthenticatedUser = Depends(get_current_user),
    container: ServiceContainer = Depends(get_container),
) -> ContactService:
    return ContactService(container.gateway.for_user(user.access_token))
