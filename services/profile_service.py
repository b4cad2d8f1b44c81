"""
Profile Service.

Owns the profile aggregate: loading (creating a default row on first visit),
validating and saving edits, image uploads and the public view of someone
else's profile.

Saving follows the hosted backend's usual pattern: check whether the row
exists, then update or insert. The two steps are not atomic and there is no
version column, so two concurrent editors end with the last write winning.
Every save recomputes `public_profile_url` from the user id and forces
`is_public_profile` on.
"""

import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Union

from core.exceptions import ProfileValidationError, ValidationError
from core.models import (
    CONTACT_METHODS,
    DEFAULT_SOCIAL_KEYS,
    SOCIAL_PLATFORMS,
    Address,
    ContactInfo,
    Heading,
    ProfileData,
    SocialLink,
    utcnow,
)
from core.validation import ProfileValidator
from providers.data_gateway import TableGateway
from providers.storage_provider import AVATAR_BUCKET, StorageProvider
from services.link_resolver import LinkResolver

logger = logging.getLogger(__name__)

PROFILES = "profiles"
DEFAULT_TITLE = "Nexia User"
IMAGE_KINDS = {"avatar": "avatar_url", "cover": "cover_url"}

ProfileInput = Union[ProfileData, Mapping[str, Any]]


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def is_empty(profile: Optional[Mapping[str, Any]]) -> bool:
    """True iff name, title and enabled contact methods are all missing"""
    if not profile:
        return True
    contact_info = profile.get("contact_info") or {}
    enabled = contact_info.get("enabled") if isinstance(contact_info, Mapping) else None
    return (
        _blank(profile.get("full_name"))
        and _blank(profile.get("title"))
        and not enabled
    )


def default_social_links() -> Dict[str, Dict[str, Any]]:
    return {key: {"url": "", "enabled": True} for key in DEFAULT_SOCIAL_KEYS}


def default_profile(
    user_id: str,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
    phone: Optional[str] = None,
) -> Dict[str, Any]:
    """Skeleton row inserted the first time a user opens the editor"""
    return {
        "id": user_id,
        "email": email,
        "username": "",
        "full_name": full_name or "",
        "title": "",
        "bio": "",
        "heading": [],
        "contact_info": {
            "mobile": phone or "",
            "email": email or "",
            "sms": "",
            "enabled": ["email"],
        },
        "address": Address().model_dump(),
        "social_links": default_social_links(),
        "custom_sections": [],
        "avatar_url": None,
        "cover_url": None,
        "is_public_profile": True,
        "updated_at": utcnow(),
    }


def enabled_methods(methods: Optional[List[str]]) -> List[str]:
    """Known contact methods, de-duplicated, in first-seen order"""
    result: List[str] = []
    for method in methods or []:
        if method in CONTACT_METHODS and method not in result:
            result.append(method)
    return result


def normalize_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Fill absent nested values of a stored row with their defaults"""
    profile = dict(row)
    profile["heading"] = list(profile.get("heading") or [])
    contact_info = dict(profile.get("contact_info") or {})
    contact_info["enabled"] = enabled_methods(contact_info.get("enabled"))
    profile["contact_info"] = ContactInfo(**contact_info).model_dump()
    profile["address"] = {**Address().model_dump(), **(profile.get("address") or {})}
    social_links = {}
    for platform, link in (profile.get("social_links") or {}).items():
        link = dict(link or {})
        if "name" in link and "label" not in link:
            link["label"] = link.pop("name")
        social_links[platform] = {"url": "", "enabled": True, **link}
    profile["social_links"] = social_links
    profile["custom_sections"] = list(profile.get("custom_sections") or [])
    return profile


class ProfileService:
    """Load, validate and persist profiles"""

    def __init__(
        self,
        gateway: TableGateway,
        resolver: LinkResolver,
        storage: Optional[StorageProvider] = None,
    ):
        self.gateway = gateway
        self.resolver = resolver
        self.storage = storage

    @staticmethod
    def validate(profile: ProfileInput):
        """Field errors for a profile draft; never raises for bad values"""
        data = profile.model_dump() if isinstance(profile, ProfileData) else profile
        return ProfileValidator.validate(data)

    async def create_minimal(self, user_id: str, email: Optional[str]) -> Dict[str, Any]:
        """Row written right after a successful sign-up"""
        row = await self.gateway.insert(PROFILES, {"id": user_id, "email": email})
        logger.info(f"Created profile row for new user {user_id}")
        return row

    async def load_profile(
        self, user_id: str, email: Optional[str] = None, full_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Fetch the caller's profile, inserting the default skeleton if missing"""
        row = await self.gateway.select_one(PROFILES, {"id": user_id})
        if row is not None:
            return normalize_row(row)

        logger.info(f"Profile does not exist for {user_id}, creating default profile")
        row = await self.gateway.insert(
            PROFILES, default_profile(user_id, email=email, full_name=full_name)
        )
        return normalize_row(row)

    def build_updates(
        self,
        user_id: str,
        data: Mapping[str, Any],
        origin: Optional[str] = None,
        native: bool = False,
        email: Optional[str] = None,
    ) -> Dict[str, Any]:
        contact_info = dict(data.get("contact_info") or {})
        if contact_info:
            contact_info["enabled"] = enabled_methods(contact_info.get("enabled"))
        else:
            contact_info = {"email": email, "mobile": None, "enabled": ["email"]}

        return {
            "id": user_id,
            "username": _clean(data.get("username")),
            "full_name": _clean(data.get("full_name")),
            "title": _clean(data.get("title")) or DEFAULT_TITLE,
            "bio": _clean(data.get("bio")),
            "heading": list(data.get("heading") or []),
            "contact_info": contact_info,
            "address": dict(data.get("address") or Address().model_dump()),
            "social_links": dict(data.get("social_links") or {}),
            "custom_sections": list(data.get("custom_sections") or []),
            "avatar_url": data.get("avatar_url") or None,
            "cover_url": data.get("cover_url") or None,
            "is_public_profile": True,
            "public_profile_url": self.resolver.build_profile_url(
                user_id, origin=origin, native=native
            ),
            "updated_at": utcnow(),
        }

    async def save(
        self,
        user_id: str,
        profile: ProfileInput,
        origin: Optional[str] = None,
        native: bool = False,
        email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Validate, then update the row if it exists or insert it otherwise"""
        data = profile.model_dump() if isinstance(profile, ProfileData) else dict(profile)

        errors = ProfileValidator.validate(data)
        if errors:
            raise ProfileValidationError([error.to_dict() for error in errors])

        updates = self.build_updates(user_id, data, origin=origin, native=native, email=email)

        existing = await self.gateway.select_one(PROFILES, {"id": user_id})
        if existing is not None:
            rows = await self.gateway.update(PROFILES, {"id": user_id}, updates)
            saved = rows[0] if rows else {**existing, **updates}
            logger.info(f"Updated profile {user_id}")
        else:
            saved = await self.gateway.insert(PROFILES, {**updates, "email": email})
            logger.info(f"Inserted profile {user_id}")

        return normalize_row(saved)

    async def ensure_public_url(
        self, user_id: str, origin: Optional[str] = None, native: bool = False
    ) -> str:
        """Canonical share URL, written back to the row when it was never stored"""
        url = self.resolver.build_profile_url(user_id, origin=origin, native=native)
        row = await self.gateway.select_one(PROFILES, {"id": user_id})
        if row is not None and not row.get("public_profile_url"):
            await self.gateway.update(
                PROFILES,
                {"id": user_id},
                {"public_profile_url": url, "is_public_profile": True},
            )
        return url

    async def upload_image(self, user_id: str, data: bytes, kind: str) -> str:
        """Store an avatar or cover image and point the profile at it"""
        if kind not in IMAGE_KINDS:
            raise ValidationError("kind", kind, "Must be 'avatar' or 'cover'")
        if not data:
            raise ValidationError("file", "", "No image data received")
        if self.storage is None:
            raise ValidationError("file", "", "Image storage is not available")

        path = f"{user_id}/{int(time.time() * 1000)}_{kind}.jpg"
        await self.storage.upload(AVATAR_BUCKET, path, data, content_type="image/jpeg")
        public_url = self.storage.public_url(AVATAR_BUCKET, path)

        await self.load_profile(user_id)
        await self.gateway.update(PROFILES, {"id": user_id}, {IMAGE_KINDS[kind]: public_url})
        logger.info(f"Stored {kind} image for {user_id}")
        return public_url

    async def get_public_profile(
        self, user_id: str, origin: Optional[str] = None
    ) -> Dict[str, Any]:
        """What a visitor sees; an unknown id yields the empty-state view"""
        share_url = self.resolver.build_profile_url(user_id, origin=origin)
        row = await self.gateway.select_one(PROFILES, {"id": user_id})
        if row is None:
            return {"id": user_id, "is_empty": True, "public_profile_url": share_url}

        profile = normalize_row(row)
        return public_view(profile, self.resolver, share_url)


def public_view(
    profile: Mapping[str, Any], resolver: LinkResolver, share_url: str
) -> Dict[str, Any]:
    """Strip hidden contact methods and disabled links from a profile"""
    contact_info = profile.get("contact_info") or {}
    enabled = contact_info.get("enabled") or []
    visible_contact = {method: contact_info.get(method) for method in enabled}

    social_links = {
        platform: link
        for platform, link in (profile.get("social_links") or {}).items()
        if link.get("enabled") and link.get("url")
    }

    return {
        "id": profile.get("id"),
        "is_empty": is_empty(profile),
        "username": profile.get("username") or "",
        "full_name": profile.get("full_name") or "",
        "title": profile.get("title") or "",
        "bio": profile.get("bio") or "",
        "heading": profile.get("heading") or [],
        "contact_info": {**visible_contact, "enabled": list(enabled)},
        "address": profile.get("address") or {},
        "social_links": social_links,
        "custom_sections": profile.get("custom_sections") or [],
        "avatar_url": profile.get("avatar_url"),
        "cover_url": profile.get("cover_url"),
        "public_profile_url": resolver.canonicalize(
            profile.get("public_profile_url") or share_url
        ),
        "updated_at": profile.get("updated_at"),
    }


class ProfileEditor:
    """
    In-memory edits of a profile draft before it is saved.

    Mirrors the edit screen: headings are appended with a millisecond
    timestamp id, contact methods are toggled on and off, and social links are
    added from a fixed catalog of platforms.
    """

    def __init__(self, draft: ProfileData):
        self.draft = draft

    def _next_heading_id(self) -> int:
        candidate = int(time.time() * 1000)
        existing = [heading.id for heading in self.draft.heading]
        if existing and candidate <= max(existing):
            candidate = max(existing) + 1
        return candidate

    def add_heading(self, title: str = "", subheading: str = "") -> Heading:
        heading = Heading(id=self._next_heading_id(), title=title, subheading=subheading)
        self.draft.heading.append(heading)
        return heading

    def update_heading(
        self, heading_id: int, title: Optional[str] = None, subheading: Optional[str] = None
    ) -> Heading:
        for heading in self.draft.heading:
            if heading.id == heading_id:
                if title is not None:
                    heading.title = title
                if subheading is not None:
                    heading.subheading = subheading
                return heading
        raise ValidationError("heading", heading_id, "No heading with this id")

    def remove_heading(self, heading_id: int) -> bool:
        before = len(self.draft.heading)
        self.draft.heading = [h for h in self.draft.heading if h.id != heading_id]
        return len(self.draft.heading) < before

    def toggle_contact_method(self, method: str) -> List[str]:
        if method not in CONTACT_METHODS:
            raise ValidationError("contact_method", method, "Must be mobile, email or sms")
        enabled = self.draft.contact_info.enabled
        if method in enabled:
            enabled.remove(method)
        else:
            enabled.append(method)
        return list(enabled)

    def add_social_link(self, platform: str) -> SocialLink:
        if platform not in SOCIAL_PLATFORMS:
            raise ValidationError("platform", platform, "Unsupported platform")
        if platform in self.draft.social_links:
            raise ValidationError("platform", platform, "Platform already added")
        link = SocialLink(url="", enabled=True, label=SOCIAL_PLATFORMS[platform])
        self.draft.social_links[platform] = link
        return link

    def set_social_link(
        self, platform: str, url: Optional[str] = None, enabled: Optional[bool] = None
    ) -> SocialLink:
        link = self.draft.social_links.get(platform)
        if link is None:
            raise ValidationError("platform", platform, "Platform not added")
        if url is not None:
            link.url = url.strip()
        if enabled is not None:
            link.enabled = enabled
        return link

    def remove_social_link(self, platform: str) -> bool:
        return self.draft.social_links.pop(platform, None) is not None

    def available_platforms(self) -> Dict[str, str]:
        """Catalog entries not yet on the profile"""
        return {
            key: name
            for key, name in SOCIAL_PLATFORMS.items()
            if key not in self.draft.social_links
        }
