"""
Core data models for the NEXIA API.

Table models mirror the hosted backend's `profiles`, `chat_history` and
`contact_messages` tables and are also used to create the local development
schema. The nested profile value objects (`Heading`, `ContactInfo`,
`Address`, `SocialLink`) are plain pydantic models stored as JSON columns.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field as PydanticField
from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field

CONTACT_METHODS = ("mobile", "email", "sms")

# Platforms a user may add to social_links, in display order
SOCIAL_PLATFORMS: Dict[str, str] = {
    "facebook": "Facebook",
    "instagram": "Instagram",
    "twitter": "Twitter",
    "linkedin": "LinkedIn",
    "youtube": "YouTube",
    "github": "GitHub",
    "pinterest": "Pinterest",
    "tiktok": "TikTok",
    "snapchat": "Snapchat",
    "whatsapp": "WhatsApp",
}

DEFAULT_SOCIAL_KEYS = ("facebook", "instagram", "twitter", "linkedin", "github", "website")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Heading(BaseModel):
    id: int
    title: str = ""
    subheading: str = ""


class ContactInfo(BaseModel):
    mobile: Optional[str] = ""
    email: Optional[str] = ""
    sms: Optional[str] = ""
    enabled: List[str] = PydanticField(default_factory=list)


class Address(BaseModel):
    label: Optional[str] = ""
    line1: Optional[str] = ""
    city: Optional[str] = ""
    state: Optional[str] = ""
    country: Optional[str] = ""
    zipcode: Optional[str] = ""
    map_url: Optional[str] = ""


class SocialLink(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: Optional[str] = ""
    enabled: bool = True
    # older rows store the display label as "name"
    label: Optional[str] = PydanticField(default=None, alias="name")


class ProfileData(BaseModel):
    """Editable shape of a profile as sent by clients"""

    username: Optional[str] = ""
    full_name: Optional[str] = ""
    title: Optional[str] = ""
    bio: Optional[str] = ""
    heading: List[Heading] = PydanticField(default_factory=list)
    contact_info: ContactInfo = PydanticField(default_factory=ContactInfo)
    address: Address = PydanticField(default_factory=Address)
    social_links: Dict[str, SocialLink] = PydanticField(default_factory=dict)
    custom_sections: List[Dict[str, Any]] = PydanticField(default_factory=list)
    avatar_url: Optional[str] = None
    cover_url: Optional[str] = None


class Profile(SQLModel, table=True):
    """One row per authenticated user, keyed by the auth identity"""

    __tablename__ = "profiles"

    id: str = Field(primary_key=True, max_length=64)
    email: Optional[str] = Field(default=None, max_length=320)
    username: Optional[str] = Field(default=None, max_length=255)
    full_name: Optional[str] = Field(default=None, max_length=255)
    title: Optional[str] = Field(default=None, max_length=255)
    bio: Optional[str] = Field(default=None)
    heading: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON)
    )
    contact_info: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    address: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    social_links: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    custom_sections: List[Dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON)
    )
    avatar_url: Optional[str] = Field(default=None, max_length=1024)
    cover_url: Optional[str] = Field(default=None, max_length=1024)
    is_public_profile: bool = Field(default=True)
    public_profile_url: Optional[str] = Field(default=None, max_length=1024)
    updated_at: Optional[datetime] = Field(default_factory=utcnow)


class ChatMessage(SQLModel, table=True):
    """One user/assistant exchange; rows are never updated in place"""

    __tablename__ = "chat_history"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    user_id: str = Field(index=True, max_length=64)
    user_message: Optional[str] = Field(default=None)
    ai_response: Optional[str] = Field(default=None)
    # legacy column names for the same pair
    message: Optional[str] = Field(default=None)
    response: Optional[str] = Field(default=None)
    last_message: Optional[str] = Field(default=None, max_length=128)
    created_at: datetime = Field(default_factory=utcnow, index=True)


class ContactMessage(SQLModel, table=True):
    """Support ticket; status starts and stays at pending"""

    __tablename__ = "contact_messages"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=64)
    user_id: str = Field(index=True, max_length=64)
    subject: str = Field(max_length=255)
    message: str
    status: str = Field(default="pending", max_length=32)
    created_at: datetime = Field(default_factory=utcnow)


TABLE_MODELS = {
    "profiles": Profile,
    "chat_history": ChatMessage,
    "contact_messages": ContactMessage,
}
