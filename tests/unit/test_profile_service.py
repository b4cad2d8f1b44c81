"""
Unit tests for ProfileService and ProfileEditor

Uses an in-memory table gateway and a mocked storage provider.
"""
import pytest
from unittest.mock import AsyncMock
from core.exceptions import BackendError, ProfileValidationError, ValidationError
from core.models import ProfileData
from services.profile_service import (
    DEFAULT_TITLE,
    PROFILES,
    ProfileEditor,
    ProfileService,
    default_profile,
)

APP_URL = "https://nexia.naveennuwantha.lk"


class TestProfileService:
    """Test ProfileService"""

    @pytest.fixture
    def service(self, gateway, resolver, mock_storage):
        return ProfileService(gateway, resolver, mock_storage)

    @pytest.mark.asyncio
    async def test_load_creates_default_profile(self, service, gateway):
        profile = await service.load_profile("u1", email="u1@example.com")

        assert profile["id"] == "u1"
        assert profile["contact_info"]["enabled"] == ["email"]
        assert profile["contact_info"]["email"] == "u1@example.com"
        assert set(profile["social_links"]) == {
            "facebook", "instagram", "twitter", "linkedin", "github", "website"
        }
        assert len(gateway.tables[PROFILES]) == 1

    @pytest.mark.asyncio
    async def test_load_existing_profile_does_not_insert(self, service, gateway):
        gateway.tables[PROFILES] = [{"id": "u1", "full_name": "Existing"}]

        profile = await service.load_profile("u1")

        assert profile["full_name"] == "Existing"
        assert profile["contact_info"]["enabled"] == []
        assert "insert:profiles" not in gateway.calls

    @pytest.mark.asyncio
    async def test_save_inserts_when_missing(self, service, gateway, sample_profile_data):
        saved = await service.save("u1", sample_profile_data)

        assert saved["public_profile_url"] == f"{APP_URL}/viewprofile/u1"
        assert saved["is_public_profile"] is True
        assert gateway.calls[-1] == "insert:profiles"

    @pytest.mark.asyncio
    async def test_save_insert_keeps_account_email(self, service, gateway, sample_profile_data):
        await service.save("u1", sample_profile_data, email="u1@example.com")

        assert gateway.tables[PROFILES][0]["email"] == "u1@example.com"

    @pytest.mark.asyncio
    async def test_save_updates_when_present(self, service, gateway, sample_profile_data):
        gateway.tables[PROFILES] = [default_profile("u1", email="u1@example.com")]

        saved = await service.save("u1", sample_profile_data)

        assert saved["full_name"] == "Jane Doe"
        assert gateway.calls[-1] == "update:profiles"
        assert len(gateway.tables[PROFILES]) == 1

    @pytest.mark.asyncio
    async def test_save_twice_keeps_same_public_url(self, service, sample_profile_data):
        first = await service.save("u1", sample_profile_data)
        second = await service.save("u1", sample_profile_data)

        assert first["public_profile_url"] == second["public_profile_url"]

    @pytest.mark.asyncio
    async def test_save_forces_public_and_defaults_title(self, service, gateway):
        gateway.tables[PROFILES] = [{"id": "u1", "is_public_profile": False}]

        saved = await service.save("u1", {"full_name": "A", "title": "  ", "bio": ""})

        assert saved["is_public_profile"] is True
        assert saved["title"] == DEFAULT_TITLE
        assert saved["bio"] is None

    @pytest.mark.asyncio
    async def test_save_accepts_pydantic_draft(self, service, sample_profile_data):
        saved = await service.save("u1", ProfileData(**sample_profile_data))
        assert saved["heading"][0]["title"] == "About"

    @pytest.mark.asyncio
    async def test_save_uses_local_origin(self, service, sample_profile_data):
        saved = await service.save("u1", sample_profile_data, origin="http://localhost:19006")
        assert saved["public_profile_url"] == "http://localhost:19006/viewprofile/u1"

    @pytest.mark.asyncio
    async def test_invalid_save_writes_nothing(self, service, gateway):
        with pytest.raises(ProfileValidationError) as exc_info:
            await service.save("u1", {"full_name": "", "email": "bad"})

        assert {e["field"] for e in exc_info.value.errors} == {"full_name", "email"}
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_backend_failure_propagates(self, service, gateway, sample_profile_data):
        gateway.fail_on.add("select")
        with pytest.raises(BackendError):
            await service.save("u1", sample_profile_data)

    @pytest.mark.asyncio
    async def test_create_minimal(self, service, gateway):
        row = await service.create_minimal("u1", "u1@example.com")
        assert row == {"id": "u1", "email": "u1@example.com"}

    @pytest.mark.asyncio
    async def test_ensure_public_url_persists_when_missing(self, service, gateway):
        gateway.tables[PROFILES] = [{"id": "u1", "public_profile_url": None}]

        url = await service.ensure_public_url("u1")

        assert url == f"{APP_URL}/viewprofile/u1"
        assert gateway.tables[PROFILES][0]["public_profile_url"] == url

    @pytest.mark.asyncio
    async def test_ensure_public_url_leaves_existing(self, service, gateway):
        gateway.tables[PROFILES] = [{"id": "u1", "public_profile_url": "stored"}]

        await service.ensure_public_url("u1")

        assert "update:profiles" not in gateway.calls

    @pytest.mark.asyncio
    async def test_upload_avatar(self, service, gateway, mock_storage):
        url = await service.upload_image("u1", b"\xff\xd8jpeg", "avatar")

        bucket, path, data = mock_storage.upload.call_args.args[:3]
        assert bucket == "avatars"
        assert path.startswith("u1/") and path.endswith("_avatar.jpg")
        assert data == b"\xff\xd8jpeg"
        assert url == f"https://cdn.example.com/avatars/{path}"
        assert gateway.tables[PROFILES][0]["avatar_url"] == url

    @pytest.mark.asyncio
    async def test_upload_rejects_unknown_kind(self, service, mock_storage):
        with pytest.raises(ValidationError):
            await service.upload_image("u1", b"data", "banner")
        mock_storage.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_failure_leaves_profile_untouched(self, service, gateway, mock_storage):
        mock_storage.upload = AsyncMock(side_effect=BackendError("upload avatars", "boom"))

        with pytest.raises(BackendError):
            await service.upload_image("u1", b"data", "cover")
        assert PROFILES not in gateway.tables

    @pytest.mark.asyncio
    async def test_public_profile_not_found_is_empty_state(self, service):
        view = await service.get_public_profile("ghost")

        assert view["is_empty"] is True
        assert view["public_profile_url"] == f"{APP_URL}/viewprofile/ghost"

    @pytest.mark.asyncio
    async def test_public_profile_hides_disabled_items(self, service, gateway, sample_profile_data):
        await service.save("u1", sample_profile_data)
        gateway.tables[PROFILES][0]["public_profile_url"] = f"{APP_URL}/public-profile/u1"

        view = await service.get_public_profile("u1")

        assert view["is_empty"] is False
        assert set(view["social_links"]) == {"github", "website"}
        assert view["contact_info"] == {
            "mobile": "+94 771234567",
            "email": "jane@example.com",
            "enabled": ["mobile", "email"],
        }
        assert view["public_profile_url"] == f"{APP_URL}/viewprofile/u1"


class TestProfileEditor:
    """Test in-memory profile editing helpers"""

    @pytest.fixture
    def editor(self):
        return ProfileEditor(ProfileData(full_name="Jane"))

    def test_heading_ids_are_unique(self, editor):
        first = editor.add_heading("One")
        second = editor.add_heading("Two")
        third = editor.add_heading("Three")

        assert first.id < second.id < third.id

    def test_update_and_remove_heading(self, editor):
        heading = editor.add_heading("Old")
        editor.update_heading(heading.id, title="New")

        assert editor.draft.heading[0].title == "New"
        assert editor.remove_heading(heading.id) is True
        assert editor.remove_heading(heading.id) is False

    def test_update_missing_heading(self, editor):
        with pytest.raises(ValidationError):
            editor.update_heading(1, title="x")

    def test_toggle_contact_method(self, editor):
        assert editor.toggle_contact_method("sms") == ["sms"]
        assert editor.toggle_contact_method("email") == ["sms", "email"]
        assert editor.toggle_contact_method("sms") == ["email"]

    def test_toggle_unknown_method(self, editor):
        with pytest.raises(ValidationError):
            editor.toggle_contact_method("fax")

    def test_social_link_catalog(self, editor):
        link = editor.add_social_link("youtube")
        assert link.label == "YouTube"
        assert "youtube" not in editor.available_platforms()

        with pytest.raises(ValidationError):
            editor.add_social_link("youtube")
        with pytest.raises(ValidationError):
            editor.add_social_link("myspace")

    def test_set_and_remove_social_link(self, editor):
        editor.add_social_link("github")
        link = editor.set_social_link("github", url=" https://github.com/jane ", enabled=False)

        assert link.url == "https://github.com/jane"
        assert link.enabled is False
        assert editor.remove_social_link("github") is True
        assert editor.remove_social_link("github") is False

    def test_set_link_not_added(self, editor):
        with pytest.raises(ValidationError):
            editor.set_social_link("github", url="x")
