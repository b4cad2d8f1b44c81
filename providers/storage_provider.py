"""
Object Storage Providers

Avatar and cover images are written to the `avatars` bucket and served from a
public URL that is stored on the profile row right after upload.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote

from core.exceptions import BackendError, StorageError
from providers.supabase_client import SupabaseHTTPClient

logger = logging.getLogger(__name__)

AVATAR_BUCKET = "avatars"


class StorageProvider(ABC):
    """Abstract base class for object storage"""

    def for_user(self, access_token: Optional[str]) -> "StorageProvider":
        return self

    @abstractmethod
    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str = "image/jpeg"
    ) -> str:
        """Store the object (overwriting) and return its path"""
        pass

    @abstractmethod
    def public_url(self, bucket: str, path: str) -> str:
        pass

    @abstractmethod
    async def remove(self, bucket: str, paths: List[str]) -> None:
        pass


class SupabaseStorageProvider(StorageProvider):
    """Hosted storage API"""

    def __init__(self, client: SupabaseHTTPClient, access_token: Optional[str] = None):
        self.client = client
        self.access_token = access_token

    def for_user(self, access_token: Optional[str]) -> "SupabaseStorageProvider":
        return SupabaseStorageProvider(self.client, access_token)

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str = "image/jpeg"
    ) -> str:
        try:
            await self.client.request(
                "POST",
                f"/storage/v1/object/{bucket}/{quote(path)}",
                f"upload {bucket}",
                access_token=self.access_token,
                data=data,
                headers={"Content-Type": content_type, "x-upsert": "true"},
            )
        except BackendError as e:
            raise StorageError(path, e.details.get("reason", e.message))
        logger.info(f"Uploaded {len(data)} bytes to {bucket}/{path}")
        return path

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.client.base_url}/storage/v1/object/public/{bucket}/{quote(path)}"

    async def remove(self, bucket: str, paths: List[str]) -> None:
        try:
            await self.client.request(
                "DELETE",
                f"/storage/v1/object/{bucket}",
                f"remove {bucket}",
                access_token=self.access_token,
                json_body={"prefixes": paths},
            )
        except BackendError as e:
            raise StorageError(",".join(paths), e.details.get("reason", e.message))


class LocalStorageProvider(StorageProvider):
    """Files under a local media directory, for development"""

    def __init__(self, media_dir: str, base_url: str):
        self.root = Path(media_dir)
        self.base_url = base_url.rstrip("/")

    def _target(self, bucket: str, path: str) -> Path:
        target = (self.root / bucket / path).resolve()
        if self.root.resolve() not in target.parents:
            raise StorageError(path, "path escapes the media directory")
        return target

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str = "image/jpeg"
    ) -> str:
        target = self._target(bucket, path)

        def write():
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        try:
            await asyncio.to_thread(write)
        except OSError as e:
            raise StorageError(path, str(e))
        return path

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/{bucket}/{quote(path)}"

    async def remove(self, bucket: str, paths: List[str]) -> None:
        for path in paths:
            target = self._target(bucket, path)
            try:
                await asyncio.to_thread(target.unlink, True)
            except OSError as e:
                raise StorageError(path, str(e))
