"""
Guardian photo storage.

Photos live in object storage (MinIO) under guardian_photos/. The guardian
row only keeps the public URL.
"""

import asyncio
import io
import os
from abc import ABC, abstractmethod
from typing import Dict, Tuple

from minio import Minio

MINIO_ENDPOINT = os.getenv("MINIO_ENDPOINT", "minio:9000")
MINIO_ACCESS_KEY = os.getenv("MINIO_ACCESS_KEY", "minioadmin")
MINIO_SECRET_KEY = os.getenv("MINIO_SECRET_KEY", "minioadmin")
MINIO_SECURE = os.getenv("MINIO_SECURE", "false").lower() == "true"
PHOTO_BUCKET = os.getenv("PHOTO_BUCKET", "guardian-photos")
PHOTO_PUBLIC_URL = os.getenv("PHOTO_PUBLIC_URL", "http://localhost:9000/guardian-photos")


class PhotoStorage(ABC):

    def __init__(self, public_url: str = PHOTO_PUBLIC_URL):
        self.public_url = public_url.rstrip("/")

    def url_for(self, path: str) -> str:
        return f"{self.public_url}/{path}"

    @abstractmethod
    async def save(self, path: str, content: bytes, content_type: str) -> str:
        """Store the object and return its public URL."""
        pass


class MinioPhotoStorage(PhotoStorage):

    def __init__(self, client: Minio = None, bucket: str = PHOTO_BUCKET, public_url: str = PHOTO_PUBLIC_URL):
        super().__init__(public_url)
        self.client = client or Minio(
            MINIO_ENDPOINT,
            access_key=MINIO_ACCESS_KEY,
            secret_key=MINIO_SECRET_KEY,
            secure=MINIO_SECURE
        )
        self.bucket = bucket

    def ensure_bucket(self):
        if not self.client.bucket_exists(self.bucket):
            self.client.make_bucket(self.bucket)

    async def save(self, path: str, content: bytes, content_type: str) -> str:
        # The MinIO client is blocking.
        await asyncio.to_thread(
            self.client.put_object,
            self.bucket,
            path,
            io.BytesIO(content),
            length=len(content),
            content_type=content_type
        )
        return self.url_for(path)


class MemoryPhotoStorage(PhotoStorage):
    """Keeps photos in a dict, for tests and local runs."""

    def __init__(self, public_url: str = PHOTO_PUBLIC_URL):
        super().__init__(public_url)
        self.objects: Dict[str, Tuple[bytes, str]] = {}

    async def save(self, path: str, content: bytes, content_type: str) -> str:
        self.objects[path] = (content, content_type)
        return self.url_for(path)
