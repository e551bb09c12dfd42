"""
Image storage in a GridFS bucket.

Entities only ever keep the returned download URL.
"""
import base64
import binascii
import os
from typing import Tuple

from bson import ObjectId
from gridfs import GridFSBucket
from gridfs.errors import NoFile

from errors import NotFoundError, ValidationError
from services.base import BaseService, store_call

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "").rstrip("/")
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/png", "image/webp", "image/gif"}
BUCKET_NAME = "images"


class ImageStore(BaseService):
    label = "Image"

    @property
    def bucket(self) -> GridFSBucket:
        return GridFSBucket(self.db, bucket_name=BUCKET_NAME)

    @staticmethod
    def download_url(file_id: str) -> str:
        return f"{PUBLIC_BASE_URL}/uploads/{file_id}"

    @staticmethod
    def file_id_from_url(url: str) -> str:
        return url.rstrip("/").rsplit("/uploads/", 1)[-1]

    @store_call("upload image")
    def upload(self, file_name: str, content: str, content_type: str) -> dict:
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError("Only JPEG, PNG, WebP and GIF images are allowed")
        if "," in content and content.startswith("data:"):
            content = content.split(",", 1)[1]
        try:
            data = base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("File content must be base64 encoded")
        if not data:
            raise ValidationError("No file provided")
        if len(data) > MAX_UPLOAD_BYTES:
            raise ValidationError(f"File size must be less than {MAX_UPLOAD_BYTES // (1024 * 1024)}MB")

        file_id = self.bucket.upload_from_stream(file_name, data, metadata={"content_type": content_type})
        self.logger.info(f"Stored image {file_name} as {file_id} ({len(data)} bytes)")
        return {"download_url": self.download_url(str(file_id)), "file_name": file_name}

    @store_call("fetch image")
    def open(self, file_id: str) -> Tuple[bytes, str]:
        if not ObjectId.is_valid(file_id):
            raise NotFoundError("Image not found")
        try:
            grid_out = self.bucket.open_download_stream(ObjectId(file_id))
        except NoFile:
            raise NotFoundError("Image not found")
        content_type = (grid_out.metadata or {}).get("content_type", "application/octet-stream")
        return grid_out.read(), content_type

    @store_call("delete image")
    def delete(self, file_id: str) -> None:
        if not ObjectId.is_valid(file_id):
            raise NotFoundError("Image not found")
        try:
            self.bucket.delete(ObjectId(file_id))
        except NoFile:
            raise NotFoundError("Image not found")

    def delete_by_url(self, url: str) -> None:
        self.delete(self.file_id_from_url(url))
