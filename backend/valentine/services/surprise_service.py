"""
Valentine Backend: Surprise Service (Business Logic Orchestrator)
===================================================================

What:  Create, fetch and existence-check surprises.
How:   Composes the ImageNormalizer and SurpriseStore it is given; holds no
       state of its own between calls.
Who:   Called by the route handlers in routes/surprises.py.

Create Flow (POST /api/create-surprise):
    ┌──────────┐   ┌───────────┐   ┌────────────┐   ┌──────────┐   ┌──────────┐
    │  Count   │──▶│ Normalize │──▶│ Generate   │──▶│  Save    │──▶│  Build   │
    │  == 5    │   │ 5 photos  │   │ id + key   │   │ (store)  │   │  link    │
    └──────────┘   └───────────┘   └────────────┘   └──────────┘   └──────────┘

    Any failure stops the flow; nothing is written before the save step.
"""

import asyncio
import base64
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from fastapi import Depends

from valentine.config import settings
from valentine.exceptions import (
    EmptyPhotoError,
    InvalidPhotoCountError,
    NotFoundError,
    PhotoTooLargeError,
)
from valentine.schemas.surprise import (
    PHOTO_CONTENT_TYPE,
    REQUIRED_PHOTO_COUNT,
    CheckSurpriseResponse,
    CreatedSurprise,
    Photo,
    SurpriseRecord,
)
from valentine.services.image_service import ImageNormalizer, image_normalizer
from valentine.services.storage_service import SurpriseStore, get_surprise_store

logger = logging.getLogger(__name__)

SURPRISE_NOT_FOUND = "Surprise not found."


@dataclass(frozen=True)
class PhotoUpload:
    """One file part from the multipart body, already read into memory."""

    filename: str
    content_type: Optional[str]
    content: bytes


def generate_surprise_id() -> str:
    """16 lowercase hex characters from 8 random bytes."""
    return secrets.token_hex(8)


def generate_secret_key() -> str:
    """8 uppercase hex characters from 4 random bytes."""
    return secrets.token_hex(4).upper()


def resolve_base_url(
    configured: Optional[str],
    scheme: str,
    forwarded_proto: Optional[str],
    host: Optional[str],
) -> str:
    """
    Pick the origin used in shareable links.

    A configured BASE_URL always wins. Otherwise the scheme is https when the
    connection itself is https or a proxy reports X-Forwarded-Proto: https,
    and the host comes from the Host header.
    """
    if configured:
        return configured.rstrip("/")
    secure = scheme == "https" or (forwarded_proto or "").strip().lower() == "https"
    protocol = "https" if secure else "http"
    return f"{protocol}://{host or 'localhost'}"


def build_share_link(base_url: str, surprise_id: str) -> str:
    return f"{base_url}/valentine.html?id={surprise_id}"


class SurpriseService:
    """
    Business logic for surprises.

    Args:
        store: Storage adapter (save / find_by_id)
        normalizer: Image policy applied to every uploaded photo
        max_file_size: Per-photo byte limit checked before decoding
    """

    def __init__(
        self,
        store: SurpriseStore,
        normalizer: ImageNormalizer,
        max_file_size: Optional[int] = None,
    ):
        self.store = store
        self.normalizer = normalizer
        self.max_file_size = max_file_size or settings.max_file_size

    def validate_photos(self, photos: Sequence[PhotoUpload]) -> None:
        """
        Exactly REQUIRED_PHOTO_COUNT non-empty photos within the size limit.

        Raises:
            InvalidPhotoCountError: fewer or more than five photos
            EmptyPhotoError: a file part without content
            PhotoTooLargeError: a photo over max_file_size
        """
        if len(photos) != REQUIRED_PHOTO_COUNT:
            raise InvalidPhotoCountError(received=len(photos), required=REQUIRED_PHOTO_COUNT)

        for photo in photos:
            if not photo.content:
                raise EmptyPhotoError(photo.filename)
            if len(photo.content) > self.max_file_size:
                raise PhotoTooLargeError(photo.filename, len(photo.content), self.max_file_size)

    async def create_surprise(
        self,
        partner_name: str,
        sender_name: str,
        photos: Sequence[PhotoUpload],
        base_url: str,
    ) -> CreatedSurprise:
        """
        Validate → normalize → generate ids → persist → build link.

        Photos are normalized concurrently; order in the stored record
        matches upload order. A single undecodable photo aborts the whole
        operation with UnsupportedImageError and nothing is saved.

        Raises:
            InvalidPhotoCountError, EmptyPhotoError, PhotoTooLargeError (400)
            UnsupportedImageError (500)
            StorageUnavailableError, WriteFailureError (500, from the store)
        """
        self.validate_photos(photos)

        normalized = await asyncio.gather(
            *(self.normalizer.normalize_async(p.content, p.content_type) for p in photos)
        )

        record = SurpriseRecord(
            id=generate_surprise_id(),
            secret_key=generate_secret_key(),
            partner_name=partner_name,
            sender_name=sender_name,
            photos=[
                Photo(
                    content_type=PHOTO_CONTENT_TYPE,
                    data=base64.b64encode(jpeg).decode("ascii"),
                )
                for jpeg in normalized
            ],
            created_at=datetime.now(timezone.utc),
        )

        await self.store.save(record)
        logger.info("Surprise saved with ID: %s", record.id)

        return CreatedSurprise(
            id=record.id,
            secret_key=record.secret_key,
            link=build_share_link(base_url, record.id),
        )

    async def get_surprise(self, surprise_id: str) -> SurpriseRecord:
        """
        Full record for `surprise_id`.

        Anyone holding the id can read it; the secret key is not checked.

        Raises:
            NotFoundError: no surprise with this id (→ 404)
        """
        record = await self.store.find_by_id(surprise_id)
        if record is None:
            raise NotFoundError(message=SURPRISE_NOT_FOUND, resource_id=surprise_id)
        return record

    async def check_surprise(self, surprise_id: str) -> CheckSurpriseResponse:
        """Existence plus sender name; never photos or the secret key."""
        record = await self.store.find_by_id(surprise_id)
        if record is None:
            return CheckSurpriseResponse(exists=False)
        return CheckSurpriseResponse(exists=True, sender_name=record.sender_name)


def get_surprise_service(store: SurpriseStore = Depends(get_surprise_store)) -> SurpriseService:
    """FastAPI dependency wiring the request's store to the shared normalizer."""
    return SurpriseService(store, image_normalizer)
