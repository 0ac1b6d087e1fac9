"""
Valentine Backend: Image Normalization Service
================================================

What:  Turns any uploaded image into a bounded-size JPEG.
How:   Pillow decodes the bytes, shrinks images wider than MAX_WIDTH
       (aspect ratio kept, never enlarged) and re-encodes as JPEG at
       JPEG_QUALITY.
Who:   Called by SurpriseService for each of the five photos.
When:  During POST /api/create-surprise, before anything is persisted.

Policy:
    width > 800  → resized to 800 x round(height * 800 / width)
    width <= 800 → dimensions untouched, still re-encoded
    any mode     → converted to RGB (JPEG has no alpha channel)
    output       → JPEG, quality 80, no EXIF carried over
"""

import io
import logging
from typing import Optional

from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from valentine.exceptions import UnsupportedImageError

logger = logging.getLogger(__name__)

MAX_WIDTH = 800
JPEG_QUALITY = 80

# Modes Pillow can write as JPEG without conversion
JPEG_MODES = {"RGB", "L"}


class ImageNormalizer:
    """
    Fixed resize + recompress policy applied to every uploaded photo.

    The output depends only on the input bytes and the installed Pillow
    version, so the same upload always produces the same stored photo.
    """

    def __init__(self, max_width: int = MAX_WIDTH, quality: int = JPEG_QUALITY):
        self.max_width = max_width
        self.quality = quality

    def target_size(self, width: int, height: int) -> tuple:
        """Dimensions after clamping the width; unchanged when already narrow enough."""
        if width <= self.max_width:
            return width, height
        new_height = max(1, round(height * self.max_width / width))
        return self.max_width, new_height

    def normalize(self, content: bytes, content_type: Optional[str] = None) -> bytes:
        """
        Decode, resize and re-encode one image.

        Args:
            content: Raw uploaded bytes
            content_type: Media type declared by the client (logged only;
                          the decoder sniffs the real format from the bytes)

        Returns:
            JPEG-encoded bytes

        Raises:
            UnsupportedImageError: bytes are not a decodable image
        """
        try:
            with Image.open(io.BytesIO(content)) as img:
                img.load()
                original_size = img.size
                size = self.target_size(*img.size)

                if img.mode not in JPEG_MODES:
                    img = img.convert("RGB")
                if size != img.size:
                    img = img.resize(size, Image.Resampling.LANCZOS)

                out = io.BytesIO()
                img.save(out, format="JPEG", quality=self.quality)
        except (
            UnidentifiedImageError,
            Image.DecompressionBombError,
            OSError,
            SyntaxError,
            ValueError,
        ) as e:
            logger.warning(
                "Could not decode upload (declared %s, %d bytes): %s",
                content_type or "unknown",
                len(content),
                e,
            )
            raise UnsupportedImageError(
                context={"declared_type": content_type, "error": str(e)},
            )

        result = out.getvalue()
        logger.debug(
            "Normalized %s %dx%d -> %dx%d (%d -> %d bytes)",
            content_type or "image",
            original_size[0],
            original_size[1],
            size[0],
            size[1],
            len(content),
            len(result),
        )
        return result

    async def normalize_async(self, content: bytes, content_type: Optional[str] = None) -> bytes:
        """normalize() on the worker thread pool so the event loop keeps serving."""
        return await run_in_threadpool(self.normalize, content, content_type)


# ── Singleton Instance ────────────────────────────────────────────────────
image_normalizer = ImageNormalizer()
