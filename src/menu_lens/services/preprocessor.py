"""
Image Preprocessor - shrink a menu photo to fit the upload size limit.
======================================================================
Downscales to a maximum side, then re-encodes as JPEG with a descending
quality ladder until the base64 payload fits the byte ceiling.

The ladder runs on whole percent points so the attempt count is exact:
at most ceil((q0 - qmin) / step) + 1 encodes.
"""

from __future__ import annotations

import asyncio
import base64
import io
import logging
import math
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from menu_lens.conf.config import settings
from menu_lens.core.logging import log_event
from menu_lens.services.exceptions import ImagePreprocessError


logger = logging.getLogger(__name__)

OUTPUT_MEDIA_TYPE = "image/jpeg"

# base64 turns every 3 bytes into 4 characters
BASE64_SIZE_RATIO = 3 / 4


def estimate_decoded_size(encoded: str) -> int:
    """Bytes represented by a base64 string."""
    return math.floor(len(encoded) * BASE64_SIZE_RATIO)


@dataclass(frozen=True)
class PreprocessedImage:
    data: bytes
    encoded: str
    media_type: str
    width: int
    height: int
    quality: float
    size_bytes: int
    attempts: int

    @property
    def base64(self) -> str:
        """Payload without a data-URI prefix, as the analysis request expects."""
        return self.encoded


def _to_percent(value: float) -> int:
    return int(round(value * 100))


def fit_dimensions(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Scale (width, height) uniformly so the longest side is <= max_dimension.

    Never upscales; rounds down to whole pixels (min 1).
    """
    longest = max(width, height)
    if longest <= max_dimension:
        return width, height
    scale = max_dimension / longest
    return max(1, math.floor(width * scale)), max(1, math.floor(height * scale))


def _flatten(img: Image.Image) -> Image.Image:
    """Return an RGB image; transparency is composited onto white."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[3])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


class ImagePreprocessor:
    """Deterministic downsize + recompress loop."""

    def __init__(
        self,
        *,
        max_bytes: int | None = None,
        max_dimension: int | None = None,
        start_quality: float | None = None,
        min_quality: float | None = None,
        quality_step: float | None = None,
    ):
        self.max_bytes = max_bytes if max_bytes is not None else settings.PREPROCESS_MAX_BYTES
        self.max_dimension = (
            max_dimension if max_dimension is not None else settings.PREPROCESS_MAX_DIMENSION
        )
        self._start = _to_percent(
            start_quality if start_quality is not None else settings.PREPROCESS_START_QUALITY
        )
        self._floor = _to_percent(
            min_quality if min_quality is not None else settings.PREPROCESS_MIN_QUALITY
        )
        self._step = _to_percent(
            quality_step if quality_step is not None else settings.PREPROCESS_QUALITY_STEP
        )
        if not 0 < self._floor <= self._start <= 100:
            raise ValueError("quality ladder must satisfy 0 < min_quality <= start_quality <= 1")
        if self._step <= 0:
            raise ValueError("quality_step must be at least 0.01")

    @property
    def max_attempts(self) -> int:
        return math.ceil((self._start - self._floor) / self._step) + 1

    def _decode(self, source: bytes, label: str | None) -> Image.Image:
        try:
            with Image.open(io.BytesIO(source)) as img:
                img.load()
                oriented = ImageOps.exif_transpose(img)
                return _flatten(oriented)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise ImagePreprocessError(f"cannot decode image: {e}", source=label) from e

    def _encode(self, img: Image.Image, quality: int) -> tuple[bytes, str]:
        with io.BytesIO() as buf:
            img.save(buf, format="JPEG", quality=quality, optimize=True)
            data = buf.getvalue()
        return data, base64.b64encode(data).decode("ascii")

    def process(self, source: bytes | str | Path) -> PreprocessedImage:
        """Downscale and recompress ``source`` until it fits ``max_bytes`` (best effort)."""
        label: str | None = None
        if isinstance(source, (str, Path)):
            label = str(source)
            try:
                source = Path(source).read_bytes()
            except OSError as e:
                raise ImagePreprocessError(f"cannot read file: {e.strerror or e}", source=label) from e

        img = self._decode(source, label)

        width, height = fit_dimensions(img.width, img.height, self.max_dimension)
        if (width, height) != img.size:
            img = img.resize((width, height), Image.Resampling.LANCZOS)

        quality = self._start
        data, encoded = self._encode(img, quality)
        size = estimate_decoded_size(encoded)
        attempts = 1

        while size > self.max_bytes and quality > self._floor:
            quality = max(quality - self._step, self._floor)
            data, encoded = self._encode(img, quality)
            size = estimate_decoded_size(encoded)
            attempts += 1

        if size > self.max_bytes:
            logger.warning(
                "Image still above size limit at minimum quality: %d > %d bytes",
                size,
                self.max_bytes,
            )

        log_event(
            logger,
            event="preprocess_done",
            width=width,
            height=height,
            quality=quality / 100,
            size_bytes=size,
            attempts=attempts,
        )

        return PreprocessedImage(
            data=data,
            encoded=encoded,
            media_type=OUTPUT_MEDIA_TYPE,
            width=width,
            height=height,
            quality=quality / 100,
            size_bytes=size,
            attempts=attempts,
        )


def preprocess_image(source: bytes | str | Path, **options: float | int) -> PreprocessedImage:
    """Convenience wrapper around ImagePreprocessor.process."""
    return ImagePreprocessor(**options).process(source)


async def preprocess_image_async(
    source: bytes | str | Path, **options: float | int
) -> PreprocessedImage:
    """Run preprocessing in a worker thread to keep the event loop free."""
    return await asyncio.to_thread(preprocess_image, source, **options)
