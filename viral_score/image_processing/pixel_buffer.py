"""
Decoded raster images and the decode boundary.

A PixelBuffer is the single image representation shared by the tensor
preprocessor and the feature analyzers: width, height and interleaved RGBA
bytes. Buffers are immutable; stages read them and never write back.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from viral_score.exceptions import DecodeError, UploadValidationError

logger = logging.getLogger(__name__)

# Uploads above this size are rejected before decoding
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

CHANNELS = 4


@dataclass(frozen=True)
class PixelBuffer:
    """Decoded image as width, height and interleaved RGBA samples."""
    width: int
    height: int
    pixels: bytes

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise DecodeError(f"Negative image size: {self.width}x{self.height}")
        if not isinstance(self.pixels, bytes):
            # bytearray / memoryview input is copied so the buffer stays immutable
            object.__setattr__(self, 'pixels', bytes(self.pixels))
        expected = self.width * self.height * CHANNELS
        if len(self.pixels) != expected:
            raise DecodeError(
                f"Pixel data length {len(self.pixels)} does not match "
                f"{self.width}x{self.height}x{CHANNELS} = {expected}"
            )

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.pixel_count == 0

    def as_array(self) -> np.ndarray:
        """Read-only (height, width, 4) uint8 view over the pixel bytes."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(self.height, self.width, CHANNELS)

    def to_image(self) -> Image.Image:
        """Render the buffer as an RGBA Pillow image."""
        if self.is_empty:
            raise DecodeError("Cannot render a zero-area image")
        return Image.frombytes('RGBA', (self.width, self.height), self.pixels)

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'PixelBuffer':
        """
        Build a buffer from an (H, W, 3) RGB or (H, W, 4) RGBA uint8 array.

        RGB input gets an opaque alpha channel.
        """
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise DecodeError(f"Expected (H, W, 3|4) array, got shape {array.shape}")
        array = np.asarray(array, dtype=np.uint8)
        if array.shape[2] == 3:
            alpha = np.full(array.shape[:2] + (1,), 255, dtype=np.uint8)
            array = np.concatenate([array, alpha], axis=2)
        height, width = array.shape[:2]
        return cls(width=width, height=height, pixels=np.ascontiguousarray(array).tobytes())

    @classmethod
    def from_image(cls, img: Image.Image) -> 'PixelBuffer':
        """Build a buffer from any Pillow image (converted to RGBA)."""
        if img.mode != 'RGBA':
            img = img.convert('RGBA')
        width, height = img.size
        return cls(width=width, height=height, pixels=img.tobytes())


def decode_image(data: bytes, max_size: Optional[Tuple[int, int]] = None) -> PixelBuffer:
    """
    Decode encoded image bytes (JPEG, PNG, WebP, ...) into a PixelBuffer.

    Args:
        data: Raw encoded image bytes
        max_size: Optional (width, height) bound; larger images are shrunk
            preserving aspect ratio

    Returns:
        PixelBuffer in RGBA with EXIF orientation applied

    Raises:
        DecodeError: If Pillow cannot identify or decode the data
    """
    if not data:
        raise DecodeError("Empty image data")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img = ImageOps.exif_transpose(img)
            img = img.convert('RGBA')
            if max_size is not None:
                img.thumbnail(max_size, Image.BILINEAR)
            buffer = PixelBuffer.from_image(img)
    except UnidentifiedImageError as e:
        raise DecodeError(f"Unrecognized image format: {e}") from e
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Failed to decode image: {e}") from e

    if buffer.is_empty:
        raise DecodeError("Decoded image has zero area")

    logger.debug(f"Decoded image {buffer.width}x{buffer.height}")
    return buffer


def validate_upload(
    data: bytes,
    content_type: Optional[str] = None,
    max_bytes: int = MAX_UPLOAD_BYTES
) -> None:
    """
    Reject uploads that are not images or exceed the size limit.

    Raises:
        UploadValidationError: If the content type is not image/* or the
            payload is larger than max_bytes
    """
    if content_type is not None and not content_type.startswith('image/'):
        raise UploadValidationError(f"Please select a valid image file (got {content_type})")

    if len(data) > max_bytes:
        raise UploadValidationError(
            f"File size must be less than {format_file_size(max_bytes)} "
            f"(got {format_file_size(len(data))})"
        )


def format_file_size(num_bytes: int) -> str:
    """Human-readable size, e.g. 1536 -> '1.5 KB'."""
    if num_bytes == 0:
        return '0 Bytes'
    k = 1024
    sizes = ['Bytes', 'KB', 'MB', 'GB']
    value = float(num_bytes)
    i = 0
    while value >= k and i < len(sizes) - 1:
        value /= k
        i += 1
    return f"{round(value, 2):g} {sizes[i]}"
