"""
Image decoding and model-input preprocessing for viral-score.
"""

from viral_score.image_processing.pixel_buffer import (
    PixelBuffer,
    decode_image,
    validate_upload,
    format_file_size,
    MAX_UPLOAD_BYTES
)
from viral_score.image_processing.tensor import (
    to_tensor,
    TENSOR_SHAPE,
    TENSOR_SIZE,
    TENSOR_LENGTH
)

__all__ = [
    'PixelBuffer',
    'decode_image',
    'validate_upload',
    'format_file_size',
    'MAX_UPLOAD_BYTES',
    'to_tensor',
    'TENSOR_SHAPE',
    'TENSOR_SIZE',
    'TENSOR_LENGTH'
]
