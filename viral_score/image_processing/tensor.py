"""
Tensor preprocessing for the popularity model.

The trained model expects exactly what torchvision's ToTensor() produced at
training time on a 224x224 resize: planar RGB, float32, values byte/255.0,
and no mean/std normalization. Any deviation silently shifts every score.
"""

import logging

import numpy as np
from PIL import Image

from viral_score.exceptions import DecodeError
from viral_score.image_processing.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)

TENSOR_SIZE = 224
TENSOR_CHANNELS = 3
TENSOR_SHAPE = (1, TENSOR_CHANNELS, TENSOR_SIZE, TENSOR_SIZE)
TENSOR_LENGTH = TENSOR_CHANNELS * TENSOR_SIZE * TENSOR_SIZE


def resize_to_model_input(buffer: PixelBuffer) -> np.ndarray:
    """
    Bilinear resample to TENSOR_SIZE x TENSOR_SIZE, ignoring aspect ratio.

    Returns:
        (224, 224, 4) uint8 RGBA array
    """
    try:
        img = buffer.to_image()
        resized = img.resize((TENSOR_SIZE, TENSOR_SIZE), Image.BILINEAR)
    except DecodeError:
        raise
    except (OSError, ValueError, MemoryError) as e:
        raise DecodeError(f"Failed to render image for preprocessing: {e}") from e

    return np.asarray(resized, dtype=np.uint8)


def to_tensor(buffer: PixelBuffer) -> np.ndarray:
    """
    Convert a PixelBuffer into the model input tensor.

    Args:
        buffer: Decoded image of any size

    Returns:
        C-contiguous float32 array of shape (1, 3, 224, 224); flat index
        c*224*224 + h*224 + w holds channel c of pixel (h, w) divided by 255

    Raises:
        DecodeError: If the image cannot be rendered
    """
    rgba = resize_to_model_input(buffer)

    # HWC -> CHW, alpha dropped. Divide in float64 and round once to float32.
    planar = rgba[:, :, :TENSOR_CHANNELS].transpose(2, 0, 1).astype(np.float64) / 255.0
    tensor = np.ascontiguousarray(planar.astype(np.float32)).reshape(TENSOR_SHAPE)

    logger.debug(
        f"Preprocessed {buffer.width}x{buffer.height} -> {tensor.shape} "
        f"(min={tensor.min():.3f}, max={tensor.max():.3f})"
    )
    return tensor
