"""Inference engine boundary.

The popularity model is an opaque function from a (1, 3, 224, 224) float32
tensor to a single scalar. Engines are built from the raw artifact bytes
(as stored in the artifact cache) and exchange named feeds/outputs.
"""

import io
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict

import numpy as np

from viral_score.exceptions import InferenceError, ModelLoadError
from viral_score.image_processing.tensor import TENSOR_SHAPE

logger = logging.getLogger(__name__)

INPUT_NAME = 'input'
OUTPUT_NAME = 'output'


class InferenceEngine(ABC):
    """Base interface for model runtimes."""

    def __init__(self, name: str, device: str = 'cpu'):
        self.name = name
        self.device = device

    @abstractmethod
    def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        """
        Run the model.

        Args:
            feeds: {'input': float32 tensor of shape (1, 3, 224, 224)}

        Returns:
            {'output': 1-D array whose first element is the score}
        """
        pass

    @classmethod
    @abstractmethod
    def from_bytes(cls, data: bytes, device: str = 'cpu') -> 'InferenceEngine':
        """Construct the engine from serialized model bytes."""
        pass

    @staticmethod
    def check_feeds(feeds: Dict[str, np.ndarray]) -> np.ndarray:
        """Validate the input slot; raises InferenceError on contract violations."""
        if INPUT_NAME not in feeds:
            raise InferenceError(f"Missing '{INPUT_NAME}' feed (got {sorted(feeds)})")
        tensor = feeds[INPUT_NAME]
        if not isinstance(tensor, np.ndarray) or tensor.dtype != np.float32:
            raise InferenceError(f"Input must be a float32 ndarray, got {getattr(tensor, 'dtype', type(tensor))}")
        if tensor.shape != TENSOR_SHAPE:
            raise InferenceError(f"Input shape {tensor.shape} != expected {TENSOR_SHAPE}")
        return tensor

    def __repr__(self):
        return f"{self.__class__.__name__}(name='{self.name}', device='{self.device}')"


class TorchScriptEngine(InferenceEngine):
    """Runs a TorchScript-serialized model with PyTorch."""

    def __init__(self, module, device: str = 'cpu'):
        super().__init__(name='TorchScript', device=device)
        self.module = module

    @classmethod
    def from_bytes(cls, data: bytes, device: str = 'cpu') -> 'TorchScriptEngine':
        import torch

        try:
            module = torch.jit.load(io.BytesIO(data), map_location=device)
        except (RuntimeError, ValueError) as e:
            raise ModelLoadError(f"Could not load TorchScript model ({len(data)} bytes): {e}") from e

        module.eval()
        logger.info(f"Loaded TorchScript model ({len(data) / (1024 * 1024):.1f} MB) on {device}")
        return cls(module, device)

    def run(self, feeds: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        import torch

        tensor = self.check_feeds(feeds)
        try:
            with torch.no_grad():
                output = self.module(torch.from_numpy(tensor).to(self.device))
        except RuntimeError as e:
            raise InferenceError(f"Model inference failed: {e}") from e

        return {OUTPUT_NAME: output.detach().cpu().numpy().reshape(-1)}


ENGINE_REGISTRY: Dict[str, type] = {
    'torchscript': TorchScriptEngine,
}


def create_engine(engine_type: str, data: bytes, device: str = 'cpu') -> InferenceEngine:
    """
    Create an engine of a registered type from model bytes.

    Raises:
        ValueError: If engine type is not registered
    """
    if engine_type not in ENGINE_REGISTRY:
        available = ', '.join(ENGINE_REGISTRY.keys())
        raise ValueError(f"Unknown engine type: '{engine_type}'. Available: {available}")

    engine = ENGINE_REGISTRY[engine_type].from_bytes(data, device)
    logger.info(f"Created engine: {engine}")
    return engine


def engine_factory(engine_type: str, device: str = 'cpu') -> Callable[[bytes], InferenceEngine]:
    """Bind engine type and device, leaving only the bytes to supply."""
    if engine_type not in ENGINE_REGISTRY:
        available = ', '.join(ENGINE_REGISTRY.keys())
        raise ValueError(f"Unknown engine type: '{engine_type}'. Available: {available}")

    def build(data: bytes) -> InferenceEngine:
        return create_engine(engine_type, data, device)

    return build
