"""Custom exceptions for viral-score."""

from typing import Optional


class ViralScoreError(Exception):
    """Base exception for viral-score errors."""
    pass


class DecodeError(ViralScoreError):
    """Raised when an image cannot be decoded or rendered."""
    pass


class UploadValidationError(DecodeError):
    """Raised when an upload is rejected before decoding (type or size)."""
    pass


class AnalysisError(ViralScoreError):
    """Raised when a feature analysis receives degenerate geometry."""
    pass


class ModelLoadError(ViralScoreError):
    """Raised when the model artifact cannot be fetched or the engine built."""
    pass


class DownloadError(ModelLoadError):
    """Raised on network failure, non-2xx status or a truncated body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class DownloadCancelled(ModelLoadError):
    """Raised inside the download worker when the caller abandoned the load."""
    pass


class NotReady(ViralScoreError):
    """Raised when predict is called before the model finished loading."""
    pass


class InferenceError(ViralScoreError):
    """Raised when the engine rejects the tensor or fails to run."""
    pass
