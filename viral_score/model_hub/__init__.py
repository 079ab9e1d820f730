"""
Model Hub - model artifact loading, inference and the analysis entry point.
"""

from viral_score.model_hub.types import AnalysisResult, DownloadProgress, LoaderState
from viral_score.model_hub.engine import (
    ENGINE_REGISTRY,
    InferenceEngine,
    TorchScriptEngine,
    create_engine,
    engine_factory,
)
from viral_score.model_hub.download import (
    ArtifactSource,
    HttpArtifactSource,
    LocalArtifactSource,
    create_artifact_source,
)
from viral_score.model_hub.loader import ModelLoader
from viral_score.model_hub.hub import PopularityPredictor

__all__ = [
    'AnalysisResult',
    'DownloadProgress',
    'LoaderState',
    'ENGINE_REGISTRY',
    'InferenceEngine',
    'TorchScriptEngine',
    'create_engine',
    'engine_factory',
    'ArtifactSource',
    'HttpArtifactSource',
    'LocalArtifactSource',
    'create_artifact_source',
    'ModelLoader',
    'PopularityPredictor',
]
