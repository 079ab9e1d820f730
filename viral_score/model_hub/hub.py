"""
Single entry point that ties decoding, scoring, analysis and insights together.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from viral_score.config import get_global_config
from viral_score.exceptions import AnalysisError, ModelLoadError
from viral_score.feature_analysis import FeatureSet, analyze_features, default_feature_set
from viral_score.image_processing.pixel_buffer import (
    MAX_UPLOAD_BYTES,
    PixelBuffer,
    decode_image,
    validate_upload,
)
from viral_score.insights import compose
from viral_score.model_hub.download import ArtifactSource, create_artifact_source
from viral_score.model_hub.engine import engine_factory
from viral_score.model_hub.loader import EngineFactory, ModelLoader, ProgressCallback
from viral_score.model_hub.types import AnalysisResult, LoaderState
from viral_score.storage.artifact_cache import DAY_MS, ArtifactCache

logger = logging.getLogger(__name__)


class PopularityPredictor:
    """
    Process-lifetime service object for image popularity analysis.

    Config-only constructor - receives full config dict. Collaborators can be
    injected for tests; otherwise they are built from the config.

    Example:
        config = get_global_config().to_dict()
        predictor = PopularityPredictor(config)
        await predictor.start()

        result = await predictor.analyze(Path("photo.jpg").read_bytes())
        print(result.score, result.category)
    """

    def __init__(
        self,
        config: Dict[str, Any],
        cache: Optional[ArtifactCache] = None,
        source: Optional[ArtifactSource] = None,
        engine_builder: Optional[EngineFactory] = None
    ):
        """
        Initialize PopularityPredictor with configuration.

        Args:
            config: Full configuration dictionary
            cache: Artifact cache (default: SQLite cache from config)
            source: Artifact source (default: chosen from model.url)
            engine_builder: bytes -> InferenceEngine (default: model.engine registry entry)
        """
        self._config = config
        model_config = config.get('model', {})
        cache_config = config.get('cache', {})
        download_config = config.get('download', {})

        model_url = model_config.get('url', '')
        self.max_upload_bytes = config.get('upload', {}).get('max_bytes', MAX_UPLOAD_BYTES)

        self.cache = cache or ArtifactCache(
            version=str(model_config.get('version', 'v1')),
            db_path=cache_config.get('db_path'),
            ttl_ms=int(cache_config.get('ttl_days', 30)) * DAY_MS
        )
        source = source or create_artifact_source(
            model_url,
            chunk_size=download_config.get('chunk_size', 1024 * 1024),
            timeout=download_config.get('timeout', 60)
        )
        engine_builder = engine_builder or engine_factory(
            model_config.get('engine', 'torchscript'),
            model_config.get('device', 'cpu')
        )

        self.loader = ModelLoader(
            cache=self.cache,
            source=source,
            engine_factory=engine_builder,
            model_key=model_config.get('key', 'popularity-model'),
            model_url=model_url
        )

        logger.info(f"PopularityPredictor initialized (model={model_url})")

    @classmethod
    def from_global_config(cls) -> 'PopularityPredictor':
        return cls(get_global_config().to_dict())

    @property
    def state(self) -> LoaderState:
        return self.loader.state

    @property
    def is_ready(self) -> bool:
        return self.loader.is_ready

    # =========================================================================
    # Model lifecycle
    # =========================================================================

    async def start(self, on_progress: Optional[ProgressCallback] = None) -> bool:
        """
        Load the model at startup.

        Returns:
            True if the model is ready. On failure the error is logged, kept
            in loader.last_error, and retry() can be called later.
        """
        try:
            await self.loader.load(on_progress)
        except ModelLoadError:
            return False
        return True

    async def retry(self, on_progress: Optional[ProgressCallback] = None) -> bool:
        """Retry a failed load; same contract as start()."""
        try:
            await self.loader.retry(on_progress)
        except ModelLoadError:
            return False
        return True

    # =========================================================================
    # Analysis
    # =========================================================================

    async def analyze(self, data: bytes, content_type: Optional[str] = None) -> AnalysisResult:
        """
        Validate, decode, score and explain an uploaded image.

        Raises:
            UploadValidationError: Wrong content type or too large
            DecodeError: Image cannot be decoded
            ModelLoadError: Lazy first-use load failed
            NotReady: Model still loading or previously failed
            InferenceError: Engine rejected the tensor
        """
        validate_upload(data, content_type, self.max_upload_bytes)
        buffer = await asyncio.to_thread(decode_image, data)
        return await self.analyze_buffer(buffer)

    async def analyze_buffer(self, buffer: PixelBuffer) -> AnalysisResult:
        """Score and explain an already decoded image."""
        if self.loader.state == LoaderState.UNLOADED:
            logger.info("Model not loaded yet; loading on first use")
            await self.loader.load()

        score, (features, degraded) = await asyncio.gather(
            self.loader.predict(buffer),
            asyncio.to_thread(self._analyze_features, buffer)
        )
        insights = compose(score, features)

        logger.info(
            f"Analyzed {buffer.width}x{buffer.height} image: "
            f"score={score:.2f} ({insights.category})"
        )
        return AnalysisResult(
            score=score,
            features=features,
            insights=insights,
            features_degraded=degraded
        )

    def _analyze_features(self, buffer: PixelBuffer) -> Tuple[FeatureSet, bool]:
        try:
            return analyze_features(buffer), False
        except AnalysisError as e:
            logger.warning(f"Feature analysis failed, using defaults: {e}")
            return default_feature_set(), True

    def close(self) -> None:
        self.cache.close()
