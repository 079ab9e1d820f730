"""Model loading and prediction.

State machine: UNLOADED -> LOADING -> READY | FAILED, and FAILED -> LOADING
on retry. Concurrent load() calls join the one in-flight attempt, so at
most one download and one cache write happen per attempt. predict() never
waits for a load; it raises NotReady until the state is READY.

Blocking work (SQLite, HTTP, engine construction, inference) runs in worker
threads via asyncio.to_thread. Progress callbacks are always invoked on the
event loop thread.
"""

import asyncio
import logging
import threading
from typing import Callable, List, Optional

from viral_score.exceptions import (
    InferenceError,
    ModelLoadError,
    NotReady,
)
from viral_score.image_processing.pixel_buffer import PixelBuffer
from viral_score.image_processing.tensor import to_tensor
from viral_score.model_hub.download import ArtifactSource
from viral_score.model_hub.engine import INPUT_NAME, OUTPUT_NAME, InferenceEngine
from viral_score.model_hub.types import DownloadProgress, LoaderState
from viral_score.storage.artifact_cache import ArtifactCache

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[DownloadProgress], None]
EngineFactory = Callable[[bytes], InferenceEngine]


class ModelLoader:
    """
    Fetches, caches and serves the popularity model.

    Example:
        loader = ModelLoader(cache, source, engine_factory('torchscript'),
                             model_key='popularity-model', model_url=url)
        await loader.load(on_progress=lambda p: print(p.percent))
        score = await loader.predict(buffer)
    """

    def __init__(
        self,
        cache: ArtifactCache,
        source: ArtifactSource,
        engine_factory: EngineFactory,
        model_key: str,
        model_url: str
    ):
        self._cache = cache
        self._source = source
        self._engine_factory = engine_factory
        self.model_key = model_key
        self.model_url = model_url

        self._state = LoaderState.UNLOADED
        self._engine: Optional[InferenceEngine] = None
        self._inflight: Optional[asyncio.Task] = None
        self._listeners: List[ProgressCallback] = []
        self.last_error: Optional[ModelLoadError] = None

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == LoaderState.READY

    @property
    def engine(self) -> Optional[InferenceEngine]:
        return self._engine

    # =========================================================================
    # Loading
    # =========================================================================

    async def load(self, on_progress: Optional[ProgressCallback] = None) -> InferenceEngine:
        """
        Load the model, joining an in-flight attempt if there is one.

        Cancelling the awaiting caller does not cancel the shared attempt.

        Raises:
            ModelLoadError: If the attempt fails; state becomes FAILED
        """
        if self._state == LoaderState.READY:
            return self._engine

        if on_progress is not None:
            self._listeners.append(on_progress)

        if self._inflight is None:
            self._state = LoaderState.LOADING
            self._inflight = asyncio.ensure_future(self._load())
            self._inflight.add_done_callback(self._on_load_done)
        else:
            logger.debug("Joining in-flight model load")

        return await asyncio.shield(self._inflight)

    async def retry(self, on_progress: Optional[ProgressCallback] = None) -> InferenceEngine:
        """Explicit retry entry point after a failed load."""
        if self._state == LoaderState.FAILED:
            logger.info("Retrying model load")
        return await self.load(on_progress)

    def cancel(self) -> bool:
        """Abandon the in-flight load. Partial downloads are never cached."""
        if self._inflight is None or self._inflight.done():
            return False
        return self._inflight.cancel()

    def _on_load_done(self, task: asyncio.Task) -> None:
        self._inflight = None
        self._listeners = []
        if task.cancelled():
            if self._state == LoaderState.LOADING:
                self._state = LoaderState.UNLOADED
            logger.info("Model load cancelled")
        elif task.exception() is not None:
            # Retrieved here so an unawaited failure is not reported as never retrieved
            logger.debug(f"Model load finished with error: {task.exception()}")

    def _emit_progress(self, progress: DownloadProgress) -> None:
        for listener in list(self._listeners):
            try:
                listener(progress)
            except Exception:
                logger.exception("Progress listener failed")

    async def _load(self) -> InferenceEngine:
        loop = asyncio.get_running_loop()
        try:
            data = await asyncio.to_thread(self._cache.get, self.model_key)
            if data is None:
                data = await self._download(loop)
                stored = await asyncio.to_thread(self._cache.put, self.model_key, data)
                if not stored:
                    logger.warning("Model downloaded but could not be cached; it will be fetched again next session")
            else:
                logger.info(f"Using cached model '{self.model_key}'")

            engine = await asyncio.to_thread(self._build_engine, data)
        except ModelLoadError as e:
            self._fail(e)
            raise
        except Exception as e:
            # Storage layer errors (locked or corrupt database) end the attempt the same way
            error = ModelLoadError(f"Artifact cache failure: {e}")
            self._fail(error)
            raise error from e

        self._engine = engine
        self._state = LoaderState.READY
        self.last_error = None
        logger.info(f"Model ready: {engine}")
        return engine

    async def _download(self, loop: asyncio.AbstractEventLoop) -> bytes:
        cancel = threading.Event()

        def report(progress: DownloadProgress) -> None:
            loop.call_soon_threadsafe(self._emit_progress, progress)

        try:
            return await asyncio.to_thread(self._source.fetch, self.model_url, report, cancel)
        except asyncio.CancelledError:
            # Stops the worker at its next chunk; nothing partial reaches the cache
            cancel.set()
            raise

    def _build_engine(self, data: bytes) -> InferenceEngine:
        try:
            return self._engine_factory(data)
        except ModelLoadError:
            raise
        except Exception as e:
            raise ModelLoadError(f"Engine construction failed: {e}") from e

    def _fail(self, error: ModelLoadError) -> None:
        self._state = LoaderState.FAILED
        self.last_error = error
        logger.error(f"Model load failed: {error}")

    # =========================================================================
    # Prediction
    # =========================================================================

    async def predict(self, buffer: PixelBuffer) -> float:
        """
        Score an image with the loaded model.

        Returns:
            Raw, unclamped score

        Raises:
            NotReady: If the model is not loaded
            DecodeError: If the image cannot be preprocessed
            InferenceError: If the engine rejects the input or fails
        """
        if self._state != LoaderState.READY:
            raise NotReady(f"Model is not ready (state={self._state.value})")

        engine = self._engine
        tensor = await asyncio.to_thread(to_tensor, buffer)
        try:
            outputs = await asyncio.to_thread(engine.run, {INPUT_NAME: tensor})
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"Model inference failed: {e}") from e

        try:
            score = float(outputs[OUTPUT_NAME][0])
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise InferenceError(f"Unexpected model output: {e}") from e

        logger.debug(f"Predicted score {score:.3f}")
        return score
