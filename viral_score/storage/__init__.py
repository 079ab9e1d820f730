"""
Persistent local storage for the model artifact.
"""

from viral_score.storage.artifact_cache import ArtifactCache, CacheInfo, CACHE_TTL_MS

__all__ = ['ArtifactCache', 'CacheInfo', 'CACHE_TTL_MS']
