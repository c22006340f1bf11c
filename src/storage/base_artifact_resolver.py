# src/storage/base_artifact_resolver.py — v1
"""Abstract storage collaborator: artifact reference -> time-limited URL."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from tourflow.core.errors import CollaboratorError
from tourflow.core.models import Pipeline
from tourflow.storage.models import DEFAULT_BUCKET, ArtifactRef, ArtifactResolution

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN_S = 3600


class BaseArtifactResolver(ABC):
    """Unified interface for artifact storage backends."""

    @abstractmethod
    async def resolve(self, ref: ArtifactRef, expires_in_s: int = DEFAULT_EXPIRES_IN_S) -> str:
        """Return a viewable URL for ``ref``.

        Raises:
            ArtifactResolutionError: If the backend cannot produce a URL.
        """


async def resolve_step_artifacts(
    pipeline: Pipeline,
    resolver: BaseArtifactResolver,
    expires_in_s: int = DEFAULT_EXPIRES_IN_S,
    default_bucket: str = DEFAULT_BUCKET,
) -> ArtifactResolution:
    """Resolve every artifact referenced by the pipeline's step outputs.

    Collaborator failures are collected into ``failures`` instead of being
    raised, so callers can still validate and display the pipeline.
    """
    result = ArtifactResolution()
    for key in sorted(pipeline.step_outputs, key=lambda k: k.number):
        for reference in pipeline.step_outputs[key].upload_ids:
            if reference in result.urls or reference in result.failures:
                continue
            try:
                result.urls[reference] = await resolver.resolve(
                    ArtifactRef.parse(reference, default_bucket), expires_in_s
                )
            except CollaboratorError as e:
                logger.warning("Pipeline %s %s: %s", pipeline.id, key.value, e)
                result.failures[reference] = str(e)
    return result
