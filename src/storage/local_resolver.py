# src/storage/local_resolver.py — v1
"""Local filesystem artifact resolver (development backend)."""

from __future__ import annotations

from pathlib import Path

from tourflow.core.errors import ArtifactResolutionError
from tourflow.storage.base_artifact_resolver import DEFAULT_EXPIRES_IN_S, BaseArtifactResolver
from tourflow.storage.models import ArtifactRef


class LocalArtifactResolver(BaseArtifactResolver):
    """Resolve artifacts stored as ``<root>/<bucket>/<path>`` to file URLs.

    Local files do not expire; ``expires_in_s`` is accepted and ignored.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser().resolve()

    def _path(self, ref: ArtifactRef) -> Path:
        try:
            candidate = (self._root / ref.bucket / ref.path).resolve()
        except (OSError, ValueError) as e:
            raise ArtifactResolutionError(str(ref), f"invalid path: {e}") from e
        if not candidate.is_relative_to(self._root):
            raise ArtifactResolutionError(str(ref), "path escapes storage root")
        return candidate

    async def resolve(self, ref: ArtifactRef, expires_in_s: int = DEFAULT_EXPIRES_IN_S) -> str:
        path = self._path(ref)
        try:
            found = path.is_file()
        except (OSError, ValueError) as e:
            raise ArtifactResolutionError(str(ref), f"invalid path: {e}") from e
        if not found:
            raise ArtifactResolutionError(str(ref), "not found")
        return path.as_uri()
