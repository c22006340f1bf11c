# src/storage/models.py — v1
"""Storage domain models: ArtifactRef, ArtifactResolution."""

from __future__ import annotations

from pydantic import BaseModel, Field

DEFAULT_BUCKET = "outputs"


class ArtifactRef(BaseModel):
    """Opaque pointer to a stored artifact."""

    bucket: str
    path: str

    @classmethod
    def parse(cls, reference: str, default_bucket: str = DEFAULT_BUCKET) -> ArtifactRef:
        """Split ``"bucket/path/to/file"``; a bare id goes to ``default_bucket``."""
        bucket, sep, path = reference.strip().strip("/").partition("/")
        if not sep:
            return cls(bucket=default_bucket, path=bucket)
        return cls(bucket=bucket, path=path)

    def __str__(self) -> str:
        return f"{self.bucket}/{self.path}"


class ArtifactResolution(BaseModel):
    """Outcome of resolving a pipeline's artifacts.

    ``urls`` maps each requested reference to its viewable URL; ``failures``
    maps it to the collaborator's error message.
    """

    urls: dict[str, str] = Field(default_factory=dict)
    failures: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures
