"""Shared type definitions for imagepack.

This module contains dataclasses and enums shared across subpackages to
avoid circular imports.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class BuildStrategy(str, Enum):
    """Which engine build command is used."""

    BUILDX = "buildx"
    LEGACY = "legacy"


class LoadStatus(str, Enum):
    """Outcome of loading a single archive."""

    LOADED = "loaded"
    FAILED = "failed"


def architecture_of(platform: str) -> str:
    """Return the architecture component of a platform string.

    ``linux/amd64`` gives ``amd64``; ``linux/arm64/v8`` gives ``arm64``.
    """
    parts = platform.split("/")
    if len(parts) < 2:
        raise ValueError(f"Invalid platform: {platform}")
    return parts[1]


@dataclass(frozen=True)
class BuildConfig:
    """Inputs of one pipeline run. Set once at start, never mutated."""

    image_name: str
    image_tag: str
    platform: str
    dockerfile: Path
    context: Path = Path(".")
    no_cache: bool = False

    @property
    def image_ref(self) -> str:
        return f"{self.image_name}:{self.image_tag}"

    @property
    def expected_architecture(self) -> str:
        return architecture_of(self.platform)

    @property
    def archive_name(self) -> str:
        return f"{self.image_name}-image.tar"


@dataclass
class EnvironmentInfo:
    """Result of the container engine environment check."""

    engine: str
    engine_reachable: bool
    buildx_available: bool

    @property
    def strategy(self) -> BuildStrategy:
        return BuildStrategy.BUILDX if self.buildx_available else BuildStrategy.LEGACY


@dataclass
class ImageInfo:
    """Image summary as reported by the engine `images` operation."""

    repository: str
    tag: str
    size: str
    created_since: str


@dataclass
class ArchiveInfo:
    """An exported image archive."""

    filename: str
    path: Path
    size_bytes: int
    size_human: str
    image_ref: str


@dataclass
class LoadOutcome:
    """Result of loading one archive."""

    archive: Path
    status: LoadStatus
    message: str | None = None


@dataclass
class LoadSummary:
    """Tally of a load run over every archive in a directory."""

    outcomes: list[LoadOutcome] = field(default_factory=list)

    @property
    def loaded(self) -> int:
        return sum(1 for o in self.outcomes if o.status == LoadStatus.LOADED)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.status == LoadStatus.FAILED)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0


__all__ = [
    "ArchiveInfo",
    "BuildConfig",
    "BuildStrategy",
    "EnvironmentInfo",
    "ImageInfo",
    "LoadOutcome",
    "LoadStatus",
    "LoadSummary",
    "architecture_of",
]
