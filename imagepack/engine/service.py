"""Container engine operations.

This module provides the engine-facing stages of the pipeline:
- check_environment(): daemon reachability and build driver detection
- build_image(): build for a pinned platform, timed
- inspect_architecture() / verify_architecture(): guard against misbuilds
- describe_image(): repository/tag/size summary
- export_image(): save to a single archive, timed
- load_archive(): load one archive, never raising on a failed load
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from imagepack.engine.commands import (
    compose_build_command,
    compose_buildx_version_command,
    compose_images_command,
    compose_info_command,
    compose_inspect_command,
    compose_load_command,
    compose_save_command,
)
from imagepack.engine.runner import probe, run_command
from imagepack.errors import (
    ArchitectureMismatchError,
    EngineCommandError,
    EngineUnavailableError,
    ImageBuildError,
    ImageExportError,
)
from imagepack.pipeline.packager import format_size
from imagepack.types import BuildConfig, BuildStrategy, EnvironmentInfo, ImageInfo

logger = logging.getLogger(__name__)


@dataclass
class BuildResult:
    """Result of an image build.

    Attributes:
        image_ref: Reference of the built image.
        strategy: Builder variant that was used.
        command: The command that was executed.
        duration_seconds: Wall-clock build time.
    """

    image_ref: str
    strategy: BuildStrategy
    command: list[str]
    duration_seconds: float


@dataclass
class ExportResult:
    """Result of saving an image to an archive.

    Attributes:
        image_ref: Reference of the exported image.
        path: Archive path.
        size_bytes: Archive size on disk.
        size_human: Archive size in du-style units (e.g. "8.2G").
        duration_seconds: Wall-clock export time.
    """

    image_ref: str
    path: Path
    size_bytes: int
    size_human: str
    duration_seconds: float


def check_environment(engine: str = "docker") -> EnvironmentInfo:
    """Check that the engine is reachable and detect the buildx driver.

    Args:
        engine: Container engine executable.

    Returns:
        EnvironmentInfo with the selected build strategy.

    Raises:
        EngineUnavailableError: If the engine daemon does not answer.
    """
    if not probe(compose_info_command(engine)):
        logger.error("Container engine %s is not reachable", engine)
        raise EngineUnavailableError(engine)

    buildx = probe(compose_buildx_version_command(engine))
    if buildx:
        logger.info("Using buildx driver")
    else:
        logger.warning("buildx not available, falling back to legacy build")

    return EnvironmentInfo(engine=engine, engine_reachable=True, buildx_available=buildx)


def build_image(
    config: BuildConfig,
    strategy: BuildStrategy,
    engine: str = "docker",
    log_path: Path | None = None,
) -> BuildResult:
    """Build the configured image for its pinned platform.

    Build output goes to the terminal, or to log_path when given.

    Raises:
        ImageBuildError: If the build exits non-zero.
        EngineCommandError: If the engine cannot be started.
    """
    cmd = compose_build_command(config, strategy, engine)
    logger.info("Building %s for %s (%s)", config.image_ref, config.platform, strategy.value)

    started = time.monotonic()
    result = run_command(cmd, log_path=log_path)
    duration = time.monotonic() - started

    if result.returncode != 0:
        logger.error("Build failed after %.1fs", duration)
        raise ImageBuildError(config.image_ref, result.returncode)

    logger.info("Built %s in %.1fs", config.image_ref, duration)
    return BuildResult(
        image_ref=config.image_ref,
        strategy=strategy,
        command=cmd,
        duration_seconds=duration,
    )


def inspect_architecture(image_ref: str, engine: str = "docker") -> str:
    """Read the recorded architecture of an image.

    Raises:
        EngineCommandError: If the image cannot be inspected.
    """
    result = run_command(
        compose_inspect_command(image_ref, engine),
        capture_output=True,
        check=True,
    )
    return result.stdout.strip()


def verify_architecture(
    image_ref: str,
    expected: str,
    engine: str = "docker",
) -> str:
    """Check that the image architecture matches the expected value.

    Returns:
        The architecture recorded on the image.

    Raises:
        ArchitectureMismatchError: If the architectures differ.
    """
    actual = inspect_architecture(image_ref, engine)
    if actual != expected:
        logger.error("Architecture mismatch for %s: %s != %s", image_ref, actual, expected)
        raise ArchitectureMismatchError(image_ref, expected, actual)
    logger.info("Architecture verified for %s: %s", image_ref, actual)
    return actual


def describe_image(image_ref: str, engine: str = "docker") -> ImageInfo | None:
    """Return repository, tag, size and age of an image.

    Returns None when the engine lists nothing for the reference.
    """
    try:
        result = run_command(
            compose_images_command(image_ref, engine),
            capture_output=True,
            check=True,
        )
    except EngineCommandError as e:
        logger.warning("Could not describe %s: %s", image_ref, e)
        return None

    for line in result.stdout.splitlines():
        fields = line.split("\t")
        if len(fields) == 4:
            return ImageInfo(
                repository=fields[0],
                tag=fields[1],
                size=fields[2],
                created_since=fields[3],
            )
    return None


def export_image(
    image_ref: str,
    output_path: Path,
    engine: str = "docker",
) -> ExportResult:
    """Save an image, with all its layers, to a single archive file.

    Raises:
        ImageExportError: If the save operation fails.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Exporting %s to %s", image_ref, output_path)

    started = time.monotonic()
    try:
        result = run_command(
            compose_save_command(image_ref, output_path, engine),
            capture_output=True,
        )
    except EngineCommandError as e:
        raise ImageExportError(image_ref, e.exit_code, str(e)) from e
    duration = time.monotonic() - started

    if result.returncode != 0:
        raise ImageExportError(image_ref, result.returncode, result.stderr.strip())
    if not output_path.is_file():
        raise ImageExportError(image_ref, result.returncode, "archive was not written")

    size_bytes = output_path.stat().st_size
    logger.info("Exported %s (%d bytes) in %.1fs", output_path.name, size_bytes, duration)
    return ExportResult(
        image_ref=image_ref,
        path=output_path,
        size_bytes=size_bytes,
        size_human=format_size(size_bytes),
        duration_seconds=duration,
    )


def load_archive(archive: Path, engine: str = "docker") -> bool:
    """Load one archive into the local image store.

    Returns:
        True if the engine loaded it, False otherwise. A failure here is
        reported, never raised, so callers can carry on with other archives.
    """
    try:
        result = run_command(compose_load_command(archive, engine))
    except EngineCommandError as e:
        logger.error("Could not load %s: %s", archive.name, e)
        return False

    if result.returncode != 0:
        logger.error("Loading %s failed with exit code %d", archive.name, result.returncode)
        return False
    return True


__all__ = [
    "BuildResult",
    "ExportResult",
    "build_image",
    "check_environment",
    "describe_image",
    "export_image",
    "inspect_architecture",
    "load_archive",
    "verify_architecture",
]
