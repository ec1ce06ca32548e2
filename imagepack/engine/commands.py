"""Container engine command composition.

Pure functions returning argument lists suitable for subprocess. Nothing in
this module executes anything.
"""

from __future__ import annotations

from pathlib import Path

from imagepack.types import BuildConfig, BuildStrategy

ARCHITECTURE_FORMAT = "{{.Architecture}}"
IMAGES_FORMAT = "{{.Repository}}\t{{.Tag}}\t{{.Size}}\t{{.CreatedSince}}"


def compose_info_command(engine: str) -> list[str]:
    """Command probing whether the engine daemon is reachable."""
    return [engine, "info"]


def compose_buildx_version_command(engine: str) -> list[str]:
    """Command probing whether the buildx driver is installed."""
    return [engine, "buildx", "version"]


def compose_build_command(
    config: BuildConfig,
    strategy: BuildStrategy,
    engine: str = "docker",
) -> list[str]:
    """Compose the image build command.

    The buildx variant adds ``--load`` so the result lands in the local image
    store; the legacy builder does this implicitly.

    Args:
        config: Build configuration.
        strategy: Builder variant to use.
        engine: Container engine executable.

    Returns:
        Command as list of strings.
    """
    if strategy == BuildStrategy.BUILDX:
        cmd = [engine, "buildx", "build"]
    else:
        cmd = [engine, "build"]

    cmd.extend(["--platform", config.platform])

    if config.no_cache:
        cmd.append("--no-cache")

    cmd.extend(["-t", config.image_ref])
    cmd.extend(["-f", str(config.dockerfile)])

    if strategy == BuildStrategy.BUILDX:
        cmd.append("--load")

    # Context must come last
    cmd.append(str(config.context))
    return cmd


def compose_inspect_command(image_ref: str, engine: str = "docker") -> list[str]:
    """Command reading back the recorded architecture of an image."""
    return [engine, "inspect", image_ref, f"--format={ARCHITECTURE_FORMAT}"]


def compose_images_command(image_ref: str, engine: str = "docker") -> list[str]:
    """Command listing repository, tag, size and age of an image."""
    return [engine, "images", image_ref, "--format", IMAGES_FORMAT]


def compose_save_command(
    image_ref: str,
    output_path: Path,
    engine: str = "docker",
) -> list[str]:
    """Command serializing an image to a single archive file."""
    return [engine, "save", image_ref, "-o", str(output_path)]


def compose_load_command(archive: Path, engine: str = "docker") -> list[str]:
    """Command loading an archive into the local image store."""
    return [engine, "load", "-i", str(archive)]


__all__ = [
    "ARCHITECTURE_FORMAT",
    "IMAGES_FORMAT",
    "compose_build_command",
    "compose_buildx_version_command",
    "compose_images_command",
    "compose_info_command",
    "compose_inspect_command",
    "compose_load_command",
    "compose_save_command",
]
