"""Tests for engine/commands.py module.

Tests command composition only; nothing is executed.
"""

from pathlib import Path

import pytest

from imagepack.engine.commands import (
    compose_build_command,
    compose_buildx_version_command,
    compose_images_command,
    compose_info_command,
    compose_inspect_command,
    compose_load_command,
    compose_save_command,
)
from imagepack.types import BuildConfig, BuildStrategy


@pytest.fixture
def config() -> BuildConfig:
    """Create a minimal build configuration."""
    return BuildConfig(
        image_name="mineru-tianshu",
        image_tag="latest",
        platform="linux/amd64",
        dockerfile=Path("Dockerfile.tianshu"),
        context=Path("."),
    )


class TestComposeBuildCommand:
    """Tests for compose_build_command function."""

    def test_buildx_command(self, config):
        """Should use buildx with --load."""
        cmd = compose_build_command(config, BuildStrategy.BUILDX)

        assert cmd[:3] == ["docker", "buildx", "build"]
        assert "--load" in cmd
        assert cmd[cmd.index("--platform") + 1] == "linux/amd64"
        assert cmd[cmd.index("-t") + 1] == "mineru-tianshu:latest"
        assert cmd[cmd.index("-f") + 1] == "Dockerfile.tianshu"
        assert cmd[-1] == "."

    def test_legacy_command(self, config):
        """Should use plain build without --load."""
        cmd = compose_build_command(config, BuildStrategy.LEGACY)

        assert cmd[:2] == ["docker", "build"]
        assert "buildx" not in cmd
        assert "--load" not in cmd
        assert "--platform" in cmd
        assert cmd[-1] == "."

    def test_cache_enabled_by_default(self, config):
        """Should not pass --no-cache unless requested."""
        cmd = compose_build_command(config, BuildStrategy.BUILDX)
        assert "--no-cache" not in cmd

    def test_no_cache(self, config):
        """Should pass --no-cache for full rebuilds."""
        no_cache = BuildConfig(
            image_name=config.image_name,
            image_tag=config.image_tag,
            platform=config.platform,
            dockerfile=config.dockerfile,
            no_cache=True,
        )
        for strategy in BuildStrategy:
            cmd = compose_build_command(no_cache, strategy)
            assert cmd.count("--no-cache") == 1

    def test_custom_engine(self, config):
        """Should use the configured engine executable."""
        cmd = compose_build_command(config, BuildStrategy.LEGACY, engine="podman")
        assert cmd[0] == "podman"


class TestOtherCommands:
    """Tests for the remaining command builders."""

    def test_info(self):
        assert compose_info_command("docker") == ["docker", "info"]

    def test_buildx_version(self):
        assert compose_buildx_version_command("docker") == ["docker", "buildx", "version"]

    def test_inspect(self):
        cmd = compose_inspect_command("app:latest")
        assert cmd[:3] == ["docker", "inspect", "app:latest"]
        assert cmd[3] == "--format={{.Architecture}}"

    def test_images(self):
        cmd = compose_images_command("app:latest")
        assert cmd[:3] == ["docker", "images", "app:latest"]
        assert "--format" in cmd

    def test_save(self):
        cmd = compose_save_command("app:latest", Path("/out/app-image.tar"))
        assert cmd == ["docker", "save", "app:latest", "-o", "/out/app-image.tar"]

    def test_load(self):
        cmd = compose_load_command(Path("/srv/app-image.tar"))
        assert cmd == ["docker", "load", "-i", "/srv/app-image.tar"]
