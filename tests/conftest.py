"""Shared fixtures for imagepack tests."""

import os
import stat
import subprocess
from pathlib import Path

import pytest

from imagepack.config import Settings
from imagepack.types import BuildConfig


def completed(
    cmd: list[str] | None = None,
    returncode: int = 0,
    stdout: str = "",
    stderr: str = "",
) -> subprocess.CompletedProcess:
    """Build a CompletedProcess for mocked subprocess.run calls."""
    return subprocess.CompletedProcess(cmd or [], returncode, stdout=stdout, stderr=stderr)


def make_executable(path: Path, content: str) -> Path:
    """Write a small script and make it executable."""
    path.write_text(content)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project directory with a build file and compose descriptor."""
    root = tmp_path / "project"
    root.mkdir()
    (root / "Dockerfile.tianshu").write_text("FROM python:3.11-slim\n")
    (root / "docker-compose.yml").write_text(
        "services:\n  api:\n    image: mineru-tianshu:latest\n"
        "  worker:\n    image: mineru-tianshu:latest\n"
    )
    return root


@pytest.fixture
def settings(project_dir: Path) -> Settings:
    """Settings pointing every path into the temporary project."""
    return Settings(
        dockerfile=project_dir / "Dockerfile.tianshu",
        compose_file=project_dir / "docker-compose.yml",
        build_context=project_dir,
        output_dir=project_dir / "docker-images",
        data_dir=str(project_dir / "data"),
    )


@pytest.fixture
def build_config(settings: Settings) -> BuildConfig:
    """Build configuration derived from the test settings."""
    return BuildConfig(
        image_name=settings.image_name,
        image_tag=settings.image_tag,
        platform=settings.platform,
        dockerfile=settings.dockerfile,
        context=settings.build_context,
    )


@pytest.fixture
def fake_bin(tmp_path: Path) -> Path:
    """Directory of fake external tools that record their arguments.

    ``docker load -i FILE`` fails when FILE contains the word "corrupt".
    Every call is appended to ``calls.log`` next to the directory.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    log = tmp_path / "calls.log"
    recorder = f'echo "$(basename "$0") $*" >> "{log}"\n'

    make_executable(
        bin_dir / "docker",
        "#!/bin/bash\n"
        + recorder
        + 'if [ "$1" = "load" ] && grep -q corrupt "$3"; then exit 1; fi\n'
        "exit 0\n",
    )
    for tool in ("docker-compose", "ssh", "rsync", "scp"):
        make_executable(bin_dir / tool, "#!/bin/bash\n" + recorder + "exit 0\n")
    return bin_dir


@pytest.fixture
def fake_env(fake_bin: Path) -> dict[str, str]:
    """Environment with the fake tools first on PATH."""
    env = dict(os.environ)
    env["PATH"] = f"{fake_bin}{os.pathsep}{env.get('PATH', '')}"
    return env


def read_calls(fake_bin: Path) -> list[str]:
    """Return the recorded fake tool calls."""
    log = fake_bin.parent / "calls.log"
    if not log.exists():
        return []
    return log.read_text().splitlines()
