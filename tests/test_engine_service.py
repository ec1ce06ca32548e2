"""Tests for engine/service.py and engine/runner.py.

Uses mocked subprocess for every engine call.
"""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import completed
from imagepack.engine.runner import probe, run_command
from imagepack.engine.service import (
    build_image,
    check_environment,
    describe_image,
    export_image,
    load_archive,
    verify_architecture,
)
from imagepack.errors import (
    ArchitectureMismatchError,
    EngineCommandError,
    EngineUnavailableError,
    ImageBuildError,
    ImageExportError,
)
from imagepack.types import BuildStrategy


def engine_answers(**answers: int):
    """side_effect returning a return code per engine subcommand."""

    def _run(cmd, **kwargs):
        key = "_".join(cmd[1:3]) if cmd[1] == "buildx" else cmd[1]
        return completed(cmd, returncode=answers.get(key, 0))

    return _run


class TestRunCommand:
    """Tests for run_command and probe."""

    def test_returns_completed_process(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(["docker", "info"], stdout="ok")
            result = run_command(["docker", "info"], capture_output=True)

        assert result.stdout == "ok"
        assert mock_run.call_args.kwargs["capture_output"] is True

    def test_check_raises_on_failure(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=3, stderr="boom")
            with pytest.raises(EngineCommandError) as exc_info:
                run_command(["docker", "inspect", "x"], capture_output=True, check=True)

        assert exc_info.value.exit_code == 3
        assert "boom" in str(exc_info.value)

    def test_no_check_returns_failure(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=1)
            result = run_command(["docker", "load", "-i", "a.tar"])
        assert result.returncode == 1

    def test_missing_executable(self):
        with patch("subprocess.run") as mock_run:
            mock_run.side_effect = FileNotFoundError("docker")
            with pytest.raises(EngineCommandError) as exc_info:
                run_command(["docker", "info"])
        assert exc_info.value.code == "execution_error"

    def test_log_path(self, tmp_path):
        """Should write a header and exit code to the log file."""
        log_path = tmp_path / "logs" / "build.log"
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=0)
            run_command(["docker", "build", "."], log_path=log_path)

        content = log_path.read_text()
        assert "# Command: docker build ." in content
        assert "# Exit code: 0" in content
        assert mock_run.call_args.kwargs["stderr"] == subprocess.STDOUT

    def test_probe(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=0)
            assert probe(["docker", "info"]) is True
            mock_run.return_value = completed(returncode=1)
            assert probe(["docker", "info"]) is False
            mock_run.side_effect = OSError("missing")
            assert probe(["docker", "info"]) is False


class TestCheckEnvironment:
    """Tests for check_environment function."""

    def test_buildx_available(self):
        with patch("subprocess.run", side_effect=engine_answers()):
            info = check_environment()
        assert info.engine_reachable is True
        assert info.strategy == BuildStrategy.BUILDX

    def test_buildx_missing(self):
        with patch("subprocess.run", side_effect=engine_answers(buildx_version=1)):
            info = check_environment()
        assert info.strategy == BuildStrategy.LEGACY

    def test_engine_unreachable(self):
        with patch("subprocess.run", side_effect=engine_answers(info=1)) as mock_run:
            with pytest.raises(EngineUnavailableError) as exc_info:
                check_environment()
        assert exc_info.value.code == "engine_unavailable"
        # buildx is never probed once the daemon is known to be down
        assert mock_run.call_count == 1

    def test_engine_not_installed(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("docker")):
            with pytest.raises(EngineUnavailableError):
                check_environment()


class TestBuildImage:
    """Tests for build_image function."""

    def test_successful_build(self, build_config):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=0)
            result = build_image(build_config, BuildStrategy.BUILDX)

        assert result.image_ref == "mineru-tianshu:latest"
        assert result.duration_seconds >= 0
        assert "--load" in result.command
        assert mock_run.call_args.args[0] == result.command

    def test_failed_build(self, build_config):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=2)
            with pytest.raises(ImageBuildError) as exc_info:
                build_image(build_config, BuildStrategy.LEGACY)

        assert exc_info.value.exit_code == 2
        assert exc_info.value.code == "build_failed"


class TestVerifyArchitecture:
    """Tests for verify_architecture function."""

    def test_match(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(stdout="amd64\n")
            assert verify_architecture("app:latest", "amd64") == "amd64"

    def test_mismatch(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(stdout="arm64\n")
            with pytest.raises(ArchitectureMismatchError) as exc_info:
                verify_architecture("app:latest", "amd64")

        assert exc_info.value.expected == "amd64"
        assert exc_info.value.actual == "arm64"

    def test_inspect_failure(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=1, stderr="No such image")
            with pytest.raises(EngineCommandError):
                verify_architecture("app:latest", "amd64")


class TestDescribeImage:
    """Tests for describe_image function."""

    def test_parses_output(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(
                stdout="mineru-tianshu\tlatest\t8.1GB\t2 minutes ago\n"
            )
            info = describe_image("mineru-tianshu:latest")

        assert info is not None
        assert info.repository == "mineru-tianshu"
        assert info.size == "8.1GB"
        assert info.created_since == "2 minutes ago"

    def test_empty_output(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(stdout="")
            assert describe_image("missing:latest") is None

    def test_failure_is_not_fatal(self):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=1)
            assert describe_image("app:latest") is None


class TestExportImage:
    """Tests for export_image function."""

    def test_successful_export(self, tmp_path):
        output = tmp_path / "out" / "app-image.tar"

        def fake_save(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"x" * 4096)
            return completed(cmd)

        with patch("subprocess.run", side_effect=fake_save):
            result = export_image("app:latest", output)

        assert result.path == output
        assert result.size_bytes == 4096
        assert result.size_human == "4.0K"
        assert result.duration_seconds >= 0

    def test_failed_export(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=1, stderr="no space left")
            with pytest.raises(ImageExportError) as exc_info:
                export_image("app:latest", tmp_path / "app-image.tar")

        assert "no space left" in str(exc_info.value)
        assert exc_info.value.code == "export_failed"

    def test_archive_not_written(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=0)
            with pytest.raises(ImageExportError):
                export_image("app:latest", tmp_path / "app-image.tar")

    def test_engine_missing(self, tmp_path):
        with patch("subprocess.run", side_effect=FileNotFoundError("docker")):
            with pytest.raises(ImageExportError):
                export_image("app:latest", tmp_path / "app-image.tar")


class TestLoadArchive:
    """Tests for load_archive function."""

    def test_loaded(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=0)
            assert load_archive(tmp_path / "a.tar") is True

    def test_failed(self, tmp_path):
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = completed(returncode=1)
            assert load_archive(tmp_path / "a.tar") is False

    def test_engine_missing(self, tmp_path):
        with patch("subprocess.run", side_effect=FileNotFoundError("docker")):
            assert load_archive(tmp_path / "a.tar") is False
