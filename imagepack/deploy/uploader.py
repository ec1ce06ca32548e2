"""Upload of packaged artifacts to a remote server.

Mirrors upload-all-images.sh: create the remote directory over ssh, then
transfer archives, manifest, load script and configuration files with rsync
when available, scp otherwise.
"""

from __future__ import annotations

import logging
import shlex
import shutil
from dataclasses import dataclass
from pathlib import Path

from imagepack.engine.runner import run_command
from imagepack.errors import EngineCommandError, UploadError
from imagepack.pipeline.packager import MANIFEST_FILENAME
from imagepack.scripts.render import LOAD_SCRIPT_NAME

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Destination:
    """Parsed ``user@host:path`` upload target."""

    raw: str
    server: str
    remote_path: str


def parse_destination(destination: str) -> Destination:
    """Split ``user@host:path`` on the first colon.

    A remote path that itself contains a colon is cut at that colon; this
    matches the generated shell script and is a known limitation.

    Raises:
        UploadError: If the server or path part is empty.
    """
    server, sep, rest = destination.partition(":")
    remote_path = rest.split(":", 1)[0]
    if not sep or not server or not remote_path:
        raise UploadError(
            f"Invalid destination {destination!r}, expected user@host:/path/",
            code="invalid_destination",
        )
    return Destination(raw=destination, server=server, remote_path=remote_path)


def collect_upload_files(source_dir: Path, extra_files: list[str]) -> list[Path]:
    """List the files to transfer from a packaged output directory.

    Archives, manifest and load script are required; configuration files
    are included when present.

    Raises:
        UploadError: If no archive or a required file is missing.
    """
    archives = sorted(source_dir.glob("*.tar"))
    if not archives:
        raise UploadError(f"No .tar archives in {source_dir}", code="no_archives")

    files = list(archives)
    for name in (MANIFEST_FILENAME, LOAD_SCRIPT_NAME):
        path = source_dir / name
        if not path.is_file():
            raise UploadError(f"Missing {name} in {source_dir}", code="missing_file")
        files.append(path)

    for name in extra_files:
        path = source_dir / name
        if path.is_file():
            files.append(path)
        else:
            logger.warning("Skipping missing file %s", path)
    return files


def compose_mkdir_command(destination: Destination) -> list[str]:
    """Command creating the remote directory over ssh."""
    return [
        "ssh",
        destination.server,
        f"mkdir -p {shlex.quote(destination.remote_path)}",
    ]


def compose_transfer_command(
    files: list[Path],
    destination: Destination,
    use_rsync: bool,
) -> list[str]:
    """Command transferring files, rsync (resumable) or scp."""
    if use_rsync:
        cmd = ["rsync", "-avz", "--progress"]
    else:
        cmd = ["scp"]
    cmd.extend(str(f) for f in files)
    cmd.append(destination.raw)
    return cmd


def upload(
    source_dir: Path,
    destination: str,
    extra_files: list[str] | None = None,
) -> list[Path]:
    """Upload a packaged output directory to a remote server.

    Args:
        source_dir: Directory produced by the build pipeline.
        destination: ``user@host:path`` target.
        extra_files: Configuration file names to include when present.

    Returns:
        The files that were transferred.

    Raises:
        UploadError: On a bad destination, missing files, or a failed
            ssh/transfer command.
    """
    target = parse_destination(destination)
    files = collect_upload_files(source_dir, extra_files or [])
    use_rsync = shutil.which("rsync") is not None
    logger.info(
        "Uploading %d file(s) to %s using %s",
        len(files),
        target.raw,
        "rsync" if use_rsync else "scp",
    )

    try:
        run_command(compose_mkdir_command(target), check=True)
        run_command(compose_transfer_command(files, target, use_rsync), check=True)
    except EngineCommandError as e:
        raise UploadError(str(e)) from e

    return files


__all__ = [
    "Destination",
    "collect_upload_files",
    "compose_mkdir_command",
    "compose_transfer_command",
    "parse_destination",
    "upload",
]
