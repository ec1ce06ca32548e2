"""Artifact packaging and manifest generation.

This module handles:
- Human readable sizes in the style of ``du -h``
- Copying auxiliary files (compose descriptor, build file) next to the archive
- Generating, writing and reading the plain-text image manifest
- Listing the services declared by a compose descriptor

The manifest is line oriented and meant for quick inspection::

    # MinerU Tianshu Docker 镜像清单
    # 生成时间: 2024-05-01 12:00:00
    # 总文件数: 1
    # 总大小: 8.2G

    mineru-tianshu-image.tar<TAB>8.2G<TAB>mineru-tianshu:latest
"""

from __future__ import annotations

import logging
import math
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import yaml

from imagepack.types import ArchiveInfo

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "images-manifest.txt"
MANIFEST_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_SIZE_UNITS = ("K", "M", "G", "T", "P")


@dataclass
class CopyResult:
    """Outcome of copying auxiliary files.

    Attributes:
        copied: Destination paths that were written.
        missing: Source paths that did not exist.
    """

    copied: list[Path] = field(default_factory=list)
    missing: list[Path] = field(default_factory=list)


@dataclass
class ManifestRecord:
    """One archive line of a manifest."""

    filename: str
    size: str
    image_ref: str


def format_size(size_bytes: int) -> str:
    """Format bytes like ``du -h``: 1024-based, rounded up.

    Values under ten keep one decimal (``4.0K``), larger ones are whole
    numbers (``512M``). Plain byte counts get a ``B`` suffix.
    """
    if size_bytes < 1024:
        return f"{size_bytes}B"

    size = float(size_bytes)
    for unit in _SIZE_UNITS:
        size /= 1024
        if size < 1024 or unit == _SIZE_UNITS[-1]:
            rounded = math.ceil(size * 10) / 10
            if rounded < 10:
                return f"{rounded:.1f}{unit}"
            return f"{math.ceil(size)}{unit}"
    raise AssertionError("unreachable")


def make_archive_info(path: Path, image_ref: str) -> ArchiveInfo:
    """Describe an archive that exists on disk."""
    size_bytes = path.stat().st_size
    return ArchiveInfo(
        filename=path.name,
        path=path,
        size_bytes=size_bytes,
        size_human=format_size(size_bytes),
        image_ref=image_ref,
    )


def copy_auxiliary_files(files: list[Path], output_dir: Path) -> CopyResult:
    """Copy optional files into the output directory.

    Missing sources are logged as warnings and collected; they never abort
    packaging.

    Args:
        files: Source files to copy.
        output_dir: Destination directory.

    Returns:
        CopyResult listing copied destinations and missing sources.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    result = CopyResult()

    for source in files:
        if not source.is_file():
            logger.warning("Auxiliary file not found, skipping: %s", source)
            result.missing.append(source)
            continue

        destination = output_dir / source.name
        if source.resolve() != destination.resolve():
            shutil.copy2(source, destination)
        result.copied.append(destination)
        logger.info("Copied %s to %s", source, output_dir)

    return result


def generate_manifest(
    archives: list[ArchiveInfo],
    title: str,
    generated_at: datetime | None = None,
) -> str:
    """Render the manifest text for a set of archives.

    Args:
        archives: Archives to list, one record each.
        title: Project title used in the header.
        generated_at: Timestamp for the header; defaults to now (local time).

    Returns:
        Manifest text ending with a newline.
    """
    if generated_at is None:
        generated_at = datetime.now()

    total_bytes = sum(a.size_bytes for a in archives)
    if len(archives) == 1:
        total_size = archives[0].size_human
    else:
        total_size = format_size(total_bytes)

    lines = [
        f"# {title} Docker 镜像清单",
        f"# 生成时间: {generated_at.strftime(MANIFEST_TIME_FORMAT)}",
        f"# 总文件数: {len(archives)}",
        f"# 总大小: {total_size}",
        "",
    ]
    lines.extend(f"{a.filename}\t{a.size_human}\t{a.image_ref}" for a in archives)
    return "\n".join(lines) + "\n"


def write_manifest(content: str, output_dir: Path) -> Path:
    """Write manifest text into the output directory, replacing any old one."""
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / MANIFEST_FILENAME
    path.write_text(content, encoding="utf-8")
    logger.info("Wrote manifest to %s", path)
    return path


def parse_manifest(content: str) -> tuple[dict[str, str], list[ManifestRecord]]:
    """Parse manifest text into header fields and archive records.

    Header lines look like ``# key: value``; the title line has no colon
    and is skipped. Malformed record lines are ignored.
    """
    header: dict[str, str] = {}
    records: list[ManifestRecord] = []

    for line in content.splitlines():
        if not line.strip():
            continue
        if line.startswith("#"):
            key, sep, value = line.lstrip("# ").partition(": ")
            if sep:
                header[key] = value
            continue
        fields = line.split("\t")
        if len(fields) != 3:
            logger.debug("Skipping malformed manifest line: %r", line)
            continue
        records.append(ManifestRecord(*fields))

    return header, records


def read_manifest(output_dir: Path) -> tuple[dict[str, str], list[ManifestRecord]]:
    """Read and parse the manifest in a directory.

    Raises:
        FileNotFoundError: If the directory holds no manifest.
    """
    path = output_dir / MANIFEST_FILENAME
    return parse_manifest(path.read_text(encoding="utf-8"))


def compose_services(compose_file: Path) -> list[str]:
    """List the service names declared in a compose descriptor.

    Returns an empty list when the file is missing or cannot be parsed.
    """
    if not compose_file.is_file():
        return []
    try:
        data = yaml.safe_load(compose_file.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        logger.warning("Could not parse %s: %s", compose_file, e)
        return []

    if not isinstance(data, dict):
        return []
    services = data.get("services")
    if not isinstance(services, dict):
        return []
    return sorted(str(name) for name in services)


__all__ = [
    "MANIFEST_FILENAME",
    "CopyResult",
    "ManifestRecord",
    "compose_services",
    "copy_auxiliary_files",
    "format_size",
    "generate_manifest",
    "make_archive_info",
    "parse_manifest",
    "read_manifest",
    "write_manifest",
]
