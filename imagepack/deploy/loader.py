"""Server-side loading of image archives.

Mirrors load-all-images.sh:
- find every ``*.tar`` in a directory (none is an error)
- load each one, counting successes and failures independently
- when all succeeded, optionally start services with the compose tool
- optionally delete the archives to reclaim disk space

Prompts go through an injectable ``confirm`` callback so runs can be
scripted or tested without a terminal.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from imagepack.engine.runner import run_command
from imagepack.engine.service import load_archive
from imagepack.errors import NoArchivesError
from imagepack.types import LoadOutcome, LoadStatus, LoadSummary

logger = logging.getLogger(__name__)

Confirm = Callable[[str], bool]

START_SERVICES_PROMPT = "是否立即启动服务? (yes/no)"
CLEANUP_PROMPT = "删除 .tar 文件以释放空间？(输入 yes 确认)"


def never(_prompt: str) -> bool:
    """Confirmation callback that always declines."""
    return False


@dataclass
class LoadReport:
    """Everything a load run did."""

    summary: LoadSummary
    compose_present: bool = False
    services_started: bool = False
    removed: list[Path] = field(default_factory=list)


def find_archives(directory: Path) -> list[Path]:
    """Return the archives in a directory, sorted by name.

    Raises:
        NoArchivesError: If there are none.
    """
    archives = sorted(p for p in directory.glob("*.tar") if p.is_file())
    if not archives:
        raise NoArchivesError(str(directory))
    return archives


def load_archives(
    archives: list[Path],
    engine: str = "docker",
    on_result: Callable[[LoadOutcome], None] | None = None,
) -> LoadSummary:
    """Load every archive; one failure never stops the rest.

    Args:
        archives: Archives to load, in order.
        engine: Container engine executable.
        on_result: Called after each attempt, for progress output.
    """
    summary = LoadSummary()
    for archive in archives:
        logger.info("Loading %s", archive.name)
        if load_archive(archive, engine):
            outcome = LoadOutcome(archive=archive, status=LoadStatus.LOADED)
        else:
            outcome = LoadOutcome(
                archive=archive,
                status=LoadStatus.FAILED,
                message=f"{archive.name} 加载失败",
            )
        summary.outcomes.append(outcome)
        if on_result is not None:
            on_result(outcome)

    logger.info("Loaded %d, failed %d", summary.loaded, summary.failed)
    return summary


def start_services(directory: Path, compose_command: str = "docker-compose") -> None:
    """Start services defined by the compose descriptor in a directory.

    Raises:
        EngineCommandError: If the compose tool fails.
    """
    cmd = [*shlex.split(compose_command), "up", "-d"]
    run_command(cmd, cwd=directory, check=True)
    logger.info("Services started from %s", directory)


def cleanup_archives(archives: list[Path]) -> list[Path]:
    """Delete archives, ignoring ones that are already gone."""
    removed: list[Path] = []
    for archive in archives:
        try:
            archive.unlink()
        except FileNotFoundError:
            continue
        removed.append(archive)
    logger.info("Removed %d archive(s)", len(removed))
    return removed


def run_load(
    directory: Path,
    engine: str = "docker",
    compose_command: str = "docker-compose",
    compose_file_name: str = "docker-compose.yml",
    data_dir: str | None = None,
    confirm: Confirm = never,
    on_result: Callable[[LoadOutcome], None] | None = None,
) -> LoadReport:
    """Load all archives in a directory, then run the optional follow-ups.

    Services are only offered, and cleanup only asked, when every archive
    loaded.

    Raises:
        NoArchivesError: If the directory holds no archives; the engine is
            not invoked.
    """
    archives = find_archives(directory)
    summary = load_archives(archives, engine, on_result=on_result)
    report = LoadReport(summary=summary)

    if not summary.all_succeeded:
        return report

    report.compose_present = (directory / compose_file_name).is_file()
    if report.compose_present:
        if data_dir:
            Path(data_dir).expanduser().mkdir(parents=True, exist_ok=True)
        if confirm(START_SERVICES_PROMPT):
            start_services(directory, compose_command)
            report.services_started = True

    if confirm(CLEANUP_PROMPT):
        report.removed = cleanup_archives(archives)

    return report


__all__ = [
    "CLEANUP_PROMPT",
    "START_SERVICES_PROMPT",
    "Confirm",
    "LoadReport",
    "cleanup_archives",
    "find_archives",
    "load_archives",
    "never",
    "run_load",
    "start_services",
]
