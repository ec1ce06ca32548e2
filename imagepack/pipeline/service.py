"""Pipeline service module.

This module provides the high-level build API:
- build_config_from_settings(): freeze the inputs of one run
- run_pipeline(): environment check, build, verify, export, package and
  script generation, strictly in order

Every stage receives the PipelineContext explicitly. The first
ImagePackError aborts the run; partial output is left in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from imagepack.config import Settings, get_settings
from imagepack.engine.service import (
    BuildResult,
    build_image,
    check_environment,
    describe_image,
    export_image,
    verify_architecture,
)
from imagepack.pipeline.packager import (
    CopyResult,
    compose_services,
    copy_auxiliary_files,
    generate_manifest,
    make_archive_info,
    write_manifest,
)
from imagepack.scripts.render import ScriptParams, write_scripts
from imagepack.types import ArchiveInfo, BuildConfig, EnvironmentInfo, ImageInfo

logger = logging.getLogger(__name__)

TOTAL_STEPS = 3


class Reporter(Protocol):
    """Receives user-facing progress from the pipeline."""

    def step(self, number: int, total: int, title: str) -> None: ...

    def info(self, message: str) -> None: ...

    def success(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...


class NullReporter:
    """Reporter that discards everything."""

    def step(self, number: int, total: int, title: str) -> None:
        pass

    def info(self, message: str) -> None:
        pass

    def success(self, message: str) -> None:
        pass

    def warning(self, message: str) -> None:
        pass


@dataclass
class PipelineContext:
    """State handed from one stage to the next."""

    config: BuildConfig
    settings: Settings
    output_dir: Path
    reporter: Reporter
    environment: EnvironmentInfo | None = None
    build: BuildResult | None = None
    architecture: str | None = None
    image_info: ImageInfo | None = None
    archive: ArchiveInfo | None = None
    export_seconds: float | None = None
    copied: CopyResult | None = None
    manifest_path: Path | None = None
    scripts: list[Path] = field(default_factory=list)


@dataclass
class PipelineResult:
    """Everything a successful run produced."""

    config: BuildConfig
    output_dir: Path
    strategy: str
    build_seconds: float
    export_seconds: float
    architecture: str
    archive: ArchiveInfo
    manifest_path: Path
    copied_files: list[Path]
    missing_files: list[Path]
    scripts: list[Path]
    image_info: ImageInfo | None = None
    services: list[str] = field(default_factory=list)

    @property
    def files(self) -> list[Path]:
        """All files written into the output directory."""
        return [
            self.archive.path,
            self.manifest_path,
            *self.copied_files,
            *self.scripts,
        ]


def build_config_from_settings(
    settings: Settings,
    no_cache: bool = False,
) -> BuildConfig:
    """Freeze settings into the immutable configuration of one run."""
    return BuildConfig(
        image_name=settings.image_name,
        image_tag=settings.image_tag,
        platform=settings.platform,
        dockerfile=settings.dockerfile,
        context=settings.build_context,
        no_cache=no_cache,
    )


def format_duration(seconds: float) -> str:
    """Render seconds as ``M分S秒``."""
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    return f"{minutes}分{secs}秒"


def stage_environment(ctx: PipelineContext) -> None:
    ctx.reporter.info("检查 Docker 环境...")
    ctx.environment = check_environment(ctx.settings.engine)
    ctx.reporter.success("Docker 运行正常")
    if ctx.environment.buildx_available:
        ctx.reporter.info("使用 Docker Buildx 构建")
    else:
        ctx.reporter.warning("Buildx 不可用，使用传统构建方式")


def stage_build(ctx: PipelineContext) -> None:
    assert ctx.environment is not None
    config = ctx.config
    ctx.reporter.step(1, TOTAL_STEPS, "构建镜像")
    if config.no_cache:
        ctx.reporter.warning("完整构建模式(不使用缓存)")
    else:
        ctx.reporter.info("快速构建模式(使用缓存)")
    ctx.reporter.info(f"镜像: {config.image_ref}")
    ctx.reporter.info(f"平台: {config.platform}")
    ctx.reporter.info(f"Dockerfile: {config.dockerfile}")

    ctx.build = build_image(
        config,
        ctx.environment.strategy,
        ctx.settings.engine,
        log_path=ctx.settings.build_log,
    )
    ctx.reporter.success(
        f"✓ 镜像构建完成! 耗时: {format_duration(ctx.build.duration_seconds)}"
    )


def stage_verify(ctx: PipelineContext) -> None:
    ctx.reporter.step(2, TOTAL_STEPS, "验证镜像")
    ctx.architecture = verify_architecture(
        ctx.config.image_ref,
        ctx.config.expected_architecture,
        ctx.settings.engine,
    )
    ctx.reporter.success(f"✓ 架构验证通过: {ctx.architecture}")

    ctx.image_info = describe_image(ctx.config.image_ref, ctx.settings.engine)
    if ctx.image_info is not None:
        info = ctx.image_info
        ctx.reporter.info(
            f"镜像信息: {info.repository}:{info.tag} "
            f"大小 {info.size} 创建于 {info.created_since}"
        )


def stage_export(ctx: PipelineContext) -> None:
    ctx.reporter.step(3, TOTAL_STEPS, "导出镜像")
    output_file = ctx.output_dir / ctx.config.archive_name
    ctx.reporter.info(f"导出镜像到: {output_file}")

    result = export_image(ctx.config.image_ref, output_file, ctx.settings.engine)
    ctx.export_seconds = result.duration_seconds
    ctx.archive = make_archive_info(result.path, ctx.config.image_ref)
    ctx.reporter.success(f"✓ 镜像导出完成! 耗时: {int(result.duration_seconds)}秒")
    ctx.reporter.info(f"文件: {ctx.archive.path}")
    ctx.reporter.info(f"大小: {ctx.archive.size_human}")


def stage_package(ctx: PipelineContext) -> None:
    assert ctx.archive is not None
    ctx.reporter.info(f"复制配置文件到 {ctx.output_dir}...")
    ctx.copied = copy_auxiliary_files(
        [ctx.settings.compose_file, ctx.config.dockerfile],
        ctx.output_dir,
    )
    for path in ctx.copied.copied:
        ctx.reporter.success(f"✓ {path.name}")
    for path in ctx.copied.missing:
        ctx.reporter.warning(f"⚠ {path.name} 不存在")

    content = generate_manifest([ctx.archive], ctx.settings.title)
    ctx.manifest_path = write_manifest(content, ctx.output_dir)
    ctx.reporter.success(f"✓ 镜像清单: {ctx.manifest_path}")


def stage_scripts(ctx: PipelineContext) -> None:
    assert ctx.copied is not None
    params = ScriptParams.from_settings(
        ctx.settings,
        extra_files=[p.name for p in ctx.copied.copied],
    )
    ctx.scripts = write_scripts(ctx.output_dir, params)
    ctx.reporter.success("✓ 辅助脚本已生成")


STAGES = (
    stage_environment,
    stage_build,
    stage_verify,
    stage_export,
    stage_package,
    stage_scripts,
)


def run_pipeline(
    config: BuildConfig,
    settings: Settings | None = None,
    reporter: Reporter | None = None,
) -> PipelineResult:
    """Run every stage in order, aborting on the first failure.

    Args:
        config: Inputs of this run.
        settings: Application settings; defaults are loaded if omitted.
        reporter: Progress sink; output is discarded if omitted.

    Returns:
        PipelineResult describing the produced artifact set.

    Raises:
        ImagePackError: From the first stage that fails.
    """
    if settings is None:
        settings = get_settings()

    output_dir = settings.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    ctx = PipelineContext(
        config=config,
        settings=settings,
        output_dir=output_dir,
        reporter=reporter or NullReporter(),
    )

    for stage in STAGES:
        logger.debug("Running stage %s", stage.__name__)
        stage(ctx)

    assert ctx.build is not None
    assert ctx.archive is not None
    assert ctx.copied is not None
    assert ctx.manifest_path is not None

    return PipelineResult(
        config=config,
        output_dir=output_dir,
        strategy=ctx.build.strategy.value,
        build_seconds=ctx.build.duration_seconds,
        export_seconds=ctx.export_seconds or 0.0,
        architecture=ctx.architecture or "",
        archive=ctx.archive,
        manifest_path=ctx.manifest_path,
        copied_files=ctx.copied.copied,
        missing_files=ctx.copied.missing,
        scripts=ctx.scripts,
        image_info=ctx.image_info,
        services=compose_services(settings.compose_file),
    )


__all__ = [
    "NullReporter",
    "PipelineContext",
    "PipelineResult",
    "Reporter",
    "build_config_from_settings",
    "format_duration",
    "run_pipeline",
]
