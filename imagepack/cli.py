"""Thin CLI wrapper for imagepack.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from imagepack import __version__
from imagepack.config import Settings, print_settings_json

app = typer.Typer(
    name="imagepack",
    help="imagepack - build, verify, export and ship container images",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConsoleReporter:
    """Pipeline reporter printing colored, prefixed lines."""

    def __init__(self, out: Console) -> None:
        self.out = out

    def step(self, number: int, total: int, title: str) -> None:
        self.out.print()
        self.info(f"步骤 {number}/{total}: {title}")
        self.out.print()

    def info(self, message: str) -> None:
        self.out.print(f"[blue]\\[INFO][/blue] {escape(message)}")

    def success(self, message: str) -> None:
        self.out.print(f"[green]\\[SUCCESS][/green] {escape(message)}")

    def warning(self, message: str) -> None:
        self.out.print(f"[yellow]\\[WARNING][/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self.out.print(f"[red]\\[ERROR][/red] {escape(message)}")


def banner(title: str) -> None:
    console.print()
    console.print("=========================================")
    console.print(f"   {escape(title)}")
    console.print("=========================================")
    console.print()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"imagepack version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Logging level (overrides settings)"),
    ] = None,
) -> None:
    """imagepack - build, verify, export and ship container images."""
    level = (log_level or _settings_with().log_level).upper()
    if level not in LOG_LEVELS:
        console.print(f"[red]Invalid log level: {level}[/red]")
        console.print(f"Valid values: {', '.join(LOG_LEVELS)}")
        raise typer.Exit(code=1)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _settings_with(**overrides: object) -> Settings:
    """Load settings, letting non-None CLI values take precedence."""
    from pydantic import ValidationError

    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        return Settings(**values)
    except ValidationError as e:
        console.print("[red]Invalid configuration:[/red]")
        console.print(escape(str(e)))
        raise typer.Exit(code=1) from None


@app.command()
def build(
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", help="Full rebuild without layer cache"),
    ] = False,
    output_dir: Annotated[
        Path | None,
        typer.Option("--output-dir", "-o", help="Output directory"),
    ] = None,
    image_name: Annotated[
        str | None,
        typer.Option("--image-name", "-n", help="Image repository name"),
    ] = None,
    tag: Annotated[
        str | None,
        typer.Option("--tag", "-t", help="Image tag"),
    ] = None,
    platform: Annotated[
        str | None,
        typer.Option("--platform", "-p", help="Target platform (os/arch)"),
    ] = None,
    dockerfile: Annotated[
        Path | None,
        typer.Option("--dockerfile", "-f", help="Build file"),
    ] = None,
) -> None:
    """Build the image, verify it, export it and package deployment files."""
    from imagepack.errors import ImagePackError
    from imagepack.pipeline.packager import format_size
    from imagepack.pipeline.service import build_config_from_settings, run_pipeline

    settings = _settings_with(
        output_dir=output_dir,
        image_name=image_name,
        image_tag=tag,
        platform=platform,
        dockerfile=dockerfile,
    )
    config = build_config_from_settings(settings, no_cache=no_cache)
    reporter = ConsoleReporter(console)

    banner(f"{settings.title} Docker 镜像构建")

    try:
        result = run_pipeline(config, settings, reporter)
    except ImagePackError as e:
        reporter.error(e.message)
        raise typer.Exit(code=1) from None

    banner("🎉 完成！")
    reporter.info(f"输出目录: {result.output_dir}/")
    reporter.info("文件列表:")
    for path in sorted(result.files):
        size = format_size(path.stat().st_size) if path.exists() else "-"
        console.print(f"  {escape(path.name)}\t{size}")
    if result.services:
        reporter.info(f"服务: {', '.join(result.services)}")

    out = escape(str(result.output_dir))
    console.print()
    console.print("[bold]下一步:[/bold]")
    console.print(f"  cd {out}")
    console.print("  ./upload-all-images.sh root@your-server:~/deploy/")
    console.print()
    console.print("[bold]服务器端部署:[/bold]")
    console.print("  ./load-all-images.sh")
    console.print(f"  {escape(settings.compose_command)} up -d")


@app.command()
def scripts(
    output_dir: Annotated[
        Path | None,
        typer.Argument(help="Directory to write the scripts into"),
    ] = None,
) -> None:
    """Regenerate the upload and load scripts without building."""
    from imagepack.scripts.render import ScriptParams, write_scripts

    settings = _settings_with()
    target = output_dir or settings.output_dir
    extra_files = [
        name
        for name in (settings.compose_file.name, settings.dockerfile.name)
        if (target / name).is_file()
    ]
    params = ScriptParams.from_settings(settings, extra_files=extra_files)
    for path in write_scripts(target, params):
        console.print(f"[green]✓ {escape(str(path))}[/green]")


@app.command()
def manifest(
    output_dir: Annotated[
        Path | None,
        typer.Argument(help="Directory containing images-manifest.txt"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show the image manifest of an output directory."""
    from imagepack.pipeline.packager import read_manifest

    target = output_dir or _settings_with().output_dir
    try:
        header, records = read_manifest(target)
    except FileNotFoundError:
        console.print(f"[red]Manifest not found in {escape(str(target))}[/red]")
        raise typer.Exit(code=1) from None

    if json_output:
        output = {
            "header": header,
            "records": [
                {"filename": r.filename, "size": r.size, "image_ref": r.image_ref}
                for r in records
            ],
        }
        typer.echo(json.dumps(output, indent=2, ensure_ascii=False))
        return

    for key, value in header.items():
        console.print(f"[bold]{escape(key)}:[/bold] {escape(value)}")
    console.print()
    for r in records:
        console.print(
            f"  [green]{escape(r.filename)}[/green]  {escape(r.size)}  "
            f"{escape(r.image_ref)}"
        )


@app.command()
def load(
    directory: Annotated[
        Path,
        typer.Argument(help="Directory containing .tar archives"),
    ] = Path("."),
    start: Annotated[
        bool | None,
        typer.Option(
            "--start/--no-start",
            help="Start services after loading (prompts if omitted)",
        ),
    ] = None,
    cleanup: Annotated[
        bool | None,
        typer.Option(
            "--cleanup/--no-cleanup",
            help="Delete archives after loading (prompts if omitted)",
        ),
    ] = None,
) -> None:
    """Load every archive in a directory into the container engine."""
    from imagepack.deploy.loader import CLEANUP_PROMPT, START_SERVICES_PROMPT, run_load
    from imagepack.errors import ImagePackError, NoArchivesError
    from imagepack.types import LoadOutcome, LoadStatus

    settings = _settings_with()
    preset = {START_SERVICES_PROMPT: start, CLEANUP_PROMPT: cleanup}

    def confirm(prompt: str) -> bool:
        answer = preset.get(prompt)
        if answer is not None:
            return answer
        try:
            reply = typer.prompt(prompt, default="", show_default=False)
        except typer.Abort:
            return False
        return reply.strip() == "yes"

    def show(outcome: LoadOutcome) -> None:
        name = escape(outcome.archive.name)
        if outcome.status == LoadStatus.LOADED:
            console.print(f"  [green]✓ {name}[/green]")
        else:
            console.print(f"  [red]✗ {name} 加载失败[/red]")

    banner(f"加载 {settings.title} Docker 镜像")

    try:
        report = run_load(
            directory,
            engine=settings.engine,
            compose_command=settings.compose_command,
            compose_file_name=settings.compose_file.name,
            data_dir=settings.data_dir,
            confirm=confirm,
            on_result=show,
        )
    except NoArchivesError:
        console.print("[red]错误: 当前目录没有找到 .tar 文件[/red]")
        raise typer.Exit(code=1) from None
    except ImagePackError as e:
        console.print(f"[red]错误: {escape(e.message)}[/red]")
        raise typer.Exit(code=1) from None

    summary = report.summary
    console.print()
    console.print("=========================================")
    console.print("  加载完成！")
    console.print("=========================================")
    console.print(f"  成功: {summary.loaded}")
    console.print(f"  失败: {summary.failed}")
    console.print()

    if not summary.all_succeeded:
        console.print("[red]部分镜像加载失败，请检查日志[/red]")
        raise typer.Exit(code=1)

    console.print("[green]✅ 所有镜像加载成功！[/green]")
    if report.services_started:
        console.print("[green]✅ 服务已启动！[/green]")
        if settings.service_url:
            console.print(f"访问 API 文档: {escape(settings.service_url)}")
    elif report.compose_present:
        console.print("手动启动服务:")
        console.print(f"  cd {escape(str(directory.resolve()))}")
        console.print(f"  {escape(settings.compose_command)} up -d")
    if report.removed:
        console.print("已删除镜像文件")


@app.command()
def upload(
    destination: Annotated[
        str | None,
        typer.Argument(help="Target as user@server:/path/to/destination/"),
    ] = None,
    source: Annotated[
        Path | None,
        typer.Option("--source", "-s", help="Packaged output directory"),
    ] = None,
) -> None:
    """Upload archives and deployment files to a remote server."""
    if not destination:
        console.print("用法: imagepack upload user@server:/path/to/destination/")
        console.print("示例: imagepack upload root@192.168.1.100:/root/deploy/")
        raise typer.Exit(code=1)

    from imagepack.deploy.uploader import parse_destination
    from imagepack.deploy.uploader import upload as upload_files
    from imagepack.errors import ImagePackError

    settings = _settings_with()
    source_dir = source or settings.output_dir

    try:
        target = parse_destination(destination)
        files = upload_files(
            source_dir,
            destination,
            extra_files=[settings.compose_file.name, settings.dockerfile.name],
        )
    except ImagePackError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(code=1) from None

    console.print(f"[green]✅ 上传完成！ ({len(files)} 个文件)[/green]")
    console.print("接下来在服务器上执行:")
    console.print(f"  ssh {escape(target.server)}")
    console.print(f"  cd {escape(target.remote_path.rstrip('/') or '/')}")
    console.print("  ./load-all-images.sh")


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = _settings_with()
    if json_output:
        typer.echo(print_settings_json(settings))
        return

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Image:[/bold]")
    console.print(f"  Image name:          {settings.image_name}")
    console.print(f"  Image tag:           {settings.image_tag}")
    console.print(f"  Platform:            {settings.platform}")
    console.print(f"  Title:               {escape(settings.title)}")
    console.print()
    console.print("[bold]Paths:[/bold]")
    console.print(f"  Dockerfile:          {settings.dockerfile}")
    console.print(f"  Build context:       {settings.build_context}")
    console.print(f"  Compose file:        {settings.compose_file}")
    console.print(f"  Output directory:    {settings.output_dir}")
    build_log_display = str(settings.build_log) if settings.build_log else "(terminal)"
    console.print(f"  Build log:           {build_log_display}")
    console.print()
    console.print("[bold]Tools:[/bold]")
    console.print(f"  Engine:              {settings.engine}")
    console.print(f"  Compose command:     {settings.compose_command}")
    console.print()
    console.print("[bold]Deployment:[/bold]")
    console.print(f"  Data directory:      {settings.data_dir}")
    console.print(f"  Service URL:         {settings.service_url}")
    console.print()
    console.print("[bold]Operational:[/bold]")
    console.print(f"  Log level:           {settings.log_level}")


if __name__ == "__main__":
    app()
