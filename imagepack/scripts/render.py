"""Rendering of the deployment helper scripts.

Two bash scripts are generated next to the exported archive:
- upload-all-images.sh: push archives and deployment files to a server
- load-all-images.sh: load every archive on the server, then optionally
  start services and remove the archives

Templates live in ``imagepack/scripts/templates`` and are rendered with
Jinja2. Bash uses ``{#`` for array lengths, so template comments use
``<#- ... -#>`` instead of the Jinja2 default.
"""

from __future__ import annotations

import logging
import shlex
import stat
from dataclasses import dataclass, field
from pathlib import Path

from jinja2 import Environment, PackageLoader, StrictUndefined

from imagepack import __version__
from imagepack.config import Settings
from imagepack.pipeline.packager import MANIFEST_FILENAME

logger = logging.getLogger(__name__)

UPLOAD_SCRIPT_NAME = "upload-all-images.sh"
LOAD_SCRIPT_NAME = "load-all-images.sh"

LOADED_IMAGES_FORMAT = "  {{.Repository}}:{{.Tag}}\t{{.Size}}"

# rwxr-xr-x
SCRIPT_MODE = (
    stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH
)


@dataclass
class ScriptParams:
    """Values substituted into the script templates.

    Attributes:
        title: Project title shown in banners.
        image_name: Repository name listed after loading.
        engine: Container engine executable on the server.
        compose_command: Orchestration command on the server.
        compose_file_name: Compose descriptor expected beside the scripts.
        data_dir: Data directory created before starting services.
        service_url: URL printed after services start; empty to omit.
        extra_files: Configuration files uploaded alongside the archives.
    """

    title: str
    image_name: str
    engine: str = "docker"
    compose_command: str = "docker-compose"
    compose_file_name: str = "docker-compose.yml"
    data_dir: str = "~/mineru/output"
    service_url: str = ""
    extra_files: list[str] = field(default_factory=list)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        extra_files: list[str] | None = None,
    ) -> ScriptParams:
        """Build parameters from settings.

        Args:
            settings: Application settings.
            extra_files: Names of copied configuration files. Defaults to the
                compose descriptor and build file names.
        """
        if extra_files is None:
            extra_files = [settings.compose_file.name, settings.dockerfile.name]
        return cls(
            title=settings.title,
            image_name=settings.image_name,
            engine=settings.engine,
            compose_command=settings.compose_command,
            compose_file_name=settings.compose_file.name,
            data_dir=settings.data_dir,
            service_url=settings.service_url,
            extra_files=extra_files,
        )


def shell_path(path: str) -> str:
    """Quote a path for bash, keeping a leading ``~/`` expandable."""
    if path == "~":
        return '"$HOME"'
    if path.startswith("~/"):
        return '"$HOME"/' + shlex.quote(path[2:])
    return shlex.quote(path)


def _environment() -> Environment:
    env = Environment(
        loader=PackageLoader("imagepack.scripts", "templates"),
        undefined=StrictUndefined,
        comment_start_string="<#-",
        comment_end_string="-#>",
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.filters["shquote"] = shlex.quote
    return env


def render_upload_script(params: ScriptParams) -> str:
    """Render the upload script text."""
    template = _environment().get_template(f"{UPLOAD_SCRIPT_NAME}.j2")
    return template.render(
        version=__version__,
        title=params.title,
        remote_example=params.image_name.replace("-", "_"),
        manifest_name=MANIFEST_FILENAME,
        load_script_name=LOAD_SCRIPT_NAME,
        extra_files=params.extra_files,
    )


def render_load_script(params: ScriptParams) -> str:
    """Render the server-side load script text."""
    template = _environment().get_template(f"{LOAD_SCRIPT_NAME}.j2")
    return template.render(
        version=__version__,
        title=params.title,
        engine=params.engine,
        compose_command=params.compose_command,
        image_name=params.image_name,
        images_format=LOADED_IMAGES_FORMAT,
        compose_file_name=params.compose_file_name,
        data_dir_shell=shell_path(params.data_dir),
        service_url=params.service_url,
    )


def write_script(path: Path, content: str) -> Path:
    """Write a script and mark it executable."""
    path.write_text(content, encoding="utf-8")
    path.chmod(SCRIPT_MODE)
    logger.info("Wrote script %s", path)
    return path


def write_scripts(output_dir: Path, params: ScriptParams) -> list[Path]:
    """Render and write both helper scripts into a directory.

    Returns:
        Paths of the upload and load scripts, in that order.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    return [
        write_script(output_dir / UPLOAD_SCRIPT_NAME, render_upload_script(params)),
        write_script(output_dir / LOAD_SCRIPT_NAME, render_load_script(params)),
    ]


__all__ = [
    "LOAD_SCRIPT_NAME",
    "SCRIPT_MODE",
    "UPLOAD_SCRIPT_NAME",
    "ScriptParams",
    "render_load_script",
    "render_upload_script",
    "shell_path",
    "write_script",
    "write_scripts",
]
