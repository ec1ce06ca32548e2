"""Container engine module.

This module handles:
- Composing engine commands (build, inspect, images, save, load)
- Executing them with subprocess
- Environment checks and architecture verification
"""

from imagepack.engine.service import (
    BuildResult,
    ExportResult,
    build_image,
    check_environment,
    export_image,
    load_archive,
    verify_architecture,
)

__all__ = [
    "BuildResult",
    "ExportResult",
    "build_image",
    "check_environment",
    "export_image",
    "load_archive",
    "verify_architecture",
]
