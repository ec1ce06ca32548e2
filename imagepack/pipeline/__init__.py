"""Build pipeline module.

This module handles:
- Artifact packaging and manifest generation
- Running the build -> verify -> export -> package -> scripts stages

Access the stage runner via imagepack.pipeline.service; it is not imported
here to avoid a circular import with imagepack.scripts.
"""

from imagepack.pipeline.packager import (
    MANIFEST_FILENAME,
    format_size,
    generate_manifest,
    read_manifest,
)

__all__ = ["MANIFEST_FILENAME", "format_size", "generate_manifest", "read_manifest"]
