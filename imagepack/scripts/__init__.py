"""Deployment script generation.

Renders the upload and server-side load scripts from Jinja2 templates
shipped with the package.
"""

from imagepack.scripts.render import (
    LOAD_SCRIPT_NAME,
    UPLOAD_SCRIPT_NAME,
    ScriptParams,
    write_scripts,
)

__all__ = ["LOAD_SCRIPT_NAME", "UPLOAD_SCRIPT_NAME", "ScriptParams", "write_scripts"]
