"""Deployment helpers.

Python counterparts of the generated upload and load scripts.
"""

from imagepack.deploy.loader import LoadReport, find_archives, load_archives, run_load
from imagepack.deploy.uploader import parse_destination, upload

__all__ = [
    "LoadReport",
    "find_archives",
    "load_archives",
    "parse_destination",
    "run_load",
    "upload",
]
