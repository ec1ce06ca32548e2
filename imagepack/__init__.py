"""imagepack - build, verify and ship container images as archives.

This package wraps a container engine CLI to build an image for a pinned
platform, export it to a tar archive and package upload/load helpers for
offline deployment on a remote server.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
