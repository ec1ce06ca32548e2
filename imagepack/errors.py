"""Exception hierarchy for imagepack.

Every failure that aborts the build pipeline derives from ImagePackError and
carries a short machine-readable ``code`` alongside the message.
"""


class ImagePackError(Exception):
    """Base error for imagepack operations."""

    def __init__(self, message: str, code: str = "imagepack_error") -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class EngineCommandError(ImagePackError):
    """Raised when a container engine command fails or cannot be started."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str = "engine_command_error",
    ) -> None:
        super().__init__(message, code=code)
        self.exit_code = exit_code


class EngineUnavailableError(ImagePackError):
    """Container engine daemon is not reachable."""

    def __init__(self, engine: str) -> None:
        super().__init__(
            f"Container engine is not running or not reachable: {engine}",
            code="engine_unavailable",
        )
        self.engine = engine


class ImageBuildError(EngineCommandError):
    """Image build exited with a non-zero status."""

    def __init__(self, image_ref: str, exit_code: int | None) -> None:
        super().__init__(
            f"Build of {image_ref} failed with exit code {exit_code}",
            exit_code=exit_code,
            code="build_failed",
        )
        self.image_ref = image_ref


class ArchitectureMismatchError(ImagePackError):
    """Built image reports a different architecture than requested."""

    def __init__(self, image_ref: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Architecture check failed for {image_ref}: "
            f"expected {expected}, got {actual or '(empty)'}",
            code="architecture_mismatch",
        )
        self.image_ref = image_ref
        self.expected = expected
        self.actual = actual


class ImageExportError(EngineCommandError):
    """Saving the image to an archive failed."""

    def __init__(self, image_ref: str, exit_code: int | None, detail: str = "") -> None:
        message = f"Export of {image_ref} failed with exit code {exit_code}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, exit_code=exit_code, code="export_failed")
        self.image_ref = image_ref


class NoArchivesError(ImagePackError):
    """No archive files were found to load."""

    def __init__(self, directory: str) -> None:
        super().__init__(
            f"No .tar archives found in {directory}",
            code="no_archives",
        )
        self.directory = directory


class UploadError(ImagePackError):
    """Transferring artifacts to the remote host failed."""

    def __init__(self, message: str, code: str = "upload_failed") -> None:
        super().__init__(message, code=code)


__all__ = [
    "ArchitectureMismatchError",
    "EngineCommandError",
    "EngineUnavailableError",
    "ImageBuildError",
    "ImageExportError",
    "ImagePackError",
    "NoArchivesError",
    "UploadError",
]
