"""Exceptions raised by the FSR editor and export pipeline."""


class FsrError(Exception):
    """Base class for every error this package raises on purpose."""


class ConfigurationError(FsrError, ValueError):
    """Invalid scale factor or page geometry."""


class EmptySurfaceError(ConfigurationError):
    """The captured surface has no pixels to paginate."""


class UnknownFieldError(FsrError, KeyError):
    """A mutator was handed a field or flag that its section does not have."""

    def __str__(self):
        return str(self.args[0]) if self.args else ""


class RecordImportError(FsrError, ValueError):
    """A JSON snapshot could not be read into a record."""


class MediaReadError(FsrError, OSError):
    """An uploaded file could not be read or is not an image."""


class CaptureError(FsrError, RuntimeError):
    """The headless browser failed to render the preview."""


class PageEncodeError(FsrError, RuntimeError):
    """A page raster or the assembled document could not be encoded."""


class ExportInProgressError(FsrError, RuntimeError):
    """Another export is still running."""


class InvalidFieldValueError(FsrError, ValueError):
    """A mutator was handed a value of the wrong shape for its field."""
