class GalleryError(Exception):
    """Base class for failures that map onto an HTTP response."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UploadValidationError(GalleryError):
    """Missing, oversize or non-image upload. Nothing is kept on disk."""

    status_code = 400


class TranscodeError(GalleryError):
    status_code = 500


class PersistenceError(GalleryError):
    """The metadata file could not be read or written."""

    status_code = 500
