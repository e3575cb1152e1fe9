class FaceSwapError(Exception):
    """Base class for every error raised by the face swap pipeline."""


class InvalidDimensions(FaceSwapError, ValueError):
    """Image width or height is not a positive integer."""


class ExtractionError(FaceSwapError):
    """Source region cannot be cut out of the source image."""


class CompositeError(FaceSwapError):
    """Face patch cannot be placed inside the target image."""


class UnreadableImage(FaceSwapError):
    """Uploaded bytes could not be decoded as an image."""


class InvalidBatch(FaceSwapError):
    """Batch is malformed: no source, no targets, or too many targets."""


class UnsupportedFormat(FaceSwapError):
    """File extension is not one of the accepted image types."""


class FileTooLarge(FaceSwapError):
    """Uploaded file exceeds the per-file size cap."""


class StorageError(FaceSwapError):
    """Writing to or reading from the ephemeral store failed."""
