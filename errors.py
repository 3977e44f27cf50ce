"""
Exception taxonomy for the submission pipeline.

Every error carries an HTTP-style ``status_code`` so a transport layer can map
it without inspecting messages.
"""


class SubmissionError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SubmissionError):
    """Bad or missing input (assignment reference, file)."""
    status_code = 400


class NotFoundError(ValidationError):
    status_code = 404


class PermissionDeniedError(SubmissionError):
    status_code = 403


class StorageError(SubmissionError):
    """Object storage upload failed. Nothing was stored, nothing to undo."""
    status_code = 502


class RejectionError(SubmissionError):
    """Submission refused as off-topic. The stored file was already removed."""
    status_code = 400


class FailureError(SubmissionError):
    """Unhandled step failure. The stored file was already removed."""
    status_code = 500


# ── Text extraction ──────────────────────────────────────────────────────────

class ExtractionError(Exception):
    pass


class UnsupportedFormatError(ExtractionError):
    pass


class EmptyInputError(ExtractionError):
    pass


class FormatError(ExtractionError):
    """A format backend (PDF, DOCX) could not read the document."""
