from typing import List, Optional


class CardError(Exception):
    """Base class for card generation failures."""


class CardValidationError(CardError):
    """A required contact field is blank."""

    def __init__(self, missing: List[str], message: Optional[str] = None):
        self.missing = list(missing)
        super().__init__(message or f"Required fields missing: {', '.join(self.missing)}")


class EncodingError(CardError):
    """The vCard document could not be encoded as a QR symbol."""


class ExportError(CardError):
    """No symbol to export, or the image could not be encoded or written."""
