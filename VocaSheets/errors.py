"""
Exceptions raised by the VocaSheets core.

Import problems reach the user as an alert. Playback problems never leave the
playback controller: they are logged and the item counts as finished.
"""


class VocaSheetsError(Exception):
    """Base exception for VocaSheets errors."""
    pass


class ImportParseError(VocaSheetsError):
    """Raised when pasted import text contains no usable line."""

    def __init__(self, message: str = "Could not parse data. Ensure format matches the example."):
        super().__init__(message)


class PlaybackError(VocaSheetsError):
    """Raised when audio for one entry cannot be fetched, decoded or started."""

    def __init__(self, message: str, phrase: str = ""):
        self.phrase = phrase
        super().__init__(message)
