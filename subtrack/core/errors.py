"""SubTrack — Pipeline Errors."""


class StructuralFailure(Exception):
    """Raised when an input batch cannot be processed at all.

    Row-level problems never raise; they degrade the row to safe defaults.
    This is reserved for inputs that are not iterable, or batches where a
    required column is missing from every row.
    """

    def __init__(self, message: str, platform: str = ""):
        self.platform = platform
        super().__init__(message)
