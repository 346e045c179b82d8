"""Error types surfaced to callers of the analytics engines and repositories."""


class ShelfSignalError(Exception):
    """Base class for ShelfSignal errors."""


class NotFoundError(ShelfSignalError, LookupError):
    """Raised when a product (or other keyed record) is absent from a snapshot."""

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind.capitalize()} {key} not found")
