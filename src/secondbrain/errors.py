class SecondBrainError(Exception):
    """Base class for capture errors."""


class NoRootConfigured(SecondBrainError):
    """No data folder has been chosen yet."""


class ResolutionFailed(SecondBrainError):
    """The stored data folder can no longer be used (moved, deleted or not writable)."""


class PersistenceFailure(SecondBrainError):
    """Writing or copying a single item into the data folder failed."""

    def __init__(self, target: str, reason: str):
        super().__init__(f"Failed to save {target}: {reason}")
        self.target = target
        self.reason = reason
