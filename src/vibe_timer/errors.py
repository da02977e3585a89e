"""Error kinds raised by the vibe accounting core."""

from __future__ import annotations


class VibeError(Exception):
    """Base class for failures that should be shown to the user."""

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidVibeError(VibeError):
    kind = "invalid_vibe"


class DuplicateNameError(VibeError):
    kind = "duplicate_name"

    def __init__(self, name: str) -> None:
        super().__init__(f'A vibe named "{name}" already exists.')
        self.name = name


class NotFoundError(VibeError):
    kind = "not_found"


class ReadOnlyPeriodError(VibeError):
    """Raised for writes against any date other than today."""

    kind = "read_only_period"

    def __init__(self, date: str, action: str = "change timers") -> None:
        super().__init__(f"{date} is view only; you can only {action} for today.")
        self.date = date


class PersistenceError(VibeError):
    kind = "persistence_failure"
