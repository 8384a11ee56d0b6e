"""Error taxonomy shared by the CLI, the dashboard and the core."""

from __future__ import annotations


class WorkTimerError(Exception):
    """Base class for recoverable errors surfaced to the user."""

    code = "error"


class AlreadyRunning(WorkTimerError):
    code = "already_running"

    def __init__(self, message: str = "A timer is already running") -> None:
        super().__init__(message)


class NotRunning(WorkTimerError):
    code = "not_running"

    def __init__(self, message: str = "No timer is currently running") -> None:
        super().__init__(message)


class NotPaused(WorkTimerError):
    code = "not_paused"

    def __init__(self, message: str = "Can only resume a paused timer") -> None:
        super().__init__(message)


class NotFound(WorkTimerError):
    code = "not_found"


class NothingToUndo(WorkTimerError):
    code = "nothing_to_undo"

    def __init__(self, message: str = "Nothing to undo") -> None:
        super().__init__(message)


class NothingToRedo(WorkTimerError):
    code = "nothing_to_redo"

    def __init__(self, message: str = "Nothing to redo") -> None:
        super().__init__(message)


class IoFailure(WorkTimerError):
    """Reading or writing a persisted file failed."""

    code = "io_failure"


class Malformed(WorkTimerError):
    """A persisted file exists but could not be parsed."""

    code = "malformed"
