"""Personal work timer: day files, a shared active session and undo history."""

__version__ = "0.1.0"
