"""Exception hierarchy for the pixel orchestration CLI."""

from __future__ import annotations

from typing import Optional

from pixel.schemas import ProcessOutcome


class PixelError(Exception):
    """Base exception for all pixel errors."""

    pass


class ProcessError(PixelError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, exit_code: int, stderr: str = "", outcome: Optional[ProcessOutcome] = None) -> None:
        super().__init__(f"Exit with error code {exit_code}")
        self.exit_code = exit_code
        self.stderr = stderr
        self.outcome = outcome or ProcessOutcome.from_exit_code(exit_code)


class DiffsFoundError(ProcessError):
    """Raised by interactive runs when the regression tool reported differences."""

    pass


class UnknownGroupError(PixelError):
    """Raised when a group name is not registered."""

    def __init__(self, name: str, a11y: bool = False) -> None:
        table = "accessibility" if a11y else "standard"
        super().__init__(f"Unknown {table} group '{name}'")
        self.name = name
        self.a11y = a11y


class BranchResolutionError(PixelError):
    """Raised when a remote repository returns no matching refs."""

    pass


class ReportAnnotationError(PixelError):
    """Raised internally when a report cannot be annotated. Never escapes the annotator."""

    pass


class ContextPersistenceError(PixelError):
    """Raised when the run context file cannot be written."""

    pass
