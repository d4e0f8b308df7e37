"""Exception hierarchy for IFC export.

Every fatal condition aborts the whole export: the writer is discarded and no
partial file is produced. Callers report the error to the user.
"""

from __future__ import annotations


class IFCExportError(Exception):
    """Base exception for all export errors."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class EmptyModelError(IFCExportError):
    """Raised when the model has no storeys to export."""


class AssemblyNotFoundError(IFCExportError):
    """Raised when a floor or wall assembly id cannot be resolved."""


class ProfileError(IFCExportError):
    """Raised when a profile ring has too few distinct points."""


class DanglingReferenceError(IFCExportError):
    """Raised when a `#id` reference points at an entity that was never written."""

    def __init__(self, dangling: list[tuple[int, int]]) -> None:
        listed = ", ".join(f"#{src}->#{ref}" for src, ref in dangling[:10])
        super().__init__(
            f"{len(dangling)} dangling reference(s): {listed}",
            details={"count": str(len(dangling))},
        )
        self.dangling = dangling


class StepParseError(IFCExportError):
    """Raised when STEP parameter text cannot be decoded."""
