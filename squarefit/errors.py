from __future__ import annotations


class SquarefitError(RuntimeError):
    """Base class for pipeline failures that are reported per image."""


class ExtractionError(SquarefitError):
    """No background-removal tier produced an image."""


class FetchError(SquarefitError):
    """A remote source could not be downloaded."""
