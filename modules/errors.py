"""Error taxonomy shared by the service adapter and the orchestrator."""

from __future__ import annotations


class LabelStudioError(Exception):
    """Base class for recoverable failures surfaced to the user."""


class InputError(LabelStudioError):
    """Unreadable upload or a missing precondition (e.g. nothing to refine)."""


class ServiceError(LabelStudioError):
    """The remote call failed, timed out, or returned no usable payload."""


class ValidationError(LabelStudioError):
    """A structured response did not match the expected shape."""
