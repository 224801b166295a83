"""
Exceptions raised by the attention pipeline.

Only resource acquisition can fail; per-frame computation recovers locally.
"""


class FocusLensError(Exception):
    """Base class for FocusLens errors."""


class ResourceUnavailableError(FocusLensError):
    """Camera or landmark detector could not be acquired."""

    def __init__(self, resource: str, reason: str = ""):
        self.resource = resource
        self.reason = reason
        message = f"{resource} unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message)
