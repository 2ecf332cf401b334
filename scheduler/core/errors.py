"""Error kinds raised by the scheduling engine.

Callers (the HTTP routes) decide how each kind is presented; the engine never
retries or recovers on its own.
"""


class SchedulingError(Exception):
    """Base class for every failure the engine reports to its caller."""

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ValidationError(SchedulingError):
    """Malformed input: bad duration, end before start, unknown status."""


class UnavailableError(SchedulingError):
    """The range is outside configured availability or inside a blocked range."""


class ConflictError(SchedulingError):
    """The range overlaps an existing active appointment."""


class NotFoundError(SchedulingError):
    """A referenced provider, window, block or appointment does not exist."""


class StateError(SchedulingError):
    """The appointment's current status does not allow the requested change."""
