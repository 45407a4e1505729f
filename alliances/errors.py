"""Structured error hierarchy for the alliance decision engine."""


class AllianceError(Exception):
    """Base for all alliance engine errors."""

    pass


class ValidationError(AllianceError):
    """Input validation at boundary failed."""

    pass


class SerializationError(AllianceError):
    """Decision memory or checkpoint serialization/deserialization failed."""

    pass


class SchedulerStateError(AllianceError):
    """Scheduler in invalid state for requested operation."""

    pass
