# errors.py
# Exception hierarchy for the navigation engine.


class NavigationError(Exception):
    """Base class for every error raised by the engine."""


class RouteFindingError(NavigationError):
    """A route could not be obtained from a provider response."""


class MalformedPolyline(RouteFindingError):
    """Encoded polyline is truncated or contains invalid characters."""


class NoRouteFound(RouteFindingError):
    """Provider returned no usable route."""


class EmptyRoute(NavigationError):
    """A geometric operation was asked to work on an empty polyline."""


class InsufficientRoute(NavigationError):
    """Route lacks the points or steps needed to navigate."""


class InvalidStateTransition(NavigationError, RuntimeError):
    """Operation invoked in a session state that does not permit it."""

    def __init__(self, operation: str, status, mode=None) -> None:
        self.operation = operation
        self.status = status
        self.mode = mode
        where = f"{status.name}" if mode is None else f"{status.name}/{mode.name}"
        super().__init__(f"'{operation}' is not allowed in state {where}")


class DirectionsError(NavigationError):
    """Transport-level failure talking to the directions provider."""
