"""Exception types raised at the data-acquisition boundary."""

from __future__ import annotations

NO_HOME_MESSAGE = "Home location not set. Save a home location on your account to see incidents near you."


class IncidentMapError(Exception):
    """Base class for incident map errors."""


class InvalidCoordinate(IncidentMapError, ValueError):
    """Raised when a record carries a missing or non-finite latitude/longitude."""


class NoHomeProfile(IncidentMapError):
    """The near dataset was requested but the user has no saved home location."""

    def __init__(self, message: str = NO_HOME_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class StaleResult(IncidentMapError):
    """A fetch finished after the state it was started for was superseded."""

    def __init__(self, generation: int, current: int) -> None:
        super().__init__(f"generation {generation} superseded by {current}")
        self.generation = generation
        self.current = current


class DataSourceError(IncidentMapError):
    """The backend could not be reached or answered with an error."""


class NotAuthenticated(DataSourceError):
    """No bearer token is available for a user-scoped request."""
