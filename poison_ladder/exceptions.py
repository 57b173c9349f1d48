"""
Exception classes for the poison ladder system.

Centralized location for all custom exceptions to avoid circular imports.
"""


class LadderError(Exception):
    """Base exception for all ladder errors."""
    pass


class InvalidInput(LadderError):
    """Raised when contest scores or competitor input are malformed."""
    pass


class InvalidRank(LadderError):
    """Raised when a requested rank lies outside [1, N]."""
    pass


class CompetitorNotFound(LadderError):
    """Raised when a referenced competitor does not exist."""
    pass


class ContestNotFound(LadderError):
    """Raised when a referenced contest record does not exist."""
    pass


class CompetitorInUse(LadderError):
    """Raised when deleting a competitor that historical events still reference."""
    pass


class PersistenceFailure(LadderError):
    """Raised when the backing store fails to read or write."""
    pass


class ConfigurationError(LadderError):
    """Base exception for configuration-related errors."""
    pass


class EventNotFound(LadderError):
    """Raised when a referenced timeline event does not exist."""
    pass
