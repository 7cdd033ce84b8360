"""
Error categories for the energy analytics engine.

Two families:
- Surfaced errors map to an HTTP status in the API layer.
- Ignorable errors are raised and caught internally so callers (and tests)
  can observe what was dropped without it ever reaching a client.
"""


class EnergyAnalyticsError(Exception):
    """Base class for all engine errors."""


# =============================================================================
# Surfaced
# =============================================================================


class InvalidRequestError(EnergyAnalyticsError):
    """A required request parameter is missing or malformed (HTTP 400)."""


class InvalidContractIdError(InvalidRequestError):
    """Contract identifier is not of the form 'address.name'."""


class UpstreamFetchError(EnergyAnalyticsError):
    """The chain-log provider was unreachable or returned an error."""


# =============================================================================
# Ignorable
# =============================================================================


class IgnorableError(EnergyAnalyticsError):
    """Errors that are logged or counted but never fail a request."""


class MalformedLogEntry(IgnorableError):
    """A raw event row is missing fields or cannot be decoded."""


class CacheUnavailableError(IgnorableError):
    """The key-value store could not be read or written."""


class PollFailure(IgnorableError):
    """A background pending-units poll failed."""
