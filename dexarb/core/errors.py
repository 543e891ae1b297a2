"""Exception taxonomy for the round-trip arbitrage monitor."""


class ArbitrageError(Exception):
    """Base class for all monitor errors."""
    pass


class TokenResolutionError(ArbitrageError):
    """Raised when a token's metadata cannot be determined."""
    pass


class NoRouteError(ArbitrageError):
    """Raised when a venue has no viable path for a pair."""
    pass


class UpstreamError(ArbitrageError):
    """Raised when an RPC, quoter or price source call fails or times out."""
    pass


class ConfigurationError(ArbitrageError):
    """Raised for invalid configuration. Fatal at startup."""
    pass


# Errors that mean "no opportunity this cycle" rather than a system fault
CYCLE_ERRORS = (TokenResolutionError, NoRouteError, UpstreamError)
