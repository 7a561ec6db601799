"""Quote service error classes.

Every error raised inside the quote pipeline derives from QuoteError and is
rendered by the service boundary as ``{"success": false, "error": <message>}``.
"""


class QuoteError(Exception):
    """Base error for quote pipeline failures."""

    pass


class InvalidRequest(QuoteError):
    """Malformed or contradictory request fields."""

    pass


class InvalidProtocol(InvalidRequest):
    """Protocol filter contains an unknown protocol identifier."""

    pass


class InvalidFormat(InvalidRequest):
    """A structured string field does not follow its expected format."""

    pass


class UnknownToken(QuoteError):
    """Token identifier could not be resolved by any token provider."""

    pass


class NoRouteFound(QuoteError):
    """The routing engine found no viable route."""

    def __init__(self, message: str = "Could not find route") -> None:
        super().__init__(message)


class ServiceNotReady(QuoteError):
    """Bootstrap has not completed (or has failed)."""

    def __init__(
        self, message: str = "Service is still initializing. Please try again in a moment."
    ) -> None:
        super().__init__(message)


class UpstreamFailure(QuoteError):
    """Chain connection, provider, simulator or routing engine faulted."""

    pass
