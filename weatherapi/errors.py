"""Error types shared by the provider and the lookup service."""


class UpstreamError(Exception):
    """The forecast provider failed (network, status, timeout or payload)."""


class UpstreamUnavailable(Exception):
    """No cached forecast exists and the provider failed.

    The only failure a caller of ``ForecastLookup.lookup`` ever sees.
    """

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidRequest(Exception):
    """A query parameter is missing, unparsable or out of range (HTTP 400)."""

    def __init__(self, error: str, details: str):
        super().__init__(error)
        self.error = error
        self.details = details
