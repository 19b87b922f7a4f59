"""
Failure taxonomy for the relay.

Every way a relay call can fail maps to exactly one subclass of RelayError.
Each subclass carries the HTTP status the web layer should answer with, so
the mapping lives next to the classification rather than in the route.

    BadRequest               400  caller must fix the request; never retried
    ConfigError              500  deployment is missing its credential
    TransientUpstreamFailure 502  upstream kept failing until retries ran out
    UpstreamError            502  upstream answered but with nothing usable
    TransportError           500  anything unexpected during the flow
"""


class RelayError(Exception):
    """
    Base class for all classified relay failures.

    Attributes:
        kind:        Stable name of the failure class, used in logs.
        status_code: HTTP status the web layer responds with.
        message:     Human-readable summary returned as "error".
        details:     Optional diagnostic text returned as "details".
    """

    kind: str = "RelayError"
    status_code: int = 500

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, str]:
        """Body of the JSON error response."""
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class BadRequest(RelayError):
    kind = "BadRequest"
    status_code = 400


class ConfigError(RelayError):
    kind = "ConfigError"
    status_code = 500


class TransientUpstreamFailure(RelayError):
    """
    Raised once the retry budget is spent.

    The message is the last attempt's error detail verbatim, never an
    earlier one, so callers see the failure that actually ended the loop.
    """

    kind = "TransientUpstreamFailure"
    status_code = 502

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts

    def to_dict(self) -> dict[str, str]:
        return {
            "error": f"Gemini API unavailable after {self.attempts} attempts.",
            "details": self.message,
        }


class UpstreamError(RelayError):
    kind = "UpstreamError"
    status_code = 502

    def to_dict(self) -> dict[str, str]:
        return {"error": f"Gemini API Error: {self.message}"}


class TransportError(RelayError):
    kind = "TransportError"
    status_code = 500

    def to_dict(self) -> dict[str, str]:
        return {"error": "Failed to communicate with the Gemini API.", "details": self.message}
