"""
Error taxonomy for the Leafdoc AI Service.

Each error carries the HTTP status and the message that is safe to show a
client. Internal detail (parser messages, upstream exceptions) stays on the
exception for logging only.
"""
from typing import Optional


class LeafdocError(Exception):
    """Base class for errors mapped to an HTTP response."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, detail: str = "", public_message: Optional[str] = None):
        super().__init__(detail or self.public_message)
        self.detail = detail
        if public_message is not None:
            self.public_message = public_message


class InvalidRequestError(LeafdocError):
    """Required input is missing or unusable. Always the caller's to fix."""

    status_code = 400

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message, public_message=message)
        self.status_code = status_code


class GatewayError(LeafdocError):
    """The external completion call failed (network, auth, quota, timeout)."""


class ExtractionError(LeafdocError):
    """The model reply could not be turned into a diagnosis record."""

    public_message = "AI analysis failed"


class NoJsonFound(ExtractionError):
    """No {...} span in the model reply."""


class MalformedJson(ExtractionError):
    """A {...} span was found but did not parse as a JSON object."""

    def __init__(self, parser_message: str):
        super().__init__(f"Malformed JSON in model response: {parser_message}")
        self.parser_message = parser_message
