"""
Errors raised by the Agent Analytics client.

Everything derives from AnalyticsError, so CLI commands catch that one class
and print the message. API errors keep the HTTP status of the reply.
"""


class AnalyticsError(Exception):
    """Any failure talking to the analytics API"""


class AnalyticsAPIError(AnalyticsError):
    """The API replied with an error status

    The message is the body's "error" field when the server sent one,
    otherwise "HTTP <status>".
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AnalyticsNotFoundError(AnalyticsAPIError):
    """Unknown project, experiment or endpoint (404)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=404)


class AnalyticsAuthenticationError(AnalyticsAPIError):
    """Missing, revoked or mistyped API key (401)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=401)


class AnalyticsConnectionError(AnalyticsError):
    """No reply at all: DNS failure, refused connection or timeout"""
