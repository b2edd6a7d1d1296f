"""
Custom exception types for the Flow Production Tracking API client.

These exceptions allow callers to distinguish between failures
occurring during authentication, failures to reach the server,
rejections by the server and responses that could not be decoded.
Transport failures may be worth retrying; application rejections
generally are not.  The client itself never retries.
"""

from __future__ import annotations

from typing import Optional


class FlowError(Exception):
    """Base exception for all Flow client errors.

    Parameters
    ----------
    message : str
        Human readable description of the failure.
    status_code : int, optional
        HTTP status returned by the server, when a response was received.
    body : str, optional
        Raw response body text, when a response was received.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class FlowConfigError(FlowError, ValueError):
    """Raised when a required credential or setting is missing."""


class FlowTransportError(FlowError):
    """Raised when a request could not be sent or its response read."""


class FlowAuthError(FlowError):
    """Raised when authentication or token retrieval fails."""


class FlowAPIError(FlowError):
    """Raised when an entity endpoint returns an unexpected status."""


class FlowDecodeError(FlowError):
    """Raised when a response body is not the expected JSON shape."""


class FlowNotFoundError(FlowError):
    """Raised when a convenience lookup matches no entities."""
