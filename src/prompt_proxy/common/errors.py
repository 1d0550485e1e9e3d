"""Error types mapped onto JSON error responses."""
from __future__ import annotations
from typing import Optional


class ProxyError(Exception):
    """A failure with a client-facing message and HTTP status.

    `detail` carries internals (exception text, upstream payloads) and is only
    rendered outside production.
    """

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.detail = detail


class ValidationFailed(ProxyError):
    status_code = 400


class BodyTooLarge(ProxyError):
    status_code = 413


class AdmissionDenied(ProxyError):
    status_code = 429


class ConfigurationMissing(ProxyError):
    status_code = 500


class UpstreamUnavailable(ProxyError):
    status_code = 500


class UpstreamRateLimited(ProxyError):
    status_code = 429


class UpstreamRejected(ProxyError):
    pass


class UpstreamFormatError(ProxyError):
    status_code = 500
