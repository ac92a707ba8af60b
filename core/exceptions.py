"""Custom exception hierarchy for the ESI search proxy."""


class ProxyError(Exception):
    """Base exception for all proxy errors."""


class ConfigurationError(ProxyError):
    """Raised when configuration is missing or invalid."""


class AuthError(ProxyError):
    """Raised when an access token cannot be obtained from the SSO."""


class TokenExchangeFailed(AuthError):
    """The refresh token exchange was rejected or did not complete."""


class MalformedTokenResponse(AuthError):
    """The token endpoint answered with an empty or undecodable body."""


class TokenVerificationFailed(AuthError):
    """The freshly issued token was rejected by the verify endpoint."""


class DispatchError(ProxyError):
    """Raised when the upstream request could not be completed.

    Attributes:
        message: Error message
        status_code: HTTP status code from upstream (optional)
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamTimeoutError(DispatchError):
    """Raised when the upstream request times out."""


class UpstreamConnectionError(DispatchError):
    """Raised when unable to connect to the upstream."""


class ResponseTransformError(ProxyError):
    """Raised when an upstream body cannot be rewritten for a legacy route."""
