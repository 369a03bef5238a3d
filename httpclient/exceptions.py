from typing import Optional


class HttpClientError(Exception):
    """Base exception for errors raised by the HTTP client."""
    pass


class MalformedUrlError(HttpClientError):
    """Raised when a request URL cannot be turned into a request."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class UnsupportedAuthenticationMethodError(HttpClientError, ValueError):
    """Raised when an authentication method other than basic or digest is used."""

    def __init__(self, method):
        super().__init__(f"Invalid authentication method set ({method}), expected basic or digest")
        self.method = method


class TransportError(HttpClientError):
    """Raised when the transport fails to exchange a request with the server."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ResponseParseError(HttpClientError):
    """Raised when raw response data is not a valid HTTP response."""
    pass


class CookieParseError(HttpClientError):
    """Raised when a Set-Cookie value cannot be parsed."""

    def __init__(self, message: str, header: Optional[str] = None):
        super().__init__(message)
        self.header = header
