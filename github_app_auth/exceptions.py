"""
Custom exceptions for github-app-auth.

This module defines all custom exceptions used throughout the package.
All exceptions inherit from AuthError so callers can catch every
authentication failure with a single except clause.
"""


class AuthError(Exception):
    """
    Base exception for all github-app-auth errors.

    None of these errors are retried internally. The caller decides
    whether to retry, back off or abort.

    Examples
    --------
    >>> try:
    ...     header = token.header()
    ... except AuthError as e:
    ...     print(f"Authentication failed: {e}")
    """

    pass


class KeySigningError(AuthError):
    """
    Error creating the signed JWT assertion.

    Raised when the private key cannot be parsed as an RSA private key,
    or when the signing operation itself fails.

    Examples
    --------
    >>> raise KeySigningError("Could not parse private key: bad PEM data")
    """

    pass


class HeaderEncodingError(AuthError):
    """
    The access token cannot be encoded as an HTTP header value.

    Should not happen with well-formed responses from GitHub.
    """

    pass


class TransportError(AuthError):
    """
    Error talking to the token exchange endpoint.

    Raised for network failures, timeouts, non-success HTTP status codes
    and response bodies that do not contain a usable token.

    Attributes
    ----------
    status_code : int, optional
        HTTP status code if the server responded.

    Examples
    --------
    >>> raise TransportError("Token exchange failed: 401 Unauthorized", status_code=401)
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TimeError(AuthError):
    """
    Something very unexpected happened with time itself.

    Raised when the system clock reports a time before the Unix epoch,
    or appears to have moved backward past the moment the current token
    was obtained.
    """

    pass


class ConfigurationError(AuthError):
    """
    Error loading authentication parameters.

    Raised by the environment and file loaders of GithubAuthParams when
    a value is missing or malformed. Never raised by the token exchange.

    Examples
    --------
    >>> raise ConfigurationError("GITHUB_APP_ID is not set")
    """

    pass
