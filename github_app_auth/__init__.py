"""
github-app-auth - Library for authenticating as a GitHub App.

This package signs a short-lived JWT with the app's private key,
exchanges it for an installation access token and refreshes that
token before it expires.

Example usage::

    from github_app_auth import GithubAuthParams, InstallationAccessToken

    # The token must be periodically refreshed; header() does that
    # automatically, but of course this operation can fail.
    token = InstallationAccessToken(GithubAuthParams(
        user_agent="my-cool-user-agent",
        private_key=b"my private key",
        installation_id=5678,
        app_id=1234,
    ))

    token.session.post("https://some-github-api-url", headers=token.header())
"""

from github_app_auth.auth.assertion import JwtClaims, build_assertion
from github_app_auth.auth.token import (
    InstallationAccessToken,
    RawInstallationAccessToken,
    get_installation_token,
)
from github_app_auth.core.params import GithubAuthParams
from github_app_auth.exceptions import (
    AuthError,
    ConfigurationError,
    HeaderEncodingError,
    KeySigningError,
    TimeError,
    TransportError,
)

__version__ = "3.0.1"

__all__ = [
    # Core
    "GithubAuthParams",
    # Auth
    "JwtClaims",
    "build_assertion",
    "InstallationAccessToken",
    "RawInstallationAccessToken",
    "get_installation_token",
    # Exceptions
    "AuthError",
    "KeySigningError",
    "HeaderEncodingError",
    "TransportError",
    "TimeError",
    "ConfigurationError",
    # Version
    "__version__",
]
