"""
Pytest configuration and shared fixtures.

This module contains pytest fixtures and configuration that are shared
across all test modules.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from github_app_auth.core.params import GithubAuthParams

# Fixed "current time" used by simulated clocks (2016-07-11T21:14:10Z)
NOW = 1468271650.0


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """Generate an RSA key once per test session."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key) -> bytes:
    """
    Provide a PEM-encoded RSA private key.

    Returns
    -------
    bytes
        Unencrypted PKCS#8 PEM
    """
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture(scope="session")
def ec_private_key_pem() -> bytes:
    """Provide a valid PEM private key that is not RSA."""
    key = ec.generate_private_key(ec.SECP256R1())
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@pytest.fixture
def auth_params(private_key_pem) -> GithubAuthParams:
    """
    Provide authentication parameters with a valid key.

    Returns
    -------
    GithubAuthParams
        Parameters for app 1234, installation 5678
    """
    return GithubAuthParams(
        user_agent="github-app-auth-tests",
        private_key=private_key_pem,
        installation_id=5678,
        app_id=1234,
    )


class FakeClock:
    """Settable clock returning Unix timestamps."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Provide a simulated clock starting at NOW."""
    return FakeClock()


def iso(timestamp: float) -> str:
    """Format a Unix timestamp as GitHub does (RFC 3339, Z suffix)."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(
        "%Y-%m-%dT%H:%M:%SZ"
    )


def build_response(json_data=None, status_code: int = 201) -> Mock:
    """
    Build a mocked requests.Response.

    Parameters
    ----------
    json_data : dict, optional
        Decoded body returned by .json()
    status_code : int, optional
        HTTP status; >= 400 makes raise_for_status() raise HTTPError

    Returns
    -------
    Mock
        Response mock
    """
    response = Mock(spec=requests.Response)
    response.status_code = status_code
    response.json = Mock(return_value=json_data)
    if status_code >= 400:
        response.raise_for_status = Mock(
            side_effect=requests.HTTPError(
                f"{status_code} Client Error", response=response
            )
        )
    else:
        response.raise_for_status = Mock(return_value=None)
    return response


def build_token_response(token: str, expires_in: float, now: float = NOW) -> Mock:
    """Build a successful access token response expiring `expires_in` after now."""
    return build_response({"token": token, "expires_at": iso(now + expires_in)})


@pytest.fixture
def now() -> float:
    """Provide the Unix timestamp the simulated clock starts at."""
    return NOW


@pytest.fixture
def make_response():
    """Provide the build_response() factory for mocked responses."""
    return build_response


@pytest.fixture
def token_response():
    """Provide the build_token_response() factory for access token responses."""
    return build_token_response


@pytest.fixture
def mock_session() -> Mock:
    """
    Provide a mocked requests.Session.

    The first POST returns token "v1.first" valid for one hour.
    """
    session = Mock(spec=requests.Session)
    session.headers = {}
    session.post = Mock(
        return_value=build_token_response(
            "v1.first", timedelta(hours=1).total_seconds()
        )
    )
    return session
