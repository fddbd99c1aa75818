"""
JWT assertion signing for GitHub App authentication.

The app's private key signs a short-lived JWT. The JWT proves that the
caller controls the app and is exchanged once for an installation
access token.

Reference:
docs.github.com/en/apps/creating-github-apps/authenticating-with-a-github-app/generating-a-json-web-token-jwt-for-a-github-app
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Optional

import jwt
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.serialization import load_pem_private_key

from github_app_auth.core.params import GithubAuthParams
from github_app_auth.exceptions import KeySigningError, TimeError

logger = logging.getLogger(__name__)

# Validity window of the assertion in seconds; must exceed the exchange
# round trip or GitHub rejects it
ASSERTION_LIFETIME = 60

JWT_ALGORITHM = "RS256"


@dataclass(frozen=True)
class JwtClaims:
    """
    Claims carried by the signed assertion.

    Attributes
    ----------
    iat : int
        Time the JWT was issued (Unix seconds)
    exp : int
        JWT expiration time, always iat + 60
    iss : str
        GitHub App's identifier, sent as a string
    """

    iat: int
    exp: int
    iss: str

    @classmethod
    def new(
        cls, params: GithubAuthParams, now: Optional[float] = None
    ) -> "JwtClaims":
        """
        Build claims valid for one minute starting at `now`.

        Parameters
        ----------
        params : GithubAuthParams
            Authentication parameters (only app_id is used)
        now : float, optional
            Unix timestamp; defaults to the current system time

        Returns
        -------
        JwtClaims
            Fresh claims

        Raises
        ------
        TimeError
            If the clock reports a time before the Unix epoch
        """
        if now is None:
            now = time.time()
        if now < 0:
            raise TimeError(f"System clock is before the Unix epoch: {now}")

        issued_at = int(now)
        return cls(
            iat=issued_at,
            exp=issued_at + ASSERTION_LIFETIME,
            iss=str(params.app_id),
        )

    def to_dict(self) -> dict:
        """Return claims as a JWT payload."""
        return asdict(self)


def load_private_key(private_key: bytes) -> RSAPrivateKey:
    """
    Parse PEM bytes as an RSA private key.

    Parameters
    ----------
    private_key : bytes
        PEM-encoded key material

    Returns
    -------
    RSAPrivateKey
        Parsed key

    Raises
    ------
    KeySigningError
        If the bytes are not an unencrypted RSA private key
    """
    try:
        key = load_pem_private_key(private_key, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise KeySigningError(f"Could not parse private key: {e}") from e

    if not isinstance(key, RSAPrivateKey):
        raise KeySigningError(
            f"Private key must be an RSA key, got {type(key).__name__}"
        )
    return key


def build_assertion(
    params: GithubAuthParams, now: Optional[float] = None
) -> str:
    """
    Create a signed JWT assertion for the GitHub App.

    A new assertion is built on every call; nothing is cached, so
    iat/exp always reflect the time of the call.

    Parameters
    ----------
    params : GithubAuthParams
        Authentication parameters
    now : float, optional
        Unix timestamp; defaults to the current system time

    Returns
    -------
    str
        Compact JWS encoding (header.payload.signature, base64url)

    Raises
    ------
    KeySigningError
        If the private key is invalid or signing fails
    TimeError
        If the system clock is before the Unix epoch

    Examples
    --------
    >>> assertion = build_assertion(params)
    >>> assertion.count(".")
    2
    """
    claims = JwtClaims.new(params, now)
    key = load_private_key(params.private_key)

    try:
        assertion = jwt.encode(claims.to_dict(), key, algorithm=JWT_ALGORITHM)
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        raise KeySigningError(f"Failed to sign JWT assertion: {e}") from e

    logger.debug(f"Signed JWT assertion for app {params.app_id} (exp={claims.exp})")
    return assertion
