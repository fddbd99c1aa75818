"""
Installation access tokens for GitHub App authentication.

This module exchanges a signed JWT assertion for an installation access
token and keeps that token fresh. InstallationAccessToken is the main
entry point: it fetches a token on construction and transparently
refreshes it before it expires.

Reference:
docs.github.com/en/apps/creating-github-apps/authenticating-with-a-github-app/authenticating-as-a-github-app-installation
"""

import logging
import re
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import requests
from requests.exceptions import InvalidHeader
from requests.utils import check_header_validity

from github_app_auth.auth.assertion import build_assertion
from github_app_auth.core.params import GithubAuthParams
from github_app_auth.exceptions import (
    HeaderEncodingError,
    TimeError,
    TransportError,
)

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

MACHINE_MAN_PREVIEW = "application/vnd.github.machine-man-preview+json"

DEFAULT_TIMEOUT = 30  # seconds

DEFAULT_REFRESH_SAFETY_MARGIN = timedelta(minutes=1)

# Installation tokens live for an hour; used only when the response
# carries no expires_at
FALLBACK_TOKEN_LIFETIME = timedelta(minutes=55)

Clock = Callable[[], float]

_FRACTION_RE = re.compile(r"\.(\d+)")


def _parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime."""
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    # fromisoformat on 3.10 only takes 3 or 6 fractional digits
    value = _FRACTION_RE.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), value, count=1
    )
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class RawInstallationAccessToken:
    """
    Token returned by the access_tokens endpoint.

    Attributes
    ----------
    token : str
        Opaque installation access token
    expires_at : datetime
        Absolute expiry time (timezone-aware, UTC)
    """

    token: str
    expires_at: datetime

    @classmethod
    def parse(
        cls, data: Mapping, fetched_at: Optional[datetime] = None
    ) -> "RawInstallationAccessToken":
        """
        Build a token from the decoded JSON response.

        Parameters
        ----------
        data : Mapping
            Response body, e.g. {"token": "v1.abc", "expires_at": "2016-07-11T22:14:10Z"}
        fetched_at : datetime, optional
            When the token was requested. Used only if the response has
            no expires_at (default: now).

        Returns
        -------
        RawInstallationAccessToken
            Parsed token

        Raises
        ------
        TransportError
            If the body has no token or an unparseable expires_at
        """
        if not isinstance(data, Mapping):
            raise TransportError(f"Unexpected token response: {data!r}")

        token = data.get("token")
        if not isinstance(token, str) or not token:
            raise TransportError("No token in access token response")

        raw_expires_at = data.get("expires_at")
        if raw_expires_at is None:
            if fetched_at is None:
                fetched_at = datetime.now(timezone.utc)
            logger.warning(
                "Access token response has no expires_at, assuming "
                f"{FALLBACK_TOKEN_LIFETIME} lifetime"
            )
            return cls(token=token, expires_at=fetched_at + FALLBACK_TOKEN_LIFETIME)

        try:
            expires_at = _parse_timestamp(raw_expires_at)
        except (TypeError, ValueError, AttributeError) as e:
            raise TransportError(
                f"Invalid expires_at in access token response: {raw_expires_at!r}"
            ) from e

        return cls(token=token, expires_at=expires_at)


def get_installation_token(
    session: requests.Session,
    params: GithubAuthParams,
    now: Optional[float] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> RawInstallationAccessToken:
    """
    Use the app private key to generate a JWT and exchange it for
    an installation access token.

    Exactly one POST is sent; failures are not retried.

    Parameters
    ----------
    session : requests.Session
        HTTP session used for the request
    params : GithubAuthParams
        Authentication parameters
    now : float, optional
        Unix timestamp used for the JWT claims (default: current time)
    timeout : float, optional
        Request timeout in seconds (default: 30)

    Returns
    -------
    RawInstallationAccessToken
        Token and its expiry

    Raises
    ------
    KeySigningError
        If the JWT cannot be created
    TransportError
        If the request fails, returns a non-success status or
        the body is malformed
    TimeError
        If the system clock is before the Unix epoch
    """
    if now is None:
        now = time.time()
    assertion = build_assertion(params, now)

    url = f"{GITHUB_API_URL}/app/installations/{params.installation_id}/access_tokens"
    logger.debug(f"Requesting access token for installation {params.installation_id}")

    try:
        response = session.post(
            url,
            headers={
                "Authorization": f"Bearer {assertion}",
                "Accept": MACHINE_MAN_PREVIEW,
            },
            timeout=timeout,
        )
        response.raise_for_status()
    except requests.HTTPError as e:
        status_code = e.response.status_code if e.response is not None else None
        raise TransportError(
            f"Token exchange failed for installation {params.installation_id}: {e}",
            status_code=status_code,
        ) from e
    except requests.RequestException as e:
        raise TransportError(
            f"Token exchange failed for installation {params.installation_id}: {e}"
        ) from e

    try:
        data = response.json()
    except ValueError as e:
        raise TransportError(
            f"Access token response is not valid JSON: {e}",
            status_code=response.status_code,
        ) from e

    fetched_at = datetime.fromtimestamp(now, tz=timezone.utc)
    return RawInstallationAccessToken.parse(data, fetched_at)


class InstallationAccessToken:
    """
    An installation access token, refreshed automatically.

    The installation access token is the primary method for
    authenticating with the GitHub API as an application. A token is
    fetched on construction; header() refreshes it whenever it is within
    `refresh_safety_margin` of expiring.

    Instances are safe to share between threads: the freshness check,
    the refresh and the read of the token happen under one lock.

    Attributes
    ----------
    session : requests.Session
        Session used to refresh the token. Public so that callers can
        reuse it for their own requests; this is not required.
    refresh_safety_margin : timedelta
        Subtracted from the expiry to make it less likely that the token
        goes out of date just as a request is sent.
    timeout : float
        Timeout in seconds for the token exchange request.

    Examples
    --------
    >>> token = InstallationAccessToken(GithubAuthParams(
    ...     user_agent="my-cool-user-agent",
    ...     private_key=Path("app.pem").read_bytes(),
    ...     installation_id=5678,
    ...     app_id=1234,
    ... ))
    >>> token.session.get(
    ...     "https://api.github.com/repos/owner/repo", headers=token.header()
    ... )
    """

    def __init__(
        self,
        params: GithubAuthParams,
        session: Optional[requests.Session] = None,
        refresh_safety_margin: timedelta = DEFAULT_REFRESH_SAFETY_MARGIN,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Clock = time.time,
    ):
        """
        Fetch an installation access token.

        Parameters
        ----------
        params : GithubAuthParams
            Authentication parameters
        session : requests.Session, optional
            HTTP session to use. Its User-Agent is set to params.user_agent.
        refresh_safety_margin : timedelta, optional
            Early refresh margin (default: 1 minute)
        timeout : float, optional
            Token exchange timeout in seconds (default: 30)
        clock : callable, optional
            Returns the current Unix time (default: time.time)

        Raises
        ------
        AuthError
            If the initial token exchange fails
        """
        self._params = params
        self._clock = clock
        self._lock = threading.RLock()
        self.refresh_safety_margin = refresh_safety_margin
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = params.user_agent

        fetched_at = self._timestamp()
        raw = get_installation_token(
            self.session, params, now=fetched_at, timeout=timeout
        )
        self._store(raw, fetched_at)
        logger.info(
            f"Obtained installation token for installation {params.installation_id} "
            f"(expires {raw.expires_at.isoformat()})"
        )

    @property
    def params(self) -> GithubAuthParams:
        """Return authentication parameters."""
        return self._params

    @property
    def token(self) -> str:
        """Return the cached token without refreshing it."""
        with self._lock:
            return self._token

    @property
    def expires_at(self) -> datetime:
        """Return expiry of the cached token."""
        with self._lock:
            return self._expires_at

    @property
    def is_fresh(self) -> bool:
        """Return True if the cached token does not need a refresh."""
        return not self.needs_refresh()

    def header(self) -> dict[str, str]:
        """
        Get an HTTP authentication header for the installation token.

        The token is refreshed first if necessary, so this operation can
        fail. While the token is fresh, repeated calls make no requests
        and return identical headers.

        Returns
        -------
        dict[str, str]
            {"Authorization": "token <access token>"}

        Raises
        ------
        HeaderEncodingError
            If the token cannot be used as a header value
        AuthError
            If a needed refresh fails
        """
        with self._lock:
            self.refresh()
            value = f"token {self._token}"

        try:
            check_header_validity(("Authorization", value))
            value.encode("latin-1")
        except (InvalidHeader, UnicodeEncodeError) as e:
            raise HeaderEncodingError(
                f"Access token cannot be encoded as an HTTP header: {e}"
            ) from e

        return {"Authorization": value}

    def needs_refresh(self) -> bool:
        """
        Check whether the token is at or past expiry minus the margin.

        Returns
        -------
        bool
            True if the token must be refreshed before use

        Raises
        ------
        TimeError
            If the clock is before the epoch or earlier than the moment
            the current token was fetched
        """
        with self._lock:
            now = self._timestamp()
            if now < self._fetched_at:
                raise TimeError(
                    "System clock moved backward: "
                    f"now={now}, token fetched at {self._fetched_at}"
                )
            # Compare timedeltas; expires_at - margin overflows for huge margins
            remaining = self._expires_at - datetime.fromtimestamp(now, tz=timezone.utc)
            return remaining <= self.refresh_safety_margin

    def refresh(self) -> bool:
        """
        Fetch a new token if the current one needs a refresh.

        On failure the cached token and expiry are left untouched.

        Returns
        -------
        bool
            True if a new token was fetched

        Raises
        ------
        AuthError
            If the token exchange fails
        """
        with self._lock:
            if not self.needs_refresh():
                logger.debug("Reusing cached installation token")
                return False

            logger.info("Refreshing installation token")
            fetched_at = self._timestamp()
            raw = get_installation_token(
                self.session, self._params, now=fetched_at, timeout=self.timeout
            )
            self._store(raw, fetched_at)
            logger.info(
                f"Refreshed installation token for installation "
                f"{self._params.installation_id} "
                f"(expires {raw.expires_at.isoformat()})"
            )
            return True

    def _store(self, raw: RawInstallationAccessToken, fetched_at: float) -> None:
        """Replace the cached credential."""
        self._token = raw.token
        self._expires_at = raw.expires_at
        self._fetched_at = fetched_at

    def _timestamp(self) -> float:
        """Return the current Unix time from the clock."""
        now = self._clock()
        if now < 0:
            raise TimeError(f"System clock is before the Unix epoch: {now}")
        return now

    def __repr__(self) -> str:
        """Return string representation without the token."""
        return (
            f"{self.__class__.__name__}("
            f"installation_id={self._params.installation_id}, "
            f"expires_at='{self._expires_at.isoformat()}')"
        )
