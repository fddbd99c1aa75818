"""
Authentication parameters for a GitHub App installation.

This module provides the GithubAuthParams container holding everything
needed to obtain an installation access token, and helpers for loading
those values from the environment or from a key file.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from github_app_auth.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "github-app-auth"

# Environment variable names read by GithubAuthParams.from_env()
ENV_APP_ID = "GITHUB_APP_ID"
ENV_INSTALLATION_ID = "GITHUB_INSTALLATION_ID"
ENV_PRIVATE_KEY = "GITHUB_PRIVATE_KEY"
ENV_PRIVATE_KEY_PATH = "GITHUB_PRIVATE_KEY_PATH"


@dataclass(frozen=True)
class GithubAuthParams:
    """
    Input parameters for authenticating as a GitHub app.

    The values are immutable for the lifetime of an
    InstallationAccessToken and are supplied once, at construction.

    Attributes
    ----------
    user_agent : str
        User agent set for all requests to GitHub. The API requires that
        a user agent is set; GitHub asks for your username or the name of
        your application.
    private_key : bytes
        PEM-encoded RSA private key used to sign access token requests.
        It can be generated at the bottom of the application's settings
        page. Never shown in repr().
    installation_id : int
        GitHub application installation ID. It is the final component of
        the installation's configuration URL, e.g. "1216616" for
        "github.com/organizations/mycoolorg/settings/installations/1216616".
    app_id : int
        GitHub application ID, shown as "App ID" in the application
        settings page.

    Examples
    --------
    >>> params = GithubAuthParams(
    ...     user_agent="my-cool-user-agent",
    ...     private_key=Path("app.pem").read_bytes(),
    ...     installation_id=5678,
    ...     app_id=1234,
    ... )
    """

    user_agent: str
    private_key: bytes = field(repr=False)
    installation_id: int
    app_id: int

    @classmethod
    def from_private_key_file(
        cls,
        path: str | Path,
        app_id: int,
        installation_id: int,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> "GithubAuthParams":
        """
        Create parameters with the private key read from a PEM file.

        Parameters
        ----------
        path : str or Path
            Path to the PEM file downloaded from the app settings page
        app_id : int
            GitHub application ID
        installation_id : int
            GitHub application installation ID
        user_agent : str, optional
            User agent for requests to GitHub

        Returns
        -------
        GithubAuthParams
            Loaded parameters

        Raises
        ------
        ConfigurationError
            If the key file cannot be read
        """
        path = Path(path)
        try:
            private_key = path.read_bytes()
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read private key file {path}: {e}"
            ) from e

        logger.debug(f"Private key loaded from {path}")
        return cls(
            user_agent=user_agent,
            private_key=private_key,
            installation_id=installation_id,
            app_id=app_id,
        )

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> "GithubAuthParams":
        """
        Create parameters from environment variables.

        Reads GITHUB_APP_ID, GITHUB_INSTALLATION_ID and either
        GITHUB_PRIVATE_KEY (PEM text) or GITHUB_PRIVATE_KEY_PATH
        (path to a PEM file). GITHUB_PRIVATE_KEY wins if both are set.

        Parameters
        ----------
        environ : Mapping[str, str], optional
            Environment to read from (default: os.environ)
        user_agent : str, optional
            User agent for requests to GitHub

        Returns
        -------
        GithubAuthParams
            Loaded parameters

        Raises
        ------
        ConfigurationError
            If a variable is missing or not a valid integer
        """
        env = os.environ if environ is None else environ

        app_id = _read_int(env, ENV_APP_ID)
        installation_id = _read_int(env, ENV_INSTALLATION_ID)

        private_key = env.get(ENV_PRIVATE_KEY)
        if private_key:
            logger.debug(f"Private key loaded from {ENV_PRIVATE_KEY}")
            return cls(
                user_agent=user_agent,
                private_key=private_key.encode("utf-8"),
                installation_id=installation_id,
                app_id=app_id,
            )

        key_path = env.get(ENV_PRIVATE_KEY_PATH)
        if key_path:
            return cls.from_private_key_file(
                key_path,
                app_id=app_id,
                installation_id=installation_id,
                user_agent=user_agent,
            )

        raise ConfigurationError(
            f"Neither {ENV_PRIVATE_KEY} nor {ENV_PRIVATE_KEY_PATH} is set"
        )


def _read_int(env: Mapping[str, str], name: str) -> int:
    """Read a required integer variable."""
    value = env.get(name)
    if value is None or not value.strip():
        raise ConfigurationError(f"{name} is not set")
    try:
        return int(value.strip())
    except ValueError as e:
        raise ConfigurationError(
            f"{name} must be an integer, got '{value}'"
        ) from e
