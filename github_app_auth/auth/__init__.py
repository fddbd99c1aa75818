"""
Authentication module for github-app-auth.

This module contains the signed JWT assertion builder and the
installation access token, which exchanges the assertion for an
access token and keeps it fresh.
"""

from github_app_auth.auth.assertion import JwtClaims, build_assertion
from github_app_auth.auth.token import (
    InstallationAccessToken,
    RawInstallationAccessToken,
    get_installation_token,
)

__all__ = [
    "JwtClaims",
    "build_assertion",
    "InstallationAccessToken",
    "RawInstallationAccessToken",
    "get_installation_token",
]
