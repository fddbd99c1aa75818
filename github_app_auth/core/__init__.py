"""
Core module for github-app-auth.

This module contains the parameters needed to authenticate as
a GitHub App installation.
"""

from github_app_auth.core.params import GithubAuthParams

__all__ = ["GithubAuthParams"]
