"""
CLI module for github-app-auth.

This module provides the command-line interface for fetching
installation access tokens and calling the GitHub API as an app.
"""

from github_app_auth.cli.commands import main

__all__ = ["main"]
