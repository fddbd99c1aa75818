"""
Command-line interface for github-app-auth.

This module provides CLI commands for obtaining an installation access
token header and for sending authenticated GET requests to the GitHub
API as a GitHub App.
"""

import argparse
import json
import logging
import os
import sys
from typing import Optional

import requests

from github_app_auth import __version__
from github_app_auth.auth.token import GITHUB_API_URL, InstallationAccessToken
from github_app_auth.core.params import DEFAULT_USER_AGENT, GithubAuthParams
from github_app_auth.exceptions import AuthError


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns
    -------
    argparse.ArgumentParser
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="github-app-auth",
        description="Authenticate with the GitHub API as a GitHub App",
        epilog="Example: github-app-auth get repos/owner/repo/license",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Shared options, read from the environment when omitted
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--app-id",
        type=int,
        help="GitHub App ID (default: $GITHUB_APP_ID)",
    )
    common.add_argument(
        "--installation-id",
        type=int,
        help="Installation ID (default: $GITHUB_INSTALLATION_ID)",
    )
    common.add_argument(
        "--private-key-file",
        metavar="PATH",
        help="PEM private key (default: $GITHUB_PRIVATE_KEY or "
        "$GITHUB_PRIVATE_KEY_PATH)",
    )
    common.add_argument(
        "--user-agent",
        default=DEFAULT_USER_AGENT,
        help=f"User agent for GitHub requests (default: {DEFAULT_USER_AGENT})",
    )
    common.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log token exchanges to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Header command
    subparsers.add_parser(
        "header",
        parents=[common],
        help="Print an Authorization header for the installation",
        description="Fetch an installation access token and print the header",
    )

    # Get command
    get_parser = subparsers.add_parser(
        "get",
        parents=[common],
        help="Send an authenticated GET request to the GitHub API",
        description="GET a GitHub API path as the installation and print JSON",
    )
    get_parser.add_argument(
        "path",
        help="API path (e.g., repos/owner/repo/license)",
    )

    return parser


def load_params(args: argparse.Namespace) -> GithubAuthParams:
    """
    Build authentication parameters from arguments and the environment.

    Command-line options take precedence over environment variables.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command-line arguments

    Returns
    -------
    GithubAuthParams
        Authentication parameters

    Raises
    ------
    ConfigurationError
        If a required value is missing from both
    """
    if (
        args.private_key_file
        and args.app_id is not None
        and args.installation_id is not None
    ):
        return GithubAuthParams.from_private_key_file(
            args.private_key_file,
            app_id=args.app_id,
            installation_id=args.installation_id,
            user_agent=args.user_agent,
        )

    environ = dict(os.environ)
    if args.app_id is not None:
        environ["GITHUB_APP_ID"] = str(args.app_id)
    if args.installation_id is not None:
        environ["GITHUB_INSTALLATION_ID"] = str(args.installation_id)
    if args.private_key_file:
        environ.pop("GITHUB_PRIVATE_KEY", None)
        environ["GITHUB_PRIVATE_KEY_PATH"] = args.private_key_file

    return GithubAuthParams.from_env(environ, user_agent=args.user_agent)


def cmd_header(args: argparse.Namespace) -> int:
    """
    Execute header command.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command-line arguments

    Returns
    -------
    int
        Exit code (0 for success, 1 for error)
    """
    try:
        token = InstallationAccessToken(load_params(args))
        header = token.header()
    except AuthError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for name, value in header.items():
        print(f"{name}: {value}")
    return 0


def cmd_get(args: argparse.Namespace) -> int:
    """
    Execute get command.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command-line arguments

    Returns
    -------
    int
        Exit code (0 for success, 1 for error)
    """
    url = f"{GITHUB_API_URL}/{args.path.lstrip('/')}"

    try:
        token = InstallationAccessToken(load_params(args))
        response = token.session.get(url, headers=token.header(), timeout=token.timeout)
        response.raise_for_status()
        data = response.json()
    except AuthError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except requests.RequestException as e:
        print(f"Error: GET {url} failed: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: GET {url} returned invalid JSON: {e}", file=sys.stderr)
        return 1

    print(json.dumps(data, indent=2))
    return 0


def main(args: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Parameters
    ----------
    args : list[str], optional
        Command-line arguments (defaults to sys.argv[1:])

    Returns
    -------
    int
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    if parsed_args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s [%(levelname)s] %(message)s",
            stream=sys.stderr,
        )

    if parsed_args.command == "header":
        return cmd_header(parsed_args)

    if parsed_args.command == "get":
        return cmd_get(parsed_args)

    # Unknown command (shouldn't happen with argparse)
    print(f"Unknown command: {parsed_args.command}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
