"""
Common utilities shared across auto_updatable modules.
"""

from __future__ import annotations

import os
import sys


class FatalError(Exception):
    """
    Environment problem that ends the whole run.

    Attributes:
        message: Human-readable error message
        exit_code: Process exit status for the CLI
    """
    exit_code = 3

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NoConnectivityError(FatalError):
    """A service could not be reached at all (HTTP code 000)."""
    pass


class MissingCredentialError(FatalError):
    """A hosting API requires a token that is not configured."""
    pass


class RegistryFetchError(FatalError):
    """The Repology package list could not be fetched."""
    pass


def env_flag(name: str, default: bool = True) -> bool:
    """
    Read a 0/1 style boolean from the environment.

    Args:
        name: Environment variable name
        default: Value used when the variable is unset

    Returns:
        True unless the variable is set to "0", "false" or "no"
    """
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() not in ("0", "false", "no", "")


def vlog(msg: str, verbose: bool = False) -> None:
    """
    Log verbose message using structured logging.

    Args:
        msg: Message to log
        verbose: Whether verbose mode is enabled
    """
    if verbose or os.environ.get("AUTO_UPDATABLE_DEBUG", "0") == "1":
        try:
            from .logging_config import get_logger
            logger = get_logger()
            logger.debug(msg)
        except Exception:
            # Fallback to stderr if logging fails
            try:
                print(f"[auto_updatable] {msg}", file=sys.stderr)
            except Exception:
                pass
