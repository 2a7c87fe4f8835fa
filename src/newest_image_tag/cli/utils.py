"""CLI output helpers and exit codes.

Results go to stdout; errors and progress go to stderr so that
``$(newest-image-tag nginx)`` captures only the answer.

Example:
    from newest_image_tag.cli.utils import error_exit, ExitCode

    if not tags:
        error_exit("No tags found", exit_code=ExitCode.NO_TAGS, image=image)
"""

from __future__ import annotations

import sys
from enum import IntEnum
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from typing import NoReturn


class ExitCode(IntEnum):
    """Exit codes of the newest-image-tag command.

    Values 2-7 line up with the ``exit_code`` attributes of the
    NewestTagError hierarchy.
    """

    SUCCESS = 0
    """Newest tag printed."""

    GENERAL_ERROR = 1
    """General error (catch-all for failures)."""

    USAGE_ERROR = 2
    """Invalid arguments, configuration or image reference."""

    REGISTRY_ERROR = 3
    """Registry answered with an error status."""

    NETWORK_ERROR = 4
    """Registry unreachable or timed out."""

    INVALID_RESPONSE = 5
    """Registry response could not be decoded or is not schema 1."""

    NO_TAGS = 6
    """Repository has no tags."""

    CACHE_ERROR = 7
    """Cache backend error."""

    @classmethod
    def from_code(cls, code: int) -> ExitCode:
        """Map an error's ``exit_code`` to a member, GENERAL_ERROR if unknown."""
        try:
            return cls(code)
        except ValueError:
            return cls.GENERAL_ERROR


def error(message: str, **context: str | int | bool | None) -> None:
    """Print an error message to stderr.

    Example:
        error("Registry unreachable", host="quay.io")
        # Output: Error: Registry unreachable (host=quay.io)
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items() if v is not None)
        full_message = f"Error: {message} ({context_str})"
    else:
        full_message = f"Error: {message}"

    click.echo(full_message, err=True)


def error_exit(
    message: str,
    exit_code: ExitCode = ExitCode.GENERAL_ERROR,
    **context: str | int | bool | None,
) -> NoReturn:
    """Print an error message to stderr and exit with *exit_code*.

    Raises:
        SystemExit: Always.
    """
    error(message, **context)
    sys.exit(exit_code)


def success(message: str) -> None:
    """Print a result to stdout."""
    click.echo(message)


def info(message: str) -> None:
    """Print an informational message to stderr."""
    click.echo(message, err=True)


__all__ = ["ExitCode", "error", "error_exit", "info", "success"]
