"""
CLI Error Handling
==================

Maps SDK exceptions to messages and exit codes for the ``ev3link`` tool.
"""

import sys
import traceback
from enum import IntEnum
from typing import NoReturn

import click

from ev3_sdk.errors import (
    CommsError,
    ConnectionError,
    DecodeError,
    DeviceError,
    EncodingError,
    EV3Error,
)


class ExitCode(IntEnum):
    """Standard exit codes for the CLI."""
    SUCCESS = 0
    DEVICE_ERROR = 1     # Brick refused, bad reply, or transport failure
    INVALID_ARGS = 2     # Invalid arguments or local file problems
    INTERNAL_ERROR = 3   # Unexpected internal error


def handle_cli_exception(error: Exception, verbose: bool = False) -> NoReturn:
    """
    Report ``error`` and exit with the matching exit code.

    Args:
        error: The exception that was raised
        verbose: If True, print full traceback for internal errors

    Raises:
        SystemExit: Always
    """
    if isinstance(error, ConnectionError):
        click.echo(f"Connection error: {error}", err=True)
        sys.exit(ExitCode.DEVICE_ERROR)

    elif isinstance(error, CommsError):
        click.echo(f"Communication error: {error}", err=True)
        sys.exit(ExitCode.DEVICE_ERROR)

    elif isinstance(error, DeviceError):
        click.echo(f"Brick error: {error}", err=True)
        sys.exit(ExitCode.DEVICE_ERROR)

    elif isinstance(error, DecodeError):
        click.echo(f"Protocol error: {error}", err=True)
        sys.exit(ExitCode.DEVICE_ERROR)

    elif isinstance(error, (EncodingError, ValueError, click.BadParameter)):
        # Values the protocol cannot carry
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    elif isinstance(error, EV3Error):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.DEVICE_ERROR)

    elif isinstance(error, OSError):
        click.echo(f"Error: {error}", err=True)
        sys.exit(ExitCode.INVALID_ARGS)

    else:
        click.echo(f"Internal error: {error}", err=True)
        if verbose:
            traceback.print_exception(type(error), error, error.__traceback__)
        sys.exit(ExitCode.INTERNAL_ERROR)
