"""Error reporting for the command line."""

from __future__ import annotations

import os
import sys
import traceback

from flameview.errors import FlameViewError


def cli_verbose_enabled(flag: bool = False) -> bool:
    return flag or os.getenv("FLAMEVIEW_CLI_VERBOSE", "").lower() in {"1", "true", "yes"}


def format_cli_error(exc: BaseException, *, verbose: bool = False) -> str:
    if isinstance(exc, FlameViewError):
        message = f"error[{exc.code or exc.category}]: {exc.format()}"
    else:
        message = f"error: {type(exc).__name__}: {exc}"
    if verbose:
        message += "\n" + "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return message


def handle_cli_exception(exc: BaseException, *, verbose: bool = False, exit_code: int = 1) -> None:
    """Print ``exc`` for a human and exit; does not return."""
    print(format_cli_error(exc, verbose=cli_verbose_enabled(verbose)), file=sys.stderr)
    sys.exit(exit_code)
