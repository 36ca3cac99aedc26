"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import logging
import sys
import click
from functools import wraps
from typing import Dict, Iterable

from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)

logger = logging.getLogger("gitversioning")


def parse_user_properties(values: Iterable[str]) -> Dict[str, str]:
    """Parse `-D name=value` arguments; a bare name means "true"."""
    properties = {}
    for value in values:
        name, sep, setting = value.partition('=')
        if not name:
            raise click.BadParameter(f"invalid property definition: {value!r}", param_hint="-D")
        properties[name] = setting if sep else 'true'
    return properties


def configure_verbosity(verbose: bool, quiet: bool) -> None:
    """Adjust the package log level for --verbose/--quiet."""
    if verbose:
        logger.setLevel(logging.DEBUG)
    elif quiet:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(logging.INFO)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Clean JSON output on stdout for returned dicts and lists
    - Log verbosity from the --verbose/-v and --quiet/-q flags
    - Consistent error handling with specific exit codes
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        verbose = kwargs.pop('verbose', False)
        quiet = kwargs.pop('quiet', False)
        configure_verbosity(verbose, quiet)

        try:
            result = func(*args, **kwargs)

            if isinstance(result, (dict, list)):
                print(json.dumps(result, indent=2, ensure_ascii=False), flush=True)
            elif result is not None:
                print(result, flush=True)

            sys.exit(SUCCESS)

        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            raise
        except CommandError as e:
            logger.error(str(e))
            sys.exit(e.exit_code)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            sys.exit(get_exit_code_for_exception(e))

    wrapper = click.option('--quiet', '-q', is_flag=True, help='Only log warnings and errors')(wrapper)
    wrapper = click.option('--verbose', '-v', is_flag=True, help='Log debug details')(wrapper)
    return wrapper
