"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import logging
import sys
import click
from functools import wraps
from typing import Any, Generator
from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)

logger = logging.getLogger(__name__)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Clean JSONL output on stdout
    - Error messages on stderr
    - Consistent error handling and exit codes

    A command may return None (it handled its own output), a dict, or a
    list/generator of dicts.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        quiet = kwargs.get('quiet', False)

        try:
            result = func(*args, **kwargs)

            if quiet:
                # In quiet mode, consume the generator but don't output
                if isinstance(result, Generator):
                    for _ in result:
                        pass
            elif result is not None:
                output_result(result)

            sys.exit(SUCCESS)

        except KeyboardInterrupt:
            click.echo("Interrupted by user", err=True)
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            click.echo(f"Error: {e}", err=True)
            if not quiet:
                error_obj = {
                    "error": str(e),
                    "type": type(e).__name__,
                    "exit_code": e.exit_code
                }
                print(json.dumps(error_obj, ensure_ascii=False), flush=True)
            sys.exit(e.exit_code)
        except Exception as e:
            logger.debug("Command failed", exc_info=True)
            click.echo(f"Command failed: {e}", err=True)
            if not quiet:
                error_obj = {
                    "error": str(e),
                    "type": type(e).__name__
                }
                print(json.dumps(error_obj, ensure_ascii=False), flush=True)
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


def output_result(result: Any):
    """
    Standard output handler for results.

    Args:
        result: The result to output (dict, list, or generator)
    """
    if isinstance(result, (Generator, list, tuple)):
        for item in result:
            print(json.dumps(item, ensure_ascii=False), flush=True)
    elif isinstance(result, dict):
        print(json.dumps(result, ensure_ascii=False), flush=True)
    else:
        print(result, flush=True)


# Standard options that several commands share
common_options = {
    'quiet': click.option('-q', '--quiet', is_flag=True,
                          help='Suppress data output on stdout'),
    'source': click.option('-s', '--source',
                           help='Directory containing the packages to process (default: ./node_modules)'),
    'properties': click.option('-p', '--properties', multiple=True,
                               help='Format property to consider; repeat for several, in priority order'),
    'target': click.option('-t', '--target',
                           help='Only process this entry-point and its dependencies'),
    'first_only': click.option('--first-only', is_flag=True,
                               help='Only compile the first matching format of each entry-point'),
    'tsconfig': click.option('--tsconfig', type=click.Path(exists=True, dir_okay=False),
                             help='Read baseUrl/paths mappings from this tsconfig.json'),
    'loglevel': click.option('-l', '--loglevel',
                             type=click.Choice(['debug', 'info', 'warn', 'error'], case_sensitive=False),
                             help='Lowest severity of log messages to show (default: info)'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('source', 'properties')
        def my_command(source, properties):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
