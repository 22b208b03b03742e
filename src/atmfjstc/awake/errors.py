"""
Fatal error handling for the program.

Conditions whose message says everything the user needs to know (e.g. "caffeinate command not found") are raised as
`DescriptiveError`, usually via `fail()`. The main function is guarded by `@pretty_unhandled`, which turns the outcome of
the program into an exit status:

- a `DescriptiveError` is shown as a single ``ERROR:`` line and the program exits with status 1
- Ctrl+C outside of the supervised wait shows "Stopped by user" and the program exits with status 0
- anything else is a bug: its head and traceback are shown (along with its causes) and the program exits with status 1
"""

import sys
import traceback

from typing import NoReturn, ContextManager, Callable
from textwrap import dedent, indent
from functools import wraps
from contextlib import contextmanager

from atmfjstc.awake.console import console


EXIT_FAILURE = 1


class DescriptiveError(RuntimeError):
    """
    A fatal error whose message is self-explanatory, so that neither the exception type nor the traceback are shown.
    """


def fail(message: str) -> NoReturn:
    """
    Shortcut for throwing a `DescriptiveError` (the message is dedented and stripped).
    """
    raise DescriptiveError(dedent(message).strip())


@contextmanager
def descriptive_errors(*classes: type) -> ContextManager[None]:
    """
    Turns exceptions of the given classes raised inside the block into `DescriptiveError`s with the same message, e.g.::

        with descriptive_errors(LaunchError):
            pid = _launch_detached(command, env)
    """
    try:
        yield
    except classes as e:
        raise DescriptiveError(str(e) or e.__class__.__name__) from e


def pretty_unhandled(main_method: Callable) -> Callable:
    """
    Decorator for the main function, mapping its outcome to a message and exit status (see the module docs).
    """

    @wraps(main_method)
    def wrapper(*args, **kwargs):
        try:
            return main_method(*args, **kwargs)
        except SystemExit:
            raise
        except KeyboardInterrupt:
            console.print_warning("Stopped by user")
            sys.exit(0)
        except DescriptiveError as e:
            console.print_error(str(e))
        except Exception as e:
            _report_crash(e)

        sys.exit(EXIT_FAILURE)

    return wrapper


def _report_crash(exception: BaseException):
    current = exception
    depth = 0

    while current is not None:
        base_indent = '  ' * depth
        if depth > 0:
            console.print_error('  ' * (depth - 1) + "Cause:", minor=True)

        head = ''.join(traceback.format_exception_only(current.__class__, current)).rstrip()
        trace = dedent(''.join(traceback.format_list(traceback.extract_tb(current.__traceback__)))).rstrip()

        console.print_error(indent(head, base_indent))
        console.print_error(indent("Traceback:", base_indent), minor=True)
        console.print_error(indent(trace, base_indent + '  '), minor=True)

        current = current.__cause__
        depth += 1
