"""
Utilities for working with external processes.
"""

import re
import shutil
import textwrap

from typing import Optional, Sequence, Tuple


def find_command(command: str) -> Optional[str]:
    """
    Looks for some external utility in the search path.

    Args:
        command: The name of the binary/command to look for. It must be a single name; arguments and shell command lines
            are not accepted.

    Returns:
        The full path to the command, or None if it is not installed or not accessible to this program (as per `which`)
    """
    return shutil.which(command)


class LaunchError(Exception):
    """
    Thrown when an external program (the inhibitor, or the background instance of this program) could not be started.
    """

    command: str
    cmd_args: Tuple[str, ...]
    error: BaseException

    def __init__(self, underlying_error: BaseException, command: str, args: Sequence[str] = ()):
        self.command = command
        self.cmd_args = tuple(str(arg) for arg in args)
        self.error = underlying_error

        super().__init__(_render_launch_error_message(command, self.cmd_args, underlying_error))


def _render_launch_error_message(command: str, args: Tuple[str, ...], error: BaseException, max_width: int = 120):
    message_parts = [f"Could not launch {_command_name(command)}:"]

    err_str = str(error)
    if ('\n' not in err_str) and (len(message_parts[0]) + len(err_str) + 1 < max_width):
        message_parts[0] += ' ' + err_str
    else:
        message_parts.append(textwrap.indent(err_str, '  '))

    if len(args) > 0:
        message_parts.append("Args: " + ' '.join(_quote_arg(arg) for arg in args))

    return '\n'.join(message_parts)


def _command_name(command: str) -> str:
    return f"command '{command}'" if _looks_like_shell_command(command) else f"'{command}'"


def _quote_arg(arg: str) -> str:
    return repr(arg) if re.search(r'[ \'"]', arg) else arg


def _looks_like_shell_command(command: str) -> bool:
    return re.match(r'^[./0-9a-z_-]*$', command, re.I) is None
