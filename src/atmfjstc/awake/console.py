"""
Console abstraction for communicating with the user via the terminal.

It provides functions for showing messages of various types (info, debug, warnings, errors) in appropriate colors
(where available) and on the appropriate stream (stdout vs stderr). Verbosity is controlled via simple calls on the
console, without any further modifications being required in the caller code.

The abstraction is provided as an object of type `Console`, a singleton(-ish) instance of which is available through
the `console` property of this module. Thus one can use::

    from atmfjstc.awake.console import console

    console.print_info("Mac will stay awake until you press Ctrl+C")

Notes:

- All communication with the user should be done using this abstraction. Don't use regular `print()` functions beside it.
- Quiet mode (`disable_stdout`) silences everything that would go to stdout, i.e. info, success and debug messages.
  Warnings and errors are never silenced.
- Debug messages are only shown after `enable_debug` has been called (and stdout is enabled).
- Most methods of the console that just perform an action will return the console object itself. This enables fluent
  interface calls like::

      console.disable_stdout().enable_debug()
"""

import sys

from typing import Optional, Tuple, TextIO
from termcolor import colored


class Console:
    """
    An abstraction for communicating with the user via the terminal.

    The program should use the `console` singleton. Creating separate instances is only useful for redirecting output
    to specific streams (e.g. in tests).
    """

    _stdout_enabled: bool
    _debug_enabled: bool
    _stdout: Optional[TextIO]
    _stderr: Optional[TextIO]

    def __init__(
        self, enable_stdout: bool = True, enable_debug: bool = False,
        stdout: Optional[TextIO] = None, stderr: Optional[TextIO] = None
    ):
        self._stdout_enabled = enable_stdout
        self._debug_enabled = enable_debug
        self._stdout = stdout
        self._stderr = stderr

    def print_info(self, message: str, **kwargs) -> 'Console':
        """
        Print an informational message.

        An informational message is basically any message that does not fit into the other types.

        See `print_message` for info on general use guidelines and keyword parameters.
        """
        return self.print_message('info', message, **kwargs)

    def print_progress(self, message: str, **kwargs) -> 'Console':
        """
        Print a progress message, i.e. a phase indicator such as ``"Starting awake..."``

        See `print_message` for info on general use guidelines and keyword parameters.
        """
        return self.print_message('progress', message, **kwargs)

    def print_success(self, message: str, **kwargs) -> 'Console':
        """
        Print a success message.

        This is useful for signaling the end of a long operation. The message will be highlighted if the terminal
        supports colors.

        See `print_message` for info on general use guidelines and keyword parameters.
        """
        return self.print_message('success', message, **kwargs)

    def print_debug(self, message: str, **kwargs) -> 'Console':
        """
        Print a debug message. These are hidden unless debug output has been enabled via `enable_debug`.

        See `print_message` for info on general use guidelines and keyword parameters.
        """
        return self.print_message('debug', message, **kwargs)

    def print_warning(self, message: str, **kwargs) -> 'Console':
        """
        Print a warning message.

        The message will be highlighted in yellow and sent to stderr.

        See `print_message` for info on general use guidelines and keyword parameters.
        """
        return self.print_message('warning', message, **kwargs)

    def print_error(self, message: str, **kwargs) -> 'Console':
        """
        Print an error message.

        The message will be highlighted in red and sent to stderr. Errors are shown even in quiet mode.

        See `print_message` for info on general use guidelines and keyword parameters.
        """
        return self.print_message('error', message, **kwargs)

    def is_stdout_enabled(self) -> bool:
        return self._stdout_enabled

    def is_debug_enabled(self) -> bool:
        return self._debug_enabled

    def disable_stdout(self) -> 'Console':
        """
        Disables messages that would normally go to stdout (i.e. anything except warnings and errors).

        This is what "quiet mode" means for the program.
        """
        self._stdout_enabled = False
        return self

    def enable_stdout(self) -> 'Console':
        """
        Re-enables messages to stdout (the normal state of the console)
        """
        self._stdout_enabled = True
        return self

    def enable_debug(self) -> 'Console':
        """
        Enables debug messages. They will still be hidden if stdout is disabled.
        """
        self._debug_enabled = True
        return self

    def disable_debug(self) -> 'Console':
        """
        Disables debug messages (the normal state of the console)
        """
        self._debug_enabled = False
        return self

    def configure(self, quiet: bool = False, debug: bool = False) -> 'Console':
        """
        Sets up the verbosity of the console in one go, given the "quiet" and "debug" settings of the program.
        """
        if quiet:
            self.disable_stdout()
        else:
            self.enable_stdout()

        if debug:
            self.enable_debug()
        else:
            self.disable_debug()

        return self

    def print_message(self, kind: str, message: str, major: bool = False, minor: bool = False) -> 'Console':
        """
        Prints a message of a programmatically specified type.

        Args:
            kind: Can be 'info', 'progress', 'success', 'debug', 'warning', 'error' with the meanings as described
                by the respective `print_*` methods.
            message: The message to print. Can be multiline.
            major: Signals that this message is somehow more important than others of its kind. The console might try
                to render it using a different color scheme.
            minor: Signals that this message is somehow less important than others of its kind. The console might try
                to render it using a different color scheme.

        Returns:
            The console object (to enable a fluent interface)
        """
        props = _PROPS_BY_MSG_TYPE.get(kind)
        if props is None:
            props = _PROPS_BY_MSG_TYPE['default']

        if props.get('debug', False) and not self._debug_enabled:
            return self

        channel_name = props.get('channel', 'stdout')
        if channel_name == 'stdout' and not self._stdout_enabled:
            return self

        channel = self._get_channel(channel_name)

        # For now we use this simple algorithm. Might revisit this later:
        attrs = props.get('attrs', ())
        if major and ('bold' not in attrs):
            attrs += ('bold',)
        if minor and ('bold' in attrs):
            attrs = tuple(attr for attr in attrs if attr != 'bold')

        _print_maybe_with_color(props.get('prefix', '') + message, props.get('color'), attrs, channel)

        return self

    def _get_channel(self, channel_name: str) -> TextIO:
        # Resolved at print time so that redirections of sys.stdout/sys.stderr are honored
        if channel_name == 'stderr':
            return self._stderr if self._stderr is not None else sys.stderr

        return self._stdout if self._stdout is not None else sys.stdout


def _print_maybe_with_color(
    text: str, color: Optional[str], attrs: Optional[Tuple[str, ...]], channel: TextIO
):
    if ((color is None) and (len(attrs or []) == 0)) or not _is_tty(channel):
        print(text, file=channel, flush=True)
    else:
        print(colored(text, color or 'white', attrs=list(attrs or [])), file=channel, flush=True)


def _is_tty(channel: TextIO) -> bool:
    try:
        return channel.isatty()
    except (AttributeError, ValueError):
        return False


_PROPS_BY_MSG_TYPE = {
    'default': dict(),
    'info': dict(),
    'progress': dict(),
    'success': dict(color='green', attrs=('bold',)),
    'debug': dict(color='cyan', prefix='[DEBUG] ', debug=True),
    'warning': dict(color='yellow', attrs=('bold',), channel='stderr'),
    'error': dict(color='red', attrs=('bold',), prefix='ERROR: ', channel='stderr'),
}


# Singleton
console = Console()
"""The currently active console abstraction."""
