"""
Command-line options for the program.

The raw arguments are resolved into an immutable `RunConfig` object once, at startup. All boolean flags default to
False, and every option accepts a short (``-q``), a single-dash long (``-quiet``) and a double-dash long (``--quiet``)
spelling.
"""

from argparse import ArgumentParser, Action, Namespace
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Sequence, Text, NoReturn, Tuple

from atmfjstc.awake import APP_NAME, __version__
from atmfjstc.awake.duration import parse_duration, DurationParseError
from atmfjstc.awake.errors import fail


@dataclass(frozen=True)
class RunConfig:
    quiet: bool = False
    "Suppress informational and debug output (errors are still shown)"

    debug: bool = False
    "Show debug output"

    show_version: bool = False
    "Only print the version and exit"

    show_help: bool = False
    "Only print usage info and exit"

    duration: Optional[timedelta] = None
    "How long to keep the system awake. None or zero means until stopped."

    background: bool = False
    "Detach from the terminal and keep running in the background"

    def __post_init__(self):
        if (self.duration is not None) and (self.duration < timedelta(0)):
            raise ValueError(f"Duration cannot be negative (got {self.duration!r})")

    @property
    def is_bounded(self) -> bool:
        """True if the inhibition period is limited in time"""
        return (self.duration is not None) and (self.duration > timedelta(0))


@dataclass(frozen=True)
class OptionSpec:
    dest: str
    short: str
    long: str
    help: str
    metavar: Optional[str] = None

    def spellings(self) -> Tuple[str, ...]:
        return f"-{self.short}", f"-{self.long}", f"--{self.long}"


OPTIONS: Tuple[OptionSpec, ...] = (
    OptionSpec('quiet', 'q', 'quiet', "Suppress all output except errors"),
    OptionSpec('debug', 'd', 'debug', "Enable debug logging"),
    OptionSpec('show_version', 'v', 'version', "Show version information"),
    OptionSpec('show_help', 'h', 'help', "Show help information"),
    OptionSpec('duration', 't', 'time', "Duration to prevent sleep (e.g. 1h30m)", metavar='<duration>'),
    OptionSpec('background', 'b', 'background', "Run in background mode"),
)

OPTIONS_BY_DEST = {option.dest: option for option in OPTIONS}

EXAMPLES: Tuple[Tuple[str, str], ...] = (
    ('', "Prevent sleep until Ctrl+C"),
    ('-t 2h', "Prevent sleep for 2 hours"),
    ('-q -t 30m', "Quietly prevent sleep for 30 minutes"),
    ('-b', "Run in background indefinitely (use 'kill <pid>' to stop)"),
    ('-b -t 2h', "Run in background for 2 hours"),
    ('-b -t 2h -q', "Run in background for 2 hours, quietly"),
)


def resolve_options(args: Sequence[str]) -> RunConfig:
    """
    Parses the command-line arguments (not including the program name) into a `RunConfig`.

    Raises:
        DescriptiveError: If the arguments are malformed (unknown option, bad duration etc.)
    """
    raw_args = _build_parser().parse_args(list(args))

    return RunConfig(
        quiet=raw_args.quiet,
        debug=raw_args.debug,
        show_version=raw_args.show_version,
        show_help=raw_args.show_help,
        duration=raw_args.duration,
        background=raw_args.background,
    )


def render_help() -> str:
    """
    Renders the usage text shown for ``-help``.
    """
    lines = [
        f"Usage: {APP_NAME} [options]",
        "",
        "A tool that prevents your Mac from sleeping using the caffeinate command.",
        "",
        "Options:",
    ]

    for option in OPTIONS:
        spellings = ', '.join(option.spellings())
        if option.metavar is not None:
            spellings += ' ' + option.metavar

        lines.append(f"  {spellings}")
        lines.append(f"        {option.help}")

    lines.append("")
    lines.append("Examples:")

    width = max(len(args) for args, _ in EXAMPLES) + len(APP_NAME) + 1
    for args, comment in EXAMPLES:
        command = f"{APP_NAME} {args}".rstrip()
        lines.append(f"  {command:<{width}}  # {comment}")

    return '\n'.join(lines)


def render_version() -> str:
    return f"{APP_NAME} v{__version__}"


def _build_parser() -> ArgumentParser:
    parser = _ArgumentParser(prog=APP_NAME, add_help=False, allow_abbrev=False)

    for option in OPTIONS:
        if option.dest == 'duration':
            parser.add_argument(
                *option.spellings(), dest=option.dest, action=_DurationAction, default=None, metavar=option.metavar,
                help=option.help,
            )
        else:
            parser.add_argument(
                *option.spellings(), dest=option.dest, action='store_true', default=False, help=option.help,
            )

    return parser


class _DurationAction(Action):
    def __call__(self, parser: ArgumentParser, namespace: Namespace, values, option_string=None):
        try:
            duration = parse_duration(values)
        except DurationParseError as e:
            fail(f"Invalid value {values!r} for {option_string}: {e.reason}")

        setattr(namespace, self.dest, duration)


class _ArgumentParser(ArgumentParser):
    def error(self, message: Text) -> NoReturn:
        # Replaces argparse's default behavior of printing usage and exiting with status 2
        fail(f"{message}\nRun '{APP_NAME} -help' for usage.")
