"""
Support for running the program detached from the terminal.

There is no native daemonization involved: the program simply relaunches itself (``<python> -m atmfjstc.awake ...``) in
a new session, with no standard streams attached, and then the original process exits. The relaunched instance is
recognized by the `BACKGROUND_ENV_VAR` marker in its environment, so that it will never try to relaunch itself again.
"""

import os
import sys
import subprocess

from typing import Optional, Sequence, List, Mapping

from atmfjstc.awake.console import console
from atmfjstc.awake.duration import format_duration
from atmfjstc.awake.errors import fail, descriptive_errors
from atmfjstc.awake.options import RunConfig, OPTIONS_BY_DEST
from atmfjstc.awake.process import LaunchError


BACKGROUND_ENV_VAR = 'AWAKE_BACKGROUND'

MODULE_NAME = 'atmfjstc.awake'


def is_background_instance(environ: Optional[Mapping[str, str]] = None) -> bool:
    """
    Checks whether this is the already-detached instance of the program.
    """
    if environ is None:
        environ = os.environ

    return environ.get(BACKGROUND_ENV_VAR) == '1'


def background_args(args: Sequence[str]) -> List[str]:
    """
    Adjusts the arguments of the current invocation for the background instance: the background flag is removed (in any
    of its spellings), and the quiet flag is added if not already present, as there will be no terminal to write to.
    """
    background_flags = set(OPTIONS_BY_DEST['background'].spellings())
    quiet_flags = set(OPTIONS_BY_DEST['quiet'].spellings())

    result = [arg for arg in args if arg not in background_flags]

    if not any(arg in quiet_flags for arg in result):
        result.append(OPTIONS_BY_DEST['quiet'].spellings()[0])

    return result


def own_executable() -> str:
    """
    Gets the path of the interpreter running this program.

    Raises:
        DescriptiveError: If the path cannot be determined (e.g. in some embedded environments)
    """
    executable = sys.executable

    if (executable is None) or (executable == ''):
        fail("Error getting executable path: the Python interpreter path is not available")

    return executable


def relaunch_in_background(
    config: RunConfig, args: Sequence[str], environ: Optional[Mapping[str, str]] = None
) -> int:
    """
    Starts a detached copy of the program with the same arguments (adjusted as per `background_args`).

    The caller is expected to exit right after this, without doing any work of its own.

    Args:
        config: The resolved options of the current invocation
        args: The raw command-line arguments of the current invocation (without the program name)
        environ: The environment to pass on to the background instance (defaults to the current environment). The
            background marker is added automatically.

    Returns:
        The PID of the background instance

    Raises:
        DescriptiveError: If the background instance could not be launched
    """
    console.print_debug("Starting background mode")

    command = [own_executable(), '-m', MODULE_NAME, *background_args(args)]

    env = dict(os.environ if environ is None else environ)
    env[BACKGROUND_ENV_VAR] = '1'

    console.print_debug(f"Spawning background process with args: {command[1:]}")

    with descriptive_errors(LaunchError):
        pid = _launch_detached(command, env)

    console.print_success(f"Awake is now running in the background (PID: {pid})")
    if config.is_bounded:
        console.print_info(f"Mac will stay awake for {format_duration(config.duration)}")
    else:
        console.print_info("Mac will stay awake until it is stopped")
    console.print_info(f"Use 'kill {pid}' to stop it early if needed")

    return pid


def _launch_detached(command: List[str], env: Mapping[str, str]) -> int:
    try:
        process = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL,
            env=env, close_fds=True, start_new_session=True,
        )
    except OSError as e:
        raise LaunchError(e, command[0], command[1:])

    return process.pid
