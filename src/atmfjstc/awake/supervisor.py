"""
Supervision of the sleep inhibitor process (``caffeinate``).

The supervisor starts the inhibitor and then waits for either:

- the inhibitor to exit on its own (only when a duration is set; ``caffeinate -t`` exits once its timer elapses), or
- SIGINT/SIGTERM, in which case the inhibitor is killed.

In both cases the inhibitor is reaped before the supervisor returns, so that the machine is never kept awake by an
unattended ``caffeinate`` process. Note that this cannot be guaranteed if the supervisor itself dies abruptly (e.g. is
killed with SIGKILL); in that case the orphaned inhibitor keeps running until its own timer, if any, elapses.
"""

import asyncio
import signal

from contextlib import contextmanager
from datetime import timedelta
from enum import Enum
from typing import Optional, List, ContextManager

from atmfjstc.awake.async_utils import race_hard
from atmfjstc.awake.console import console
from atmfjstc.awake.duration import format_duration, whole_seconds
from atmfjstc.awake.errors import fail, descriptive_errors
from atmfjstc.awake.options import RunConfig
from atmfjstc.awake.process import find_command, LaunchError


INHIBITOR_COMMAND = 'caffeinate'

INHIBITOR_FLAGS = (
    '-d',  # Prevent the display from sleeping
    '-i',  # Prevent the system from idle sleeping
)

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class StopReason(Enum):
    DURATION_ELAPSED = 'duration_elapsed'
    SIGNALED = 'signaled'


def inhibitor_args(duration: Optional[timedelta]) -> List[str]:
    """
    Computes the arguments for the inhibitor command, given the configured duration (if any).
    """
    args = list(INHIBITOR_FLAGS)

    if (duration is not None) and (duration > timedelta(0)):
        args.extend(['-t', str(whole_seconds(duration))])

    return args


def locate_inhibitor(command: str = INHIBITOR_COMMAND) -> str:
    """
    Finds the inhibitor executable in the search path.

    Returns:
        The full path to the inhibitor

    Raises:
        DescriptiveError: If the inhibitor is not available on this system
    """
    path = find_command(command)
    if path is None:
        fail(f"{command} command not found. This tool requires macOS.")

    console.print_debug(f"Found {command} at: {path}")

    return path


class Supervisor:
    """
    Owns the inhibitor process for its entire lifetime. Use `run()` (once) from within an asyncio loop running in the
    main thread, as it installs signal handlers.
    """

    _config: RunConfig
    _inhibitor_path: str
    _inhibitor_name: str
    _stop_event: Optional[asyncio.Event]
    _stop_pending: bool

    def __init__(self, config: RunConfig, inhibitor_path: str, inhibitor_name: str = INHIBITOR_COMMAND):
        self._config = config
        self._inhibitor_path = inhibitor_path
        self._inhibitor_name = inhibitor_name
        self._stop_event = None
        self._stop_pending = False

    def stop(self):
        """
        Requests the supervisor to stop, exactly as if a termination signal had been received.
        """
        if self._stop_event is None:
            self._stop_pending = True
        else:
            self._stop_event.set()

    async def run(self) -> StopReason:
        """
        Starts the inhibitor and waits until the configured duration elapses or a stop is requested.

        Returns:
            What caused the supervisor to finish

        Raises:
            DescriptiveError: If the inhibitor could not be started
        """
        self._stop_event = asyncio.Event()
        if self._stop_pending:
            self._stop_event.set()

        console.print_progress("Starting awake - preventing sleep on your Mac")

        args = inhibitor_args(self._config.duration)

        if self._config.is_bounded:
            console.print_info(f"Mac will stay awake for {format_duration(self._config.duration)}")
        else:
            console.print_info("Mac will stay awake until you press Ctrl+C")

        # Stop signals must already be caught by the time the inhibitor exists
        with self._catch_stop_signals():
            process = await self._spawn(args)

            try:
                reason = await self._wait(process)

                if reason == StopReason.SIGNALED:
                    await self._terminate(process)
            except BaseException:
                await self._kill_and_reap(process)
                raise

        if reason == StopReason.DURATION_ELAPSED:
            console.print_success("Duration completed, exiting")

        return reason

    async def _spawn(self, args: List[str]) -> asyncio.subprocess.Process:
        console.print_debug(f"Running: {self._inhibitor_path} {' '.join(args)}")

        with descriptive_errors(LaunchError):
            try:
                process = await asyncio.create_subprocess_exec(self._inhibitor_path, *args)
            except OSError as e:
                raise LaunchError(e, self._inhibitor_name, args)

        console.print_debug(f"Started {self._inhibitor_name} (PID: {process.pid})")

        return process

    async def _wait(self, process: asyncio.subprocess.Process) -> StopReason:
        waits = []

        if self._config.is_bounded:
            console.print_debug(f"Waiting for {format_duration(self._config.duration)} to complete")
            waits.append(self._wait_for_exit(process))

        waits.append(self._wait_for_stop())

        winner = await race_hard(*waits)

        return winner.result()

    async def _wait_for_exit(self, process: asyncio.subprocess.Process) -> StopReason:
        return_code = await process.wait()

        if return_code != 0:
            console.print_debug(f"{self._inhibitor_name} process ended: exit status {return_code}")

        return StopReason.DURATION_ELAPSED

    async def _wait_for_stop(self) -> StopReason:
        await self._stop_event.wait()

        console.print_debug("Stop requested")

        return StopReason.SIGNALED

    async def _terminate(self, process: asyncio.subprocess.Process):
        if process.returncode is None:
            try:
                process.kill()
            except OSError as e:
                console.print_error(f"Failed to stop {self._inhibitor_name}: {e}")
                return

        await process.wait()

        console.print_success(f"Stopped {self._inhibitor_name} - Mac can sleep normally now")

    async def _kill_and_reap(self, process: asyncio.subprocess.Process):
        if process.returncode is not None:
            return

        try:
            process.kill()
        except ProcessLookupError:
            pass

        await asyncio.shield(process.wait())

    @contextmanager
    def _catch_stop_signals(self) -> ContextManager[None]:
        loop = asyncio.get_running_loop()

        for sig in STOP_SIGNALS:
            loop.add_signal_handler(sig, self.stop)

        try:
            yield
        finally:
            for sig in STOP_SIGNALS:
                loop.remove_signal_handler(sig)
