import os
import sys
import signal
import shutil
import asyncio
import tempfile
import unittest

from datetime import timedelta
from io import StringIO
from contextlib import redirect_stdout, redirect_stderr
from pathlib import Path
from unittest import mock

from atmfjstc.awake.console import console
from atmfjstc.awake.errors import DescriptiveError
from atmfjstc.awake.options import RunConfig
from atmfjstc.awake.supervisor import Supervisor, StopReason, inhibitor_args, locate_inhibitor


# Stands in for `caffeinate`: records its PID and arguments, then sleeps for the -t time, or "forever"
FAKE_INHIBITOR = """#!/bin/sh
dir=$(dirname "$0")
printf '%s\\n' "$*" > "$dir/args.tmp"
mv "$dir/args.tmp" "$dir/args.txt"
echo $$ > "$dir/pid.tmp"
mv "$dir/pid.tmp" "$dir/pid.txt"
if [ "$3" = "-t" ]; then
    exec sleep "$4"
fi
exec sleep 3600
"""


class InhibitorArgsTest(unittest.TestCase):
    def test_unbounded(self):
        self.assertEqual(inhibitor_args(None), ['-d', '-i'])
        self.assertEqual(inhibitor_args(timedelta(0)), ['-d', '-i'])

    def test_bounded(self):
        self.assertEqual(inhibitor_args(timedelta(hours=2)), ['-d', '-i', '-t', '7200'])

    def test_whole_seconds(self):
        self.assertEqual(inhibitor_args(timedelta(seconds=90, milliseconds=999)), ['-d', '-i', '-t', '90'])


class LocateInhibitorTest(unittest.TestCase):
    def test_found(self):
        with mock.patch('atmfjstc.awake.supervisor.find_command', return_value='/usr/bin/caffeinate'):
            self.assertEqual(locate_inhibitor(), '/usr/bin/caffeinate')

    def test_not_found(self):
        with mock.patch('atmfjstc.awake.supervisor.find_command', return_value=None):
            with self.assertRaises(DescriptiveError) as ctx:
                locate_inhibitor()

        self.assertEqual(str(ctx.exception), "caffeinate command not found. This tool requires macOS.")


@unittest.skipIf(sys.platform == 'win32', "Requires a POSIX shell and signals")
class SupervisorTest(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        console.configure()

        self.work_dir = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.work_dir, ignore_errors=True)

        self.inhibitor = self.work_dir / 'caffeinate'
        self.inhibitor.write_text(FAKE_INHIBITOR)
        self.inhibitor.chmod(0o755)

        self.stdout = StringIO()
        self.stderr = StringIO()

        for redirect in [redirect_stdout(self.stdout), redirect_stderr(self.stderr)]:
            redirect.__enter__()
            self.addCleanup(redirect.__exit__, None, None, None)

    def tearDown(self):
        console.configure()

    def _supervisor(self, **config_kwargs) -> Supervisor:
        return Supervisor(RunConfig(**config_kwargs), str(self.inhibitor))

    async def _wait_for_file(self, name: str) -> str:
        path = self.work_dir / name

        for _ in range(200):
            if path.exists():
                return path.read_text().strip()

            await asyncio.sleep(0.05)

        self.fail(f"Fake inhibitor did not write {name}")

    async def _wait_for_signal_handler(self, sig: signal.Signals, original_handler):
        for _ in range(200):
            if signal.getsignal(sig) is not original_handler:
                return

            await asyncio.sleep(0.05)

        self.fail("Signal handlers were not installed")

    def _assert_reaped(self, pid: int):
        with self.assertRaises(ProcessLookupError):
            os.kill(pid, 0)

    async def test_duration_elapses(self):
        reason = await asyncio.wait_for(self._supervisor(duration=timedelta(seconds=1)).run(), 10)

        self.assertEqual(reason, StopReason.DURATION_ELAPSED)
        self.assertEqual(await self._wait_for_file('args.txt'), '-d -i -t 1')
        self._assert_reaped(int(await self._wait_for_file('pid.txt')))

        output = self.stdout.getvalue()
        self.assertIn("Mac will stay awake for 1s", output)
        self.assertIn("Duration completed, exiting", output)

    async def test_stop_when_unbounded(self):
        supervisor = self._supervisor()
        task = asyncio.create_task(supervisor.run())

        pid = int(await self._wait_for_file('pid.txt'))
        supervisor.stop()

        self.assertEqual(await asyncio.wait_for(task, 10), StopReason.SIGNALED)
        self.assertEqual(await self._wait_for_file('args.txt'), '-d -i')
        self._assert_reaped(pid)

        output = self.stdout.getvalue()
        self.assertIn("Mac will stay awake until you press Ctrl+C", output)
        self.assertIn("Stopped caffeinate - Mac can sleep normally now", output)

    async def test_stop_before_duration_elapses(self):
        supervisor = self._supervisor(duration=timedelta(hours=1))
        task = asyncio.create_task(supervisor.run())

        pid = int(await self._wait_for_file('pid.txt'))
        supervisor.stop()

        self.assertEqual(await asyncio.wait_for(task, 10), StopReason.SIGNALED)
        self.assertEqual(await self._wait_for_file('args.txt'), '-d -i -t 3600')
        self._assert_reaped(pid)

    async def _check_stopped_by_signal(self, sig: signal.Signals):
        original_handler = signal.getsignal(sig)
        task = asyncio.create_task(self._supervisor().run())

        pid = int(await self._wait_for_file('pid.txt'))
        await self._wait_for_signal_handler(sig, original_handler)
        os.kill(os.getpid(), sig)

        self.assertEqual(await asyncio.wait_for(task, 10), StopReason.SIGNALED)
        self._assert_reaped(pid)

    async def test_sigterm(self):
        await self._check_stopped_by_signal(signal.SIGTERM)

    async def test_sigint(self):
        await self._check_stopped_by_signal(signal.SIGINT)

    async def test_sigterm_right_after_spawn(self):
        original_spawn = Supervisor._spawn
        spawned = []

        async def spawn_then_signal(supervisor, args):
            process = await original_spawn(supervisor, args)
            spawned.append(process.pid)
            os.kill(os.getpid(), signal.SIGTERM)

            return process

        with mock.patch.object(Supervisor, '_spawn', spawn_then_signal):
            reason = await asyncio.wait_for(self._supervisor().run(), 10)

        self.assertEqual(reason, StopReason.SIGNALED)
        self.assertEqual(len(spawned), 1)
        self._assert_reaped(spawned[0])
        self.assertIn("Stopped caffeinate - Mac can sleep normally now", self.stdout.getvalue())

    async def test_stop_requested_before_run(self):
        supervisor = self._supervisor()
        supervisor.stop()

        self.assertEqual(await asyncio.wait_for(supervisor.run(), 10), StopReason.SIGNALED)

    async def test_quiet(self):
        console.configure(quiet=True, debug=True)

        await asyncio.wait_for(self._supervisor(quiet=True, duration=timedelta(seconds=1)).run(), 10)

        self.assertEqual(self.stdout.getvalue(), "")
        self.assertEqual(self.stderr.getvalue(), "")

    async def test_debug(self):
        console.configure(debug=True)

        await asyncio.wait_for(self._supervisor(debug=True, duration=timedelta(seconds=1)).run(), 10)

        self.assertIn(f"[DEBUG] Running: {self.inhibitor} -d -i -t 1", self.stdout.getvalue())

    async def test_spawn_failure(self):
        supervisor = Supervisor(RunConfig(), str(self.work_dir / 'missing'))

        with self.assertRaises(DescriptiveError) as ctx:
            await supervisor.run()

        self.assertIn("Could not launch 'caffeinate'", str(ctx.exception))

    async def test_kill_failure_is_reported_but_not_fatal(self):
        supervisor = self._supervisor()
        task = asyncio.create_task(supervisor.run())

        pid = int(await self._wait_for_file('pid.txt'))
        self.addCleanup(_kill_quietly, pid)

        with mock.patch.object(
            asyncio.subprocess.Process, 'kill', side_effect=ProcessLookupError("No such process")
        ):
            supervisor.stop()
            self.assertEqual(await asyncio.wait_for(task, 10), StopReason.SIGNALED)

        self.assertIn("ERROR: Failed to stop caffeinate: No such process", self.stderr.getvalue())

        _kill_quietly(pid)
        await asyncio.sleep(0.2)


def _kill_quietly(pid: int):
    try:
        os.kill(pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
