"""
Keeps a Mac awake by supervising the system's ``caffeinate`` utility, either until interrupted or for a limited time,
optionally detached from the terminal.

The tool is meant to be run from the command line (``awake`` or ``python -m atmfjstc.awake``). The inhibitor process is
always reaped when the program finishes normally or is stopped via SIGINT/SIGTERM, so that the machine will not be kept
awake indefinitely by accident.
"""

__version__ = '0.1.0'


APP_NAME = 'awake'
