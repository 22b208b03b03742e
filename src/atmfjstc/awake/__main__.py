import sys
import asyncio

from typing import Optional, Sequence

from atmfjstc.awake.background import is_background_instance, relaunch_in_background
from atmfjstc.awake.console import console
from atmfjstc.awake.errors import pretty_unhandled
from atmfjstc.awake.options import resolve_options, render_help, render_version
from atmfjstc.awake.supervisor import Supervisor, locate_inhibitor


@pretty_unhandled
def main(args: Optional[Sequence[str]] = None):
    if args is None:
        args = sys.argv[1:]

    config = resolve_options(args)

    if config.show_version:
        console.enable_stdout().print_info(render_version())
        return
    if config.show_help:
        console.enable_stdout().print_info(render_help())
        return

    console.configure(quiet=config.quiet, debug=config.debug)

    if config.background and not is_background_instance():
        relaunch_in_background(config, args)
        return

    inhibitor_path = locate_inhibitor()

    asyncio.run(Supervisor(config, inhibitor_path).run())


if __name__ == '__main__':
    main()
