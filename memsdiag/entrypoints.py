from __future__ import annotations
import sys


def main() -> None:
    from memsdiag import cli as _cli
    sys.exit(_cli.main())


def interactive_main() -> None:
    # console on a device without naming the 'interactive' command
    from memsdiag import cli as _cli
    sys.exit(_cli.interactive_main())
