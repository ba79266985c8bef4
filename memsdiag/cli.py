#!/usr/bin/env python3
import argparse
import functools
import logging
import os
import sys

from memsdiag import __version__, serial_link
from memsdiag.actuators import ActuatorPolicy
from memsdiag.commands import CommandId, list_commands, resolve
from memsdiag.logger import set_level
from memsdiag.loop import parse_loop_spec
from memsdiag.session import DiagSession

EXIT_OK = 0
EXIT_RUNTIME_FAILURE = 1
EXIT_ARGUMENT_ERROR = 2


def usage(prog: str) -> str:
    lines = [
        f'{prog} (memsdiag v{__version__})',
        'Diagnostic utility using ROSCO protocol for MEMS 1.6 systems',
        f'Usage: {prog} [--timeout SECONDS] [--debug] <serial device> <command> [read-loop-count]',
        ' where <command> is one of the following:',
    ]
    lines += [f'\t{name}' for name in list_commands()]
    lines.append(" and [read-loop-count] is either a number or 'inf' to read forever.")
    return '\n'.join(lines)


def _add_link_options(p):
    p.add_argument('--timeout', type=float, default=0.5, help='serial read timeout in seconds')
    p.add_argument('--debug', action='store_true', help='log protocol traffic to stderr')
    p.add_argument('-h', '--help', action='store_true')


def _session(args, out=None, stdin=None):
    if args.debug:
        set_level(logging.DEBUG)
    connect = functools.partial(serial_link.connect, timeout=args.timeout)
    return DiagSession(args.device, connect=connect, policy=ActuatorPolicy.from_env(), stdin=stdin, out=out)


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    prog = os.path.basename(sys.argv[0]) or 'readmems'
    p = argparse.ArgumentParser(prog=prog, add_help=False)
    p.add_argument('device', nargs='?')
    p.add_argument('command', nargs='?')
    p.add_argument('loop', nargs='?')
    _add_link_options(p)
    args = p.parse_args(argv)

    if args.help or args.command is None:
        print(usage(prog))
        return EXIT_OK

    command_id = resolve(args.command)
    if command_id is None:
        print(f'Invalid command: {args.command}')
        return EXIT_ARGUMENT_ERROR
    try:
        loop = parse_loop_spec(args.loop)
    except ValueError:
        print(f'Invalid loop count: {args.loop}')
        return EXIT_ARGUMENT_ERROR

    ok = _session(args).run(command_id, loop)
    return EXIT_OK if ok else EXIT_RUNTIME_FAILURE


def interactive_main(argv=None) -> int:
    """Open the raw-command console on a device without going through the command table."""
    argv = sys.argv[1:] if argv is None else argv
    p = argparse.ArgumentParser(prog='readmems-interactive', add_help=False)
    p.add_argument('device', nargs='?')
    _add_link_options(p)
    args = p.parse_args(argv)
    if args.help or args.device is None:
        print('Usage: readmems-interactive [--timeout SECONDS] [--debug] <serial device>')
        return EXIT_OK
    ok = _session(args).run(CommandId.INTERACTIVE)
    return EXIT_OK if ok else EXIT_RUNTIME_FAILURE


if __name__ == '__main__':
    sys.exit(main())
