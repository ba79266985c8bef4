#!/usr/bin/env python3
"""Run every registered command against the simulated ECU.

Useful for checking the session flow without a car attached. Run from the
project root with the venv activated.
"""
import io

from memsdiag import simulator
from memsdiag.commands import COMMANDS, CommandId
from memsdiag.loop import Count
from memsdiag.session import DiagSession


def run():
    failed = []
    for desc in COMMANDS:
        stdin = io.StringIO('f4\nfb\nquit\n') if desc.id is CommandId.INTERACTIVE else None
        session = DiagSession('sim', connect=simulator.connect, stdin=stdin, sleep=lambda s: None)
        ok = session.run(desc.id, Count(2))
        print(f'{desc.name}: ok={ok}\n')
        if not ok:
            failed.append(desc.name)
    if failed:
        print('FAILED:', ', '.join(failed))
        raise SystemExit(2)
    print('SIM_SESSION_OK')


if __name__ == '__main__':
    run()
