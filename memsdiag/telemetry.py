"""Repeated telemetry reads.

A failed read is logged and skipped; it uses up its iteration but never stops
the loop, so line noise on a long poll does not end the session. The run
succeeds when at least one iteration produced data.
"""
import sys

from .logger import get_logger
from .loop import LoopSpec, iterations
from .render import format_raw_frames, format_snapshot
from .transport import MemsTransport

logger = get_logger(__name__)


def _run(spec: LoopSpec, acquire, render, label, out) -> bool:
    success = False
    attempts = 0
    try:
        for index in iterations(spec):
            attempts += 1
            reading = acquire()
            if reading is None:
                logger.info('%s iteration %d: no data', label, index)
                continue
            print(render(reading), file=out)
            success = True
    except KeyboardInterrupt:
        logger.info('%s loop interrupted after %d attempts', label, attempts)
    logger.debug('%s loop finished: attempts=%d success=%s', label, attempts, success)
    return success


def read_loop(transport: MemsTransport, spec: LoopSpec, out=None) -> bool:
    """Read and print parsed snapshots according to `spec`."""
    return _run(spec, transport.read_snapshot, format_snapshot, 'read', out or sys.stdout)


def read_raw_loop(transport: MemsTransport, spec: LoopSpec, out=None) -> bool:
    """Read and dump the 0x80/0x7D frame pair according to `spec`."""
    return _run(spec, transport.read_raw_frames, lambda frames: format_raw_frames(*frames), 'read-raw', out or sys.stdout)


def read_iac(transport: MemsTransport, out=None) -> bool:
    position = transport.read_iac_position()
    if position is None:
        logger.info('IAC position read failed')
        return False
    print(f'0x{position:02X}', file=out or sys.stdout)
    return True
