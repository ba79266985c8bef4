"""One diagnostic session: connect, handshake, run a command, disconnect.

The session owns the transport and the response buffer. Both are acquired on
entry and the transport is released exactly once on exit, whatever path the
command took.
"""
import sys
import time
from typing import Callable, Optional

from . import serial_link
from .actuators import ActuatorPolicy, is_actuator_test, run_actuator_test
from .buffer import ResponseBuffer
from .commands import CommandId, command_name
from .interactive import InteractiveSession
from .logger import get_logger
from .loop import Count, LoopSpec
from .render import format_ack
from .telemetry import read_iac, read_loop, read_raw_loop
from .transport import ErrorKind, MemsTransport

logger = get_logger(__name__)


def dispatch(transport: MemsTransport, command_id: CommandId, loop: LoopSpec, buffer: ResponseBuffer,
             policy: Optional[ActuatorPolicy] = None, stdin=None, out=None,
             sleep: Callable[[float], None] = time.sleep) -> bool:
    """Run `command_id` over an already initialised link and report success."""
    out = out or sys.stdout
    if command_id is CommandId.READ:
        return read_loop(transport, loop, out=out)
    if command_id is CommandId.READ_RAW:
        return read_raw_loop(transport, loop, out=out)
    if command_id is CommandId.READ_IAC:
        return read_iac(transport, out=out)
    if command_id is CommandId.INTERACTIVE:
        return InteractiveSession(transport, buffer, stdin=stdin, out=out).run()
    if is_actuator_test(command_id):
        return run_actuator_test(transport, command_id, policy=policy, sleep=sleep)
    raise ValueError(f'unhandled command: {command_id}')


class DiagSession:
    def __init__(self, device: str, connect: Callable[[str], Optional[MemsTransport]] = serial_link.connect,
                 policy: Optional[ActuatorPolicy] = None, stdin=None, out=None,
                 sleep: Callable[[float], None] = time.sleep):
        self.device = device
        self._connect = connect
        self.policy = policy or ActuatorPolicy()
        self.stdin = stdin
        self.out = out or sys.stdout
        self.sleep = sleep
        self.transport: Optional[MemsTransport] = None
        self.buffer: Optional[ResponseBuffer] = None
        self.error: Optional[ErrorKind] = None

    def open(self) -> bool:
        try:
            self.buffer = ResponseBuffer()
        except MemoryError:
            self.error = ErrorKind.ALLOCATION_FAILED
            return False
        logger.debug('connecting to %s', self.device)
        self.transport = self._connect(self.device)
        if self.transport is None:
            self.error = ErrorKind.DEVICE_OPEN_FAILED
            return False
        return True

    def close(self):
        transport, self.transport = self.transport, None
        if transport is not None:
            logger.debug('disconnecting from %s', self.device)
            transport.disconnect()

    def handshake(self) -> bool:
        ack = self.transport.init_link()
        if ack is None:
            self.error = ErrorKind.HANDSHAKE_FAILED
            return False
        self.buffer.load(ack)
        return True

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def run(self, command_id: CommandId, loop: LoopSpec = Count(1)) -> bool:
        """Connect, initialise the link and run `command_id`, printing progress to `out`."""
        if command_id is not CommandId.INTERACTIVE:
            print(f'Running command: {command_name(command_id)}', file=self.out)
        with self:
            if self.error is ErrorKind.ALLOCATION_FAILED:
                print('Error allocating command buffer memory.', file=self.out)
                return False
            if self.transport is None:
                print(f'Error: could not open serial device ({self.device}).', file=self.out)
                return False
            if not self.handshake():
                print('Error in initialization sequence.', file=self.out)
                return False
            print(format_ack(self.buffer.contents()) + '\n', file=self.out)
            return dispatch(self.transport, command_id, loop, self.buffer, policy=self.policy,
                            stdin=self.stdin, out=self.out, sleep=self.sleep)
