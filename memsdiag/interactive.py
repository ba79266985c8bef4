"""Interactive raw-command console.

Each input line is one command byte in hex. The byte is written to the ECU
and every reply byte is collected until a read comes back empty; replies have
no declared length, so reading until the line goes idle is the only way to
know a reply is complete.
"""
import sys
from enum import Enum
from typing import Optional

from .buffer import ResponseBuffer
from .logger import get_logger
from .render import hexdump
from .transport import MemsTransport

logger = get_logger(__name__)

BANNER = "Enter a command (in hex) or 'quit'."
PROMPT = '> '
QUIT_WORDS = ('q', 'quit')


class State(Enum):
    PROMPT_WAIT = 'prompt-wait'
    TERMINATED = 'terminated'


def parse_command_byte(text: str) -> Optional[int]:
    """Parse `text` as hex (an 0x prefix is allowed); None if it is not a number."""
    try:
        return int(text.strip(), 16)
    except ValueError:
        return None


def drain(transport: MemsTransport, buffer: ResponseBuffer) -> bytes:
    """Read one byte at a time into `buffer` until a read returns nothing."""
    buffer.reset()
    while True:
        result = transport.read_bytes(1)
        if result.count <= 0:
            break
        buffer.append(result.data)
    return buffer.contents()


def exchange(transport: MemsTransport, value: int, buffer: ResponseBuffer) -> Optional[bytes]:
    """Write one command byte and drain the reply. Returns None if the write failed."""
    if not transport.write_bytes(bytes([value])).ok:
        return None
    reply = drain(transport, buffer)
    logger.debug('command %02X: %d reply bytes', value, len(reply))
    return reply


class InteractiveSession:
    def __init__(self, transport: MemsTransport, buffer: ResponseBuffer, stdin=None, out=None):
        self.transport = transport
        self.buffer = buffer
        self.stdin = stdin or sys.stdin
        self.out = out or sys.stdout
        self.state = State.PROMPT_WAIT

    def _say(self, text: str):
        print(text, file=self.out)

    def _prompt(self):
        print(PROMPT, end='', file=self.out, flush=True)

    def handle_line(self, line: str):
        text = line.rstrip('\r\n')
        if text in QUIT_WORDS:
            self.state = State.TERMINATED
            return
        text = text.strip()
        if not text:
            self._prompt()
            return

        value = parse_command_byte(text)
        if value is None:
            self._say(f"Error: '{text}' is not a hex value.")
        elif not 0 <= value <= 0xFF:
            self._say('Error: command must be between 0x00 and 0xFF.')
        else:
            reply = exchange(self.transport, value, self.buffer)
            if reply is None:
                self._say('Error: failed to write command byte to serial port.')
            elif reply:
                self._say(hexdump(reply))
            else:
                self._say('No response from ECU.')
        self._prompt()

    def run(self) -> bool:
        self._say(BANNER)
        self._prompt()
        while self.state is State.PROMPT_WAIT:
            line = self.stdin.readline()
            if not line:
                # end of input
                self.state = State.TERMINATED
                break
            self.handle_line(line)
        return True
