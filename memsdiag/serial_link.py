import serial
from typing import Optional, Tuple

from . import protocols
from .logger import get_logger
from .transport import ActuatorCommand, ActuatorOutcome, ErrorKind, IoResult, TelemetrySnapshot

logger = get_logger(__name__)

MEMS_BAUD = 9600


class MemsLink:
    """pyserial-backed transport for a MEMS 1.6 ECU.

    Every command is a single byte which the ECU echoes before its reply. Serial
    errors never escape this class; they are logged and reported as failed
    results.
    """

    def __init__(self, device, timeout=0.5):
        self.device = device
        self.timeout = float(timeout)
        self._ser = None

    @property
    def is_open(self) -> bool:
        return bool(self._ser and getattr(self._ser, 'is_open', False))

    def open(self):
        logger.debug('Opening serial %s @%d', self.device, MEMS_BAUD)
        self._ser = serial.Serial(
            self.device,
            MEMS_BAUD,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=self.timeout,
        )
        return self._ser

    def close(self):
        if self.is_open:
            logger.debug('Closing serial %s', self.device)
            try:
                self._ser.close()
            except (serial.SerialException, OSError) as e:
                logger.debug('Error closing serial: %s', e)
        self._ser = None

    def disconnect(self) -> None:
        self.close()

    def write_bytes(self, data: bytes) -> IoResult:
        if not self.is_open:
            return IoResult.failure(ErrorKind.TRANSPORT_WRITE_FAILED)
        try:
            written = self._ser.write(data)
        except (serial.SerialException, OSError) as e:
            logger.debug('write to %s failed: %s', self.device, e)
            return IoResult.failure(ErrorKind.TRANSPORT_WRITE_FAILED)
        if written != len(data):
            logger.debug('short write to %s: %s of %d bytes', self.device, written, len(data))
            return IoResult.failure(ErrorKind.TRANSPORT_WRITE_FAILED)
        return IoResult.success(data)

    def read_bytes(self, quantity: int) -> IoResult:
        """Read up to `quantity` bytes; an empty result means the read timed out."""
        if not self.is_open:
            return IoResult.failure(ErrorKind.TRANSPORT_READ_FAILED)
        try:
            chunk = self._ser.read(quantity)
        except (serial.SerialException, OSError) as e:
            logger.debug('read from %s failed: %s', self.device, e)
            return IoResult.failure(ErrorKind.TRANSPORT_READ_FAILED)
        return IoResult.success(chunk)

    def _command(self, code: int, reply_size: int) -> Optional[bytes]:
        """Send one command byte and return the reply that follows its echo."""
        if not self.write_bytes(bytes([code])).ok:
            return None
        result = self.read_bytes(1 + reply_size)
        if not result.ok:
            return None
        if len(result.data) != 1 + reply_size:
            logger.debug('command %02X: expected %d bytes, got %d', code, 1 + reply_size, len(result.data))
            return None
        if result.data[0] != code:
            logger.debug('command %02X: bad echo %02X', code, result.data[0])
            return None
        return result.data[1:]

    def init_link(self) -> Optional[bytes]:
        for code in (protocols.INIT_COMMAND_A, protocols.INIT_COMMAND_B):
            if self._command(code, 0) is None:
                return None
        return self._command(protocols.INIT_ECU_ID, protocols.ECU_ID_SIZE)

    def read_raw_frames(self) -> Optional[Tuple[bytes, bytes]]:
        frame80 = self._command(protocols.REQ_DATA_80, protocols.FRAME80_SIZE)
        if frame80 is None:
            return None
        frame7d = self._command(protocols.REQ_DATA_7D, protocols.FRAME7D_SIZE)
        if frame7d is None:
            return None
        return frame80, frame7d

    def read_snapshot(self) -> Optional[TelemetrySnapshot]:
        frames = self.read_raw_frames()
        if frames is None:
            return None
        return protocols.decode_snapshot(*frames)

    def read_iac_position(self) -> Optional[int]:
        reply = self._command(protocols.GET_IAC_POSITION, 1)
        return reply[0] if reply is not None else None

    def test_actuator(self, command: ActuatorCommand) -> ActuatorOutcome:
        reply = self._command(int(command), 1)
        if reply is None:
            return ActuatorOutcome(success=False)
        return ActuatorOutcome(success=True, observed_byte=reply[0])

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def connect(device: str, timeout: float = 0.5) -> Optional[MemsLink]:
    """Open `device` and return a link, or None when the port cannot be opened."""
    link = MemsLink(device, timeout=timeout)
    try:
        link.open()
    except (serial.SerialException, OSError) as e:
        logger.debug('could not open %s: %s', device, e)
        return None
    return link
