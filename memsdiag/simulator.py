"""In-memory MEMS 1.6 ECU for tests, demos and the web API's simulator mode.

It implements the same transport contract as `serial_link.MemsLink`: the IAC
valve moves a fixed step per open/close command, relays remember their
state, and raw writes are answered with an echo plus the reply the real ECU
would send. Failures can be injected per operation.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from . import protocols
from .transport import ActuatorCommand, ActuatorOutcome, ErrorKind, IoResult, TelemetrySnapshot

ECU_ID = bytes([0x99, 0x00, 0x02, 0x03])
IAC_FULLY_OPEN = 0xB4

_RELAYS = {
    ActuatorCommand.FUEL_PUMP_ON: ('fuel_pump', True),
    ActuatorCommand.FUEL_PUMP_OFF: ('fuel_pump', False),
    ActuatorCommand.PTC_RELAY_ON: ('ptc', True),
    ActuatorCommand.PTC_RELAY_OFF: ('ptc', False),
    ActuatorCommand.AC_RELAY_ON: ('ac', True),
    ActuatorCommand.AC_RELAY_OFF: ('ac', False),
}


def _raw_temp(degrees_c: int) -> int:
    return (degrees_c + 55) & 0xFF


class SimulatedEcu:
    def __init__(self, iac_position: int = 0x40, iac_step: int = 0x14, engine_rpm: int = 850,
                 coolant_c: int = 88, fail_handshake: bool = False, failed_reads: int = 0,
                 failing_actuators: Iterable[ActuatorCommand] = (), responses: Optional[Dict[int, bytes]] = None):
        self.iac_position = iac_position
        self.iac_step = iac_step
        self.engine_rpm = engine_rpm
        self.coolant_c = coolant_c
        self.fail_handshake = fail_handshake
        self.failed_reads = failed_reads
        self.failing_actuators = set(failing_actuators)
        self.responses = dict(responses or {})
        self.relays: Dict[str, bool] = {name: False for name, _ in _RELAYS.values()}
        self.actuator_log: List[ActuatorCommand] = []
        self.written = bytearray()
        self.connected = True
        self.disconnect_count = 0
        self._pending = bytearray()

    def disconnect(self) -> None:
        self.connected = False
        self.disconnect_count += 1

    def init_link(self) -> Optional[bytes]:
        return None if self.fail_handshake else ECU_ID

    def frame80(self) -> bytes:
        f = bytearray(protocols.FRAME80_SIZE)
        f[0] = protocols.FRAME80_SIZE
        f[1] = (self.engine_rpm >> 8) & 0xFF
        f[2] = self.engine_rpm & 0xFF
        f[3] = _raw_temp(self.coolant_c)
        f[4] = _raw_temp(20)
        f[5] = _raw_temp(30)
        f[6] = _raw_temp(25)
        f[7] = 35
        f[8] = 138
        f[9] = 30
        f[0x0A] = 0x10
        f[0x12] = self.iac_position
        return bytes(f)

    def frame7d(self) -> bytes:
        f = bytearray(protocols.FRAME7D_SIZE)
        f[0] = protocols.FRAME7D_SIZE
        f[1] = 0x12
        return bytes(f)

    def _read_fails(self) -> bool:
        if self.failed_reads > 0:
            self.failed_reads -= 1
            return True
        return False

    def read_raw_frames(self) -> Optional[Tuple[bytes, bytes]]:
        if self._read_fails():
            return None
        return self.frame80(), self.frame7d()

    def read_snapshot(self) -> Optional[TelemetrySnapshot]:
        frames = self.read_raw_frames()
        if frames is None:
            return None
        return protocols.decode_snapshot(*frames)

    def read_iac_position(self) -> Optional[int]:
        if self._read_fails():
            return None
        return self.iac_position

    def test_actuator(self, command: ActuatorCommand) -> ActuatorOutcome:
        self.actuator_log.append(command)
        if command in self.failing_actuators:
            return ActuatorOutcome(success=False)
        if command is ActuatorCommand.OPEN_IAC:
            self.iac_position = min(self.iac_position + self.iac_step, IAC_FULLY_OPEN)
            return ActuatorOutcome(success=True, observed_byte=self.iac_position)
        if command is ActuatorCommand.CLOSE_IAC:
            self.iac_position = max(self.iac_position - self.iac_step, 0)
            return ActuatorOutcome(success=True, observed_byte=self.iac_position)
        if command in _RELAYS:
            name, state = _RELAYS[command]
            self.relays[name] = state
        return ActuatorOutcome(success=True, observed_byte=0x00)

    def _reply_to(self, code: int) -> bytes:
        if code in self.responses:
            return self.responses[code]
        if code == protocols.REQ_DATA_80:
            return self.frame80()
        if code == protocols.REQ_DATA_7D:
            return self.frame7d()
        if code == protocols.GET_IAC_POSITION:
            return bytes([self.iac_position])
        if code == protocols.HEARTBEAT:
            return b'\x00'
        if code == protocols.INIT_ECU_ID:
            return ECU_ID
        try:
            command = ActuatorCommand(code)
        except ValueError:
            return b''
        outcome = self.test_actuator(command)
        return bytes([outcome.observed_byte or 0])

    def write_bytes(self, data: bytes) -> IoResult:
        if not self.connected:
            return IoResult.failure(ErrorKind.TRANSPORT_WRITE_FAILED)
        for code in data:
            self.written.append(code)
            self._pending.append(code)
            self._pending.extend(self._reply_to(code))
        return IoResult.success(data)

    def read_bytes(self, quantity: int) -> IoResult:
        if not self.connected:
            return IoResult.failure(ErrorKind.TRANSPORT_READ_FAILED)
        chunk = bytes(self._pending[:quantity])
        del self._pending[:quantity]
        return IoResult.success(chunk)


def connect(device: str = 'sim', **kwargs) -> SimulatedEcu:
    """Factory with the same shape as `serial_link.connect`; `device` is ignored."""
    return SimulatedEcu(**kwargs)
