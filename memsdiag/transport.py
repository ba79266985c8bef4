"""Transport contract shared by the serial adapter and the simulated ECU.

The session logic only talks to objects that satisfy `MemsTransport`; how the
bytes travel (pyserial, an in-memory simulator, a test fake) is up to the
implementation. Operations report failure through their return values:
`None` for a failed read, `ActuatorOutcome.success` for probes and
`IoResult` for raw reads and writes.
"""
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Protocol, Tuple


class ErrorKind(Enum):
    DEVICE_OPEN_FAILED = 'device open failed'
    HANDSHAKE_FAILED = 'handshake failed'
    TRANSPORT_READ_FAILED = 'transport read failed'
    TRANSPORT_WRITE_FAILED = 'transport write failed'
    COMMAND_NOT_RECOGNIZED = 'command not recognized'
    ARGUMENT_OUT_OF_RANGE = 'argument out of range'
    ALLOCATION_FAILED = 'allocation failed'


@dataclass(frozen=True)
class IoResult:
    """Outcome of a raw read or write: `Ok(data)` or `Err(kind)`."""
    data: bytes = b''
    error: Optional[ErrorKind] = None

    @classmethod
    def success(cls, data: bytes = b'') -> 'IoResult':
        return cls(data=bytes(data))

    @classmethod
    def failure(cls, kind: ErrorKind) -> 'IoResult':
        return cls(error=kind)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def count(self) -> int:
        # failures count as "nothing transferred"
        return len(self.data) if self.ok else 0


class ActuatorCommand(IntEnum):
    FUEL_PUMP_ON = 0x11
    FUEL_PUMP_OFF = 0x01
    PTC_RELAY_ON = 0x12
    PTC_RELAY_OFF = 0x02
    AC_RELAY_ON = 0x13
    AC_RELAY_OFF = 0x03
    TEST_INJECTORS = 0xF7
    FIRE_COIL = 0xF8
    OPEN_IAC = 0xFD
    CLOSE_IAC = 0xFE


@dataclass(frozen=True)
class ActuatorOutcome:
    success: bool
    observed_byte: Optional[int] = None


@dataclass(frozen=True)
class TelemetrySnapshot:
    engine_rpm: int
    coolant_temp_f: int
    ambient_temp_f: int
    intake_air_temp_f: int
    fuel_temp_f: int
    map_kpa: float
    battery_voltage: float
    throttle_pot_voltage: float
    idle_switch: int
    park_neutral_switch: int
    fault_codes: int
    iac_position: int


class MemsTransport(Protocol):
    def disconnect(self) -> None: ...

    def init_link(self) -> Optional[bytes]: ...

    def read_snapshot(self) -> Optional[TelemetrySnapshot]: ...

    def read_raw_frames(self) -> Optional[Tuple[bytes, bytes]]: ...

    def read_iac_position(self) -> Optional[int]: ...

    def test_actuator(self, command: ActuatorCommand) -> ActuatorOutcome: ...

    def read_bytes(self, quantity: int) -> IoResult: ...

    def write_bytes(self, data: bytes) -> IoResult: ...
