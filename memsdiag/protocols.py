"""ROSCO protocol constants and data-frame decoding.

The ECU echoes every command byte before sending its reply. Data frames carry
their own length in the first byte. Only the fields the tool displays are
decoded; the rest of each frame is passed through untouched.
"""
from typing import Optional

from .transport import TelemetrySnapshot

INIT_COMMAND_A = 0xCA
INIT_COMMAND_B = 0x75
INIT_ECU_ID = 0xD0
REQ_DATA_80 = 0x80
REQ_DATA_7D = 0x7D
GET_IAC_POSITION = 0xFB
HEARTBEAT = 0xF4

ECU_ID_SIZE = 4
FRAME80_SIZE = 0x1C
FRAME7D_SIZE = 0x20

# offsets into the 0x80 frame
_RPM_HI = 0x01
_RPM_LO = 0x02
_COOLANT = 0x03
_AMBIENT = 0x04
_INTAKE_AIR = 0x05
_FUEL_TEMP = 0x06
_MAP = 0x07
_BATTERY = 0x08
_THROTTLE = 0x09
_IDLE_SWITCH = 0x0A
_PARK_NEUTRAL = 0x0C
_DTC0 = 0x0D
_DTC1 = 0x0E
_IAC_POSITION = 0x12

_TEMP_OFFSET_C = 55


def temperature_to_f(raw: int) -> int:
    """Convert a raw temperature byte (degC + 55) to whole degrees F."""
    degrees_c = raw - _TEMP_OFFSET_C
    return int(round(degrees_c * 1.8 + 32))


def valid_frame(frame: bytes, expected_size: int) -> bool:
    return len(frame) == expected_size and frame[0] == expected_size


def decode_snapshot(frame80: bytes, frame7d: bytes) -> Optional[TelemetrySnapshot]:
    """Build a snapshot from a 0x80/0x7D frame pair, or None if either is malformed."""
    if not valid_frame(frame80, FRAME80_SIZE) or not valid_frame(frame7d, FRAME7D_SIZE):
        return None
    f = frame80
    return TelemetrySnapshot(
        engine_rpm=(f[_RPM_HI] << 8) | f[_RPM_LO],
        coolant_temp_f=temperature_to_f(f[_COOLANT]),
        ambient_temp_f=temperature_to_f(f[_AMBIENT]),
        intake_air_temp_f=temperature_to_f(f[_INTAKE_AIR]),
        fuel_temp_f=temperature_to_f(f[_FUEL_TEMP]),
        map_kpa=float(f[_MAP]),
        battery_voltage=f[_BATTERY] / 10.0,
        throttle_pot_voltage=f[_THROTTLE] * 0.02,
        idle_switch=1 if f[_IDLE_SWITCH] & 0x10 else 0,
        park_neutral_switch=0 if f[_PARK_NEUTRAL] == 0 else 1,
        fault_codes=f[_DTC0] | (f[_DTC1] << 8),
        iac_position=f[_IAC_POSITION],
    )
