"""Text rendering of ECU replies for the operator."""
from typing import List

from .transport import TelemetrySnapshot

BYTES_PER_LINE = 16


def hexdump_lines(data: bytes, width: int = BYTES_PER_LINE) -> List[str]:
    return [' '.join(f'{b:02X}' for b in data[i:i + width]) for i in range(0, len(data), width)]


def hexdump(data: bytes, width: int = BYTES_PER_LINE) -> str:
    """Upper-case hex, `width` bytes per line."""
    return '\n'.join(hexdump_lines(data, width))


def labelled_hexdump(label: str, data: bytes, width: int = BYTES_PER_LINE) -> str:
    prefix = f'{label}: '
    lines = hexdump_lines(data, width) or ['']
    pad = ' ' * len(prefix)
    return '\n'.join([prefix + lines[0]] + [pad + line for line in lines[1:]])


def format_raw_frames(frame80: bytes, frame7d: bytes) -> str:
    return labelled_hexdump('80', frame80) + '\n' + labelled_hexdump('7D', frame7d)


def format_snapshot(snap: TelemetrySnapshot) -> str:
    return '\n'.join([
        f'RPM: {snap.engine_rpm}',
        f'Coolant (deg F): {snap.coolant_temp_f}',
        f'Ambient (deg F): {snap.ambient_temp_f}',
        f'Intake air (deg F): {snap.intake_air_temp_f}',
        f'Fuel temp (deg F): {snap.fuel_temp_f}',
        f'MAP (kPa): {snap.map_kpa:f}',
        f'Main voltage: {snap.battery_voltage:f}',
        f'Throttle pot voltage: {snap.throttle_pot_voltage:f}',
        f'Idle switch: {snap.idle_switch}',
        f'Park/neutral switch: {snap.park_neutral_switch}',
        f'Fault codes: {snap.fault_codes}',
        f'IAC position: {snap.iac_position}',
        '-------------',
    ])


def format_ack(ack: bytes) -> str:
    return 'ECU responded to D0 command with: ' + ' '.join(f'{b:02X}' for b in ack)
