import io

from memsdiag import simulator
from memsdiag.loop import Count
from memsdiag.telemetry import read_iac, read_loop, read_raw_loop
from memsdiag.transport import TelemetrySnapshot


SNAP = TelemetrySnapshot(
    engine_rpm=850, coolant_temp_f=190, ambient_temp_f=68, intake_air_temp_f=86,
    fuel_temp_f=77, map_kpa=35.0, battery_voltage=13.8, throttle_pot_voltage=0.6,
    idle_switch=1, park_neutral_switch=0, fault_codes=0, iac_position=0x40,
)


class ScriptedReads:
    """Returns queued readings in order; None entries are failed reads."""

    def __init__(self, readings):
        self.readings = list(readings)
        self.calls = 0

    def _next(self):
        self.calls += 1
        return self.readings.pop(0) if self.readings else None

    def read_snapshot(self):
        return self._next()

    def read_raw_frames(self):
        return self._next()

    def read_iac_position(self):
        return self._next()


def test_zero_count_never_reads_and_fails():
    t = ScriptedReads([SNAP])
    out = io.StringIO()
    assert read_loop(t, Count(0), out=out) is False
    assert t.calls == 0
    assert out.getvalue() == ''


def test_all_failures_use_every_iteration():
    t = ScriptedReads([])
    assert read_loop(t, Count(7), out=io.StringIO()) is False
    assert t.calls == 7


def test_one_success_is_enough():
    t = ScriptedReads([None, None, SNAP, None])
    out = io.StringIO()
    assert read_loop(t, Count(4), out=out) is True
    assert t.calls == 4
    assert out.getvalue().count('RPM: 850') == 1
    assert '-------------' in out.getvalue()


def test_interrupt_stops_infinite_loop():
    class Interrupting(ScriptedReads):
        def read_snapshot(self):
            if self.calls == 3:
                raise KeyboardInterrupt
            return super().read_snapshot()

    from memsdiag.loop import Infinite
    t = Interrupting([SNAP, SNAP, SNAP])
    assert read_loop(t, Infinite(), out=io.StringIO()) is True
    assert t.calls == 3


def test_raw_loop_prints_labelled_dumps():
    frame80 = bytes(range(0x1C))
    frame7d = bytes(range(0x20))
    t = ScriptedReads([(frame80, frame7d)])
    out = io.StringIO()
    assert read_raw_loop(t, Count(1), out=out) is True
    lines = out.getvalue().splitlines()
    assert lines[0] == '80: 00 01 02 03 04 05 06 07 08 09 0A 0B 0C 0D 0E 0F'
    assert lines[1] == '    10 11 12 13 14 15 16 17 18 19 1A 1B'
    assert lines[2].startswith('7D: 00 01')
    assert lines[3] == '    10 11 12 13 14 15 16 17 18 19 1A 1B 1C 1D 1E 1F'


def test_read_loop_against_simulator_skips_noise():
    ecu = simulator.SimulatedEcu(failed_reads=2)
    out = io.StringIO()
    assert read_loop(ecu, Count(3), out=out) is True
    assert out.getvalue().count('RPM:') == 1


def test_read_iac_formats_position():
    out = io.StringIO()
    assert read_iac(ScriptedReads([0x5A]), out=out) is True
    assert out.getvalue() == '0x5A\n'


def test_read_iac_failure():
    out = io.StringIO()
    assert read_iac(ScriptedReads([]), out=out) is False
    assert out.getvalue() == ''
