import io

from memsdiag import simulator
from memsdiag.actuators import ActuatorPolicy
from memsdiag.commands import CommandId
from memsdiag.loop import Count
from memsdiag.session import DiagSession
from memsdiag.transport import ActuatorCommand, ErrorKind


class Connector:
    """connect() stand-in that hands out one prepared simulator."""

    def __init__(self, ecu):
        self.ecu = ecu
        self.devices = []

    def __call__(self, device):
        self.devices.append(device)
        return self.ecu


def make_session(ecu, stdin=None):
    out = io.StringIO()
    session = DiagSession('/dev/ttyUSB0', connect=Connector(ecu), out=out, stdin=stdin,
                          policy=ActuatorPolicy(), sleep=lambda s: None)
    return session, out


def test_read_prints_ack_and_snapshot():
    ecu = simulator.SimulatedEcu()
    session, out = make_session(ecu)
    assert session.run(CommandId.READ, Count(2)) is True
    text = out.getvalue()
    assert text.startswith('Running command: read\n')
    assert 'ECU responded to D0 command with: 99 00 02 03\n\n' in text
    assert text.count('RPM: 850') == 2
    assert ecu.disconnect_count == 1


def test_connect_failure():
    session, out = make_session(None)
    assert session.run(CommandId.READ) is False
    assert session.error is ErrorKind.DEVICE_OPEN_FAILED
    assert 'Error: could not open serial device (/dev/ttyUSB0).' in out.getvalue()


def test_handshake_failure_releases_link():
    ecu = simulator.SimulatedEcu(fail_handshake=True)
    session, out = make_session(ecu)
    assert session.run(CommandId.PTC) is False
    assert session.error is ErrorKind.HANDSHAKE_FAILED
    assert 'Error in initialization sequence.' in out.getvalue()
    assert ecu.disconnect_count == 1
    assert ecu.actuator_log == []


def test_actuator_failure_still_releases_link():
    ecu = simulator.SimulatedEcu(failing_actuators=[ActuatorCommand.FUEL_PUMP_ON])
    session, out = make_session(ecu)
    assert session.run(CommandId.FUEL_PUMP) is False
    assert ecu.actuator_log == [ActuatorCommand.FUEL_PUMP_ON]
    assert ecu.disconnect_count == 1


def test_exception_releases_link():
    class Exploding(simulator.SimulatedEcu):
        def read_iac_position(self):
            raise RuntimeError('boom')

    ecu = Exploding()
    session, _ = make_session(ecu)
    try:
        session.run(CommandId.READ_IAC)
    except RuntimeError:
        pass
    assert ecu.disconnect_count == 1
    assert session.transport is None


def test_interactive_has_no_running_banner():
    ecu = simulator.SimulatedEcu()
    session, out = make_session(ecu, stdin=io.StringIO('quit\n'))
    assert session.run(CommandId.INTERACTIVE) is True
    assert 'Running command' not in out.getvalue()


def test_allocation_failure(monkeypatch):
    import memsdiag.session as session_mod

    def no_memory(*args, **kwargs):
        raise MemoryError

    monkeypatch.setattr(session_mod, 'ResponseBuffer', no_memory)
    connector = Connector(simulator.SimulatedEcu())
    out = io.StringIO()
    session = DiagSession('/dev/ttyUSB0', connect=connector, out=out)
    assert session.run(CommandId.INTERACTIVE) is False
    assert session.error is ErrorKind.ALLOCATION_FAILED
    assert connector.devices == []
    assert 'Error allocating command buffer memory.' in out.getvalue()


def test_close_is_idempotent():
    ecu = simulator.SimulatedEcu()
    session, _ = make_session(ecu)
    with session:
        assert session.transport is ecu
    session.close()
    assert ecu.disconnect_count == 1
