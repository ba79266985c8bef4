import io

from memsdiag import simulator
from memsdiag.buffer import ResponseBuffer
from memsdiag.interactive import InteractiveSession, State, drain, exchange, parse_command_byte
from memsdiag.transport import ErrorKind, IoResult


class FakeLink:
    """Records writes; each write queues the scripted reply for draining."""

    def __init__(self, replies=None, write_ok=True):
        self.replies = dict(replies or {})
        self.write_ok = write_ok
        self.writes = []
        self.reads = 0
        self._pending = bytearray()

    def write_bytes(self, data):
        self.writes.append(bytes(data))
        if not self.write_ok:
            return IoResult.failure(ErrorKind.TRANSPORT_WRITE_FAILED)
        self._pending.extend(self.replies.get(data[0], b''))
        return IoResult.success(data)

    def read_bytes(self, quantity):
        self.reads += 1
        chunk = bytes(self._pending[:quantity])
        del self._pending[:quantity]
        return IoResult.success(chunk)


def run_session(text, link):
    out = io.StringIO()
    session = InteractiveSession(link, ResponseBuffer(), stdin=io.StringIO(text), out=out)
    assert session.run() is True
    assert session.state is State.TERMINATED
    return out.getvalue()


def test_hex_line_writes_one_byte():
    link = FakeLink({0xFF: b'\xff\x01'})
    output = run_session('ff\n', link)
    assert link.writes == [b'\xff']
    assert 'FF 01' in output


def test_out_of_range_does_not_write():
    link = FakeLink()
    output = run_session('100\n', link)
    assert link.writes == []
    assert link.reads == 0
    assert 'Error: command must be between 0x00 and 0xFF.' in output


def test_blank_line_only_reprompts():
    link = FakeLink()
    output = run_session('\n   \n', link)
    assert link.writes == []
    assert link.reads == 0
    assert output.count('> ') == 3


def test_not_hex_does_not_write():
    link = FakeLink()
    output = run_session('zz\n', link)
    assert link.writes == []
    assert "Error: 'zz' is not a hex value." in output


def test_empty_drain_reports_no_response():
    link = FakeLink()
    output = run_session('d0\n', link)
    assert link.writes == [b'\xd0']
    assert link.reads == 1
    assert output == "Enter a command (in hex) or 'quit'.\n> No response from ECU.\n> "


def test_write_failure_reported():
    link = FakeLink(write_ok=False)
    output = run_session('80\n', link)
    assert 'Error: failed to write command byte to serial port.' in output
    assert link.reads == 0


def test_quit_words_stop_before_later_lines():
    for word in ('q', 'quit'):
        link = FakeLink()
        run_session(f'{word}\nff\n', link)
        assert link.writes == []


def test_quit_is_case_sensitive():
    link = FakeLink()
    output = run_session('QUIT\n', link)
    assert "Error: 'QUIT' is not a hex value." in output


def test_quit_must_match_the_whole_line():
    link = FakeLink()
    output = run_session('  q  \nquit\r\n', link)
    assert "Error: 'q' is not a hex value." in output
    assert link.writes == []
    assert output.count('> ') == 2


def test_end_of_input_terminates():
    output = run_session('', FakeLink())
    assert output.startswith("Enter a command (in hex) or 'quit'.")


def test_long_reply_wraps_at_sixteen_bytes():
    link = FakeLink({0x80: bytes(range(20))})
    output = run_session('0x80\n', link)
    assert '00 01 02 03 04 05 06 07 08 09 0A 0B 0C 0D 0E 0F\n10 11 12 13' in output


def test_buffer_restarts_for_every_command():
    link = FakeLink({0x01: b'\xaa\xbb', 0x02: b'\xcc'})
    buf = ResponseBuffer()
    assert exchange(link, 0x01, buf) == b'\xaa\xbb'
    assert exchange(link, 0x02, buf) == b'\xcc'
    assert len(buf) == 1


def test_drain_is_bounded_by_buffer():
    link = FakeLink({0x01: bytes(10)})
    link.write_bytes(b'\x01')
    buf = ResponseBuffer(capacity=4)
    assert drain(link, buf) == bytes(4)
    assert buf.dropped == 6
    assert link.reads == 11


def test_parse_command_byte():
    assert parse_command_byte('ff') == 0xFF
    assert parse_command_byte('0x0a') == 0x0A
    assert parse_command_byte('100') == 0x100
    assert parse_command_byte('-1') == -1
    assert parse_command_byte('xyz') is None


def test_simulator_echoes_and_answers():
    ecu = simulator.SimulatedEcu(iac_position=0x33)
    output = run_session('fb\nf4\nq\n', ecu)
    assert 'FB 33' in output
    assert 'F4 00' in output
