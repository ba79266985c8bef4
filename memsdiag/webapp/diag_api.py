from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional
import io
import os
import threading
import time

from memsdiag import serial_link, simulator
from memsdiag.actuators import ActuatorPolicy, is_actuator_test
from memsdiag.audit import audit_write
from memsdiag.buffer import ResponseBuffer
from memsdiag.commands import CommandId, command_name, list_commands, resolve
from memsdiag.interactive import exchange, parse_command_byte
from memsdiag.logger import get_logger
from memsdiag.loop import Infinite, parse_loop_spec
from memsdiag.render import hexdump
from memsdiag.session import dispatch

logger = get_logger(__name__)

router = APIRouter()


class ConnectRequest(BaseModel):
    device: Optional[str] = None
    use_simulator: bool = False
    timeout: float = 0.5


class RunRequest(BaseModel):
    command: str
    loop: Optional[str] = None
    force: bool = False


class SendRequest(BaseModel):
    byte: str


class _SessionManager:
    """Holds the single live ECU link shared by all requests."""

    def __init__(self):
        self._lock = threading.Lock()
        self._conn = None
        self._device = None
        self._simulated = False
        self._buffer = ResponseBuffer()
        # None reads the MEMSDIAG_* overrides on every run
        self.policy: Optional[ActuatorPolicy] = None
        self.sleep = time.sleep

    def connect(self, device: str, use_simulator: bool = False, timeout: float = 0.5):
        with self._lock:
            if self._conn is not None:
                raise RuntimeError('already connected')
            if use_simulator:
                conn = simulator.connect(device)
            else:
                conn = serial_link.connect(device, timeout=timeout)
            if conn is None:
                raise ConnectionError(f'could not open serial device ({device})')
            ack = conn.init_link()
            if ack is None:
                conn.disconnect()
                raise ConnectionError('ECU did not complete the initialization sequence')
            self._buffer.load(ack)
            self._conn = conn
            self._device = device
            self._simulated = use_simulator
            logger.info('connected to %s (simulated=%s)', device, use_simulator)
            return {'connected': True, 'device': device, 'simulated': use_simulator, 'ack_hex': ack.hex()}

    def disconnect(self):
        with self._lock:
            if self._conn is not None:
                self._conn.disconnect()
            self._conn = None
            self._device = None
            self._simulated = False
            return {'connected': False}

    def status(self):
        with self._lock:
            return {'connected': self._conn is not None, 'device': self._device, 'simulated': self._simulated}

    def run(self, command_id: CommandId, loop):
        with self._lock:
            if self._conn is None:
                raise RuntimeError('not connected')
            out = io.StringIO()
            policy = self.policy or ActuatorPolicy.from_env()
            ok = dispatch(self._conn, command_id, loop, self._buffer, policy=policy, out=out, sleep=self.sleep)
            return ok, out.getvalue()

    def send(self, value: int) -> Optional[bytes]:
        with self._lock:
            if self._conn is None:
                raise RuntimeError('not connected')
            return exchange(self._conn, value, self._buffer)


_mgr = _SessionManager()


@router.get('/api/commands')
def api_commands():
    return {'commands': list_commands()}


@router.post('/api/serial/connect')
def api_connect(req: ConnectRequest):
    device = req.device or os.environ.get('MEMSDIAG_DEVICE')
    if req.use_simulator:
        device = device or 'sim'
    if not device:
        raise HTTPException(status_code=400, detail='device required (or set MEMSDIAG_DEVICE)')
    try:
        return _mgr.connect(device, use_simulator=req.use_simulator, timeout=req.timeout)
    except RuntimeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConnectionError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.post('/api/serial/disconnect')
def api_disconnect():
    return _mgr.disconnect()


@router.get('/api/serial/status')
def api_status():
    return _mgr.status()


@router.post('/api/diag/run')
def api_run(req: RunRequest):
    command_id = resolve(req.command)
    if command_id is None:
        raise HTTPException(status_code=400, detail=f'Invalid command: {req.command}')
    if command_id is CommandId.INTERACTIVE:
        raise HTTPException(status_code=400, detail='use /api/diag/send for raw commands')
    try:
        loop = parse_loop_spec(req.loop)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if isinstance(loop, Infinite):
        raise HTTPException(status_code=400, detail='infinite loops are only available from the CLI')
    actuator = is_actuator_test(command_id)
    if actuator and not req.force:
        raise HTTPException(status_code=403, detail='force=true required to drive actuators')
    try:
        ok, output = _mgr.run(command_id, loop)
    except RuntimeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    name = command_name(command_id)
    if actuator:
        audit_write('actuator_test', {'command': name, 'device': _mgr.status().get('device'), 'success': ok})
    return {'command': name, 'success': ok, 'output': output}


@router.post('/api/diag/send')
def api_send(req: SendRequest):
    value = parse_command_byte(req.byte)
    if value is None:
        raise HTTPException(status_code=400, detail=f'not a hex value: {req.byte}')
    if not 0 <= value <= 0xFF:
        raise HTTPException(status_code=400, detail='command must be between 0x00 and 0xFF')
    try:
        reply = _mgr.send(value)
    except RuntimeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if reply is None:
        raise HTTPException(status_code=502, detail='failed to write command byte to serial port')
    return {'command': f'{value:02X}', 'response_hex': reply.hex(), 'dump': hexdump(reply), 'no_response': not reply}
