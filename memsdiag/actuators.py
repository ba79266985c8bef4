"""Actuator test sequencing.

Tests come in three shapes: a single probe, an on/off pair separated by a
dwell, and the IAC valve loops which keep re-sending the same move command
until the reported position says the valve has settled. The IAC constants
mimic what dealer tools were observed to do; they are not protocol values.
"""
import os
import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from .commands import CommandId
from .logger import get_logger
from .transport import ActuatorCommand, MemsTransport

logger = get_logger(__name__)

DWELL_SECONDS = 2.0
# extra close commands sent once the ECU already reports the valve closed
IAC_CLOSE_REFIRE_BUDGET = 80
# position the SP Rover 1 pod treats as fully open
IAC_OPEN_THRESHOLD = 0xB4
IAC_CLOSED = 0x00


@dataclass(frozen=True)
class ActuatorPolicy:
    dwell_s: float = DWELL_SECONDS
    iac_close_refire: int = IAC_CLOSE_REFIRE_BUDGET
    iac_open_threshold: int = IAC_OPEN_THRESHOLD

    @classmethod
    def from_env(cls) -> 'ActuatorPolicy':
        """Build a policy, letting MEMSDIAG_* environment variables override the defaults."""
        dwell = os.environ.get('MEMSDIAG_DWELL_S')
        refire = os.environ.get('MEMSDIAG_IAC_CLOSE_REFIRE')
        threshold = os.environ.get('MEMSDIAG_IAC_OPEN_THRESHOLD')
        return cls(
            dwell_s=DWELL_SECONDS if dwell is None else float(dwell),
            iac_close_refire=IAC_CLOSE_REFIRE_BUDGET if refire is None else int(refire, 0),
            iac_open_threshold=IAC_OPEN_THRESHOLD if threshold is None else int(threshold, 0),
        )


ON_OFF_TESTS: Dict[CommandId, Tuple[ActuatorCommand, ActuatorCommand]] = {
    CommandId.PTC: (ActuatorCommand.PTC_RELAY_ON, ActuatorCommand.PTC_RELAY_OFF),
    CommandId.FUEL_PUMP: (ActuatorCommand.FUEL_PUMP_ON, ActuatorCommand.FUEL_PUMP_OFF),
    CommandId.AC: (ActuatorCommand.AC_RELAY_ON, ActuatorCommand.AC_RELAY_OFF),
}

SINGLE_TESTS: Dict[CommandId, ActuatorCommand] = {
    CommandId.COIL: ActuatorCommand.FIRE_COIL,
    CommandId.INJECTORS: ActuatorCommand.TEST_INJECTORS,
}

IAC_TESTS = (CommandId.IAC_CLOSE, CommandId.IAC_OPEN)


def is_actuator_test(command_id: CommandId) -> bool:
    return command_id in ON_OFF_TESTS or command_id in SINGLE_TESTS or command_id in IAC_TESTS


def fire(transport: MemsTransport, command: ActuatorCommand) -> bool:
    outcome = transport.test_actuator(command)
    logger.debug('%s -> success=%s', command.name, outcome.success)
    return outcome.success


def on_off(transport: MemsTransport, on: ActuatorCommand, off: ActuatorCommand,
           dwell_s: float = DWELL_SECONDS, sleep: Callable[[float], None] = time.sleep) -> bool:
    """Switch on, hold for `dwell_s`, switch off. 'off' is skipped when 'on' fails."""
    if not fire(transport, on):
        return False
    sleep(dwell_s)
    return fire(transport, off)


def close_iac(transport: MemsTransport, refire_budget: int = IAC_CLOSE_REFIRE_BUDGET) -> bool:
    """Drive the IAC valve closed.

    The ECU reports position 0 before the stepper has actually finished, so
    after the first closed reading the command is re-sent until
    `refire_budget` further closed readings have been seen. Readings above
    zero do not use up the budget. A probe that reports no position counts
    as a failure.
    """
    closed_seen = False
    remaining = refire_budget
    probes = 0
    while True:
        outcome = transport.test_actuator(ActuatorCommand.CLOSE_IAC)
        probes += 1
        if not outcome.success or outcome.observed_byte is None:
            logger.info('IAC close probe %d failed', probes)
            return False
        logger.debug('IAC close probe %d: position %02X', probes, outcome.observed_byte)
        if outcome.observed_byte == IAC_CLOSED:
            if closed_seen:
                remaining -= 1
            closed_seen = True
        if closed_seen and remaining <= 0:
            logger.debug('IAC closed after %d probes', probes)
            return True


def open_iac(transport: MemsTransport, threshold: int = IAC_OPEN_THRESHOLD) -> bool:
    """Drive the IAC valve open until the reported position reaches `threshold`."""
    probes = 0
    while True:
        outcome = transport.test_actuator(ActuatorCommand.OPEN_IAC)
        probes += 1
        if not outcome.success or outcome.observed_byte is None:
            logger.info('IAC open probe %d failed', probes)
            return False
        logger.debug('IAC open probe %d: position %02X', probes, outcome.observed_byte)
        if outcome.observed_byte >= threshold:
            return True


def run_actuator_test(transport: MemsTransport, command_id: CommandId, policy: ActuatorPolicy = None,
                      sleep: Callable[[float], None] = time.sleep) -> bool:
    policy = policy or ActuatorPolicy()
    if command_id in SINGLE_TESTS:
        return fire(transport, SINGLE_TESTS[command_id])
    if command_id in ON_OFF_TESTS:
        on, off = ON_OFF_TESTS[command_id]
        return on_off(transport, on, off, dwell_s=policy.dwell_s, sleep=sleep)
    if command_id is CommandId.IAC_CLOSE:
        return close_iac(transport, refire_budget=policy.iac_close_refire)
    if command_id is CommandId.IAC_OPEN:
        return open_iac(transport, threshold=policy.iac_open_threshold)
    raise ValueError(f'not an actuator test: {command_id}')
