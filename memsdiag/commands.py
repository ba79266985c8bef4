"""Registry of the diagnostic commands understood by the CLI and web API.

The table is ordered: lookup takes the first case-insensitive match and help
output lists names in the same order.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class CommandId(Enum):
    READ = 'read'
    READ_RAW = 'read-raw'
    READ_IAC = 'read-iac'
    PTC = 'ptc'
    FUEL_PUMP = 'fuelpump'
    IAC_CLOSE = 'iac-close'
    IAC_OPEN = 'iac-open'
    AC = 'ac'
    COIL = 'coil'
    INJECTORS = 'injectors'
    INTERACTIVE = 'interactive'


@dataclass(frozen=True)
class CommandDescriptor:
    name: str
    id: CommandId


COMMANDS = (
    CommandDescriptor('read', CommandId.READ),
    CommandDescriptor('read-raw', CommandId.READ_RAW),
    CommandDescriptor('read-iac', CommandId.READ_IAC),
    CommandDescriptor('ptc', CommandId.PTC),
    CommandDescriptor('fuelpump', CommandId.FUEL_PUMP),
    CommandDescriptor('iac-close', CommandId.IAC_CLOSE),
    CommandDescriptor('iac-open', CommandId.IAC_OPEN),
    CommandDescriptor('ac', CommandId.AC),
    CommandDescriptor('coil', CommandId.COIL),
    CommandDescriptor('injectors', CommandId.INJECTORS),
    CommandDescriptor('interactive', CommandId.INTERACTIVE),
)


def resolve(name: str) -> Optional[CommandId]:
    """Return the id registered under `name` (any casing), or None."""
    wanted = name.casefold()
    for desc in COMMANDS:
        if desc.name.casefold() == wanted:
            return desc.id
    return None


def list_commands() -> List[str]:
    return [desc.name for desc in COMMANDS]


def command_name(command_id: CommandId) -> str:
    for desc in COMMANDS:
        if desc.id is command_id:
            return desc.name
    raise KeyError(command_id)
