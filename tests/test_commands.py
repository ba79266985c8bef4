import pytest

from memsdiag.commands import COMMANDS, CommandId, command_name, list_commands, resolve


@pytest.mark.parametrize('name', [d.name for d in COMMANDS])
def test_resolve_ignores_case(name):
    expected = resolve(name)
    assert expected is not None
    assert resolve(name.upper()) is expected
    assert resolve(name.title()) is expected


def test_resolve_mixed_case_ptc():
    assert resolve('PTC') is resolve('ptc') is resolve('PtC') is CommandId.PTC


@pytest.mark.parametrize('name', ['', 'rea', 'read-', 'iac', 'fuel', 'interactive2', ' read'])
def test_resolve_unknown_is_not_found(name):
    assert resolve(name) is None


def test_list_commands_in_declaration_order():
    assert list_commands() == [
        'read', 'read-raw', 'read-iac', 'ptc', 'fuelpump', 'iac-close',
        'iac-open', 'ac', 'coil', 'injectors', 'interactive',
    ]


def test_every_id_registered_once():
    ids = [d.id for d in COMMANDS]
    assert sorted(ids, key=lambda c: c.value) == sorted(CommandId, key=lambda c: c.value)
    assert command_name(CommandId.FUEL_PUMP) == 'fuelpump'
