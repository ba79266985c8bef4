"""Loop control for repeated reads: `Count(n)` or `Infinite`."""
from dataclasses import dataclass
from typing import Iterator, Optional, Union


@dataclass(frozen=True)
class Count:
    n: int

    def __post_init__(self):
        if self.n < 0:
            raise ValueError('loop count must be non-negative')


@dataclass(frozen=True)
class Infinite:
    pass


LoopSpec = Union[Count, Infinite]

INFINITE_TOKEN = 'inf'


def parse_loop_spec(arg: Optional[str]) -> LoopSpec:
    """Parse the optional loop-count argument.

    'inf' loops forever, a missing argument means one pass, and anything else
    must be a non-negative integer (decimal, 0x hex or 0o octal). Invalid
    values raise ValueError instead of silently becoming zero.
    """
    if arg is None:
        return Count(1)
    if arg == INFINITE_TOKEN:
        return Infinite()
    text = arg.strip()
    try:
        n = int(text, 0)
    except ValueError:
        # int(..., 0) refuses zero-padded decimals such as "010"
        try:
            n = int(text, 10)
        except ValueError:
            raise ValueError(f'invalid loop count: {arg!r}') from None
    if n < 0:
        raise ValueError(f'invalid loop count: {arg!r}')
    return Count(n)


def iterations(spec: LoopSpec) -> Iterator[int]:
    """Yield iteration indices until the loop spec is exhausted (never, for Infinite)."""
    index = 0
    if isinstance(spec, Infinite):
        while True:
            yield index
            index += 1
    remaining = spec.n
    while remaining > 0:
        remaining -= 1
        yield index
        index += 1
