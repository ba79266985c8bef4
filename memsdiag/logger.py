import logging
import os
import sys

_ROOT = 'memsdiag'
_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'
_configured = False


def _configure():
    global _configured
    if _configured:
        return
    root = logging.getLogger(_ROOT)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.addHandler(handler)
    try:
        root.setLevel(os.environ.get('MEMSDIAG_LOG_LEVEL', 'WARNING').upper())
    except ValueError:
        root.setLevel(logging.WARNING)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the package logger, installing its handler once."""
    _configure()
    if not name.startswith(_ROOT):
        name = f'{_ROOT}.{name}'
    return logging.getLogger(name)


def set_level(level):
    _configure()
    logging.getLogger(_ROOT).setLevel(level)
