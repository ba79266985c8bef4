import json
import os
import time
from pathlib import Path

from .logger import get_logger

logger = get_logger(__name__)


def _audit_path() -> Path:
    p = Path(os.environ.get('MEMSDIAG_AUDIT_LOG') or Path.cwd() / 'logs' / 'audit.log')
    p.parent.mkdir(parents=True, exist_ok=True)
    return p


def audit_write(action: str, details: dict):
    """Append one JSON line recording an operation that drove vehicle hardware."""
    entry = {'ts': time.time(), 'action': action, 'details': details}
    try:
        with _audit_path().open('a', encoding='utf-8') as f:
            f.write(json.dumps(entry) + '\n')
    except OSError as e:
        # never block a test run on the audit trail
        logger.warning('audit write failed: %s', e)
