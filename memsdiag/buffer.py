from .logger import get_logger

logger = get_logger(__name__)

# twice the size of the ECU's on-chip ROM
RESPONSE_BUFFER_SIZE = 16384


class ResponseBuffer:
    """Fixed-capacity byte store reused across commands of one session."""

    def __init__(self, capacity: int = RESPONSE_BUFFER_SIZE):
        self.capacity = capacity
        self._data = bytearray(capacity)
        self._length = 0
        self.dropped = 0

    def reset(self):
        self._length = 0
        self.dropped = 0

    def append(self, data: bytes) -> int:
        """Store as much of `data` as fits and return how many bytes were kept."""
        room = self.capacity - self._length
        kept = min(room, len(data))
        self._data[self._length:self._length + kept] = data[:kept]
        self._length += kept
        if kept < len(data):
            if not self.dropped:
                logger.warning('response buffer full (%d bytes); discarding overflow', self.capacity)
            self.dropped += len(data) - kept
        return kept

    def load(self, data: bytes):
        self.reset()
        self.append(data)

    def contents(self) -> bytes:
        return bytes(self._data[:self._length])

    def __len__(self):
        return self._length
