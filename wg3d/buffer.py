import logging
from typing import List, Sequence

from .errors import MissingBuffer, BufferOutOfBounds

logger = logging.getLogger(__name__)


class BufferSource:
    """
    Raw bytes of every glTF buffer, indexed by buffer id.

    Slices are borrowed memoryviews; decoders copy what they need out of them
    before returning.
    """

    def __init__(self, buffers: Sequence[bytes]) -> None:
        self.buffers: List[memoryview] = [memoryview(b) for b in buffers]

    def __len__(self) -> int:
        return len(self.buffers)

    def get(self, buffer_id: int) -> memoryview:
        if buffer_id < 0 or buffer_id >= len(self.buffers):
            raise MissingBuffer(f"buffer {buffer_id} is not loaded")
        return self.buffers[buffer_id]

    def slice(self, buffer_id: int, byte_offset: int, length: int) -> memoryview:
        data = self.get(buffer_id)
        if byte_offset < 0 or length < 0 or byte_offset + length > len(data):
            raise BufferOutOfBounds(
                f"buffer {buffer_id}: [{byte_offset}:{byte_offset + length}] exceeds {len(data)} bytes"
            )
        return data[byte_offset : byte_offset + length]
