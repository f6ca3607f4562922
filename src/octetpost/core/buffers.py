"""
Byte containers used by a single transfer.

- GrowableBuffer: append-only accumulator for inbound response bytes of
  unknown total size. Growth doubles capacity and is monotonic.
- ByteCursor: read-only, position-tracked view over the outbound payload.
  The transport pulls bounded chunks from it without copying the payload
  up front.
"""

from __future__ import annotations

from typing import Union

from .errors import BufferAllocationError

BytesLike = Union[bytes, bytearray, memoryview]

DEFAULT_INITIAL_CAPACITY = 4096


def _flat(view: memoryview) -> memoryview:
    """Unsigned-byte, one-dimensional view over ``view``."""
    if view.format == "B" and view.ndim == 1:
        return view
    return view.cast("B")


class GrowableBuffer:
    """Append-only byte accumulator.

    Invariants: ``capacity >= length``; appends never lose bytes already
    written; capacity never shrinks.

    Args:
        initial_capacity: Bytes allocated up front.
        max_size: Optional ceiling on ``length``. Appends that would exceed it
            fail with ``BufferAllocationError`` exactly like a failed
            allocation.
    """

    __slots__ = ("_store", "_length", "_max_size")

    def __init__(
        self,
        initial_capacity: int = DEFAULT_INITIAL_CAPACITY,
        *,
        max_size: int | None = None,
    ) -> None:
        if initial_capacity <= 0:
            raise ValueError("initial_capacity must be > 0")
        if max_size is not None and max_size <= 0:
            raise ValueError("max_size must be > 0")
        self._store = bytearray(initial_capacity)
        self._length = 0
        self._max_size = max_size

    @property
    def length(self) -> int:
        return self._length

    @property
    def capacity(self) -> int:
        return len(self._store)

    def __len__(self) -> int:
        return self._length

    def append(self, data: BytesLike) -> int:
        """Append all of ``data`` and return the number of bytes written.

        Raises:
            BufferAllocationError: storage could not grow. The buffer keeps
                its previous contents but the owning transfer must be
                treated as failed.
        """
        view = memoryview(data)
        size = view.nbytes
        if size == 0:
            return 0
        needed = self._length + size
        if self._max_size is not None and needed > self._max_size:
            raise BufferAllocationError(
                f"Response exceeds maximum buffer size of {self._max_size} bytes",
                length=self._length,
                requested=size,
                max_size=self._max_size,
            )
        if needed > len(self._store):
            self._grow(needed)
        self._store[self._length : needed] = _flat(view)
        self._length = needed
        return size

    def _grow(self, needed: int) -> None:
        new_capacity = max(len(self._store) * 2, needed)
        if self._max_size is not None:
            new_capacity = max(needed, min(new_capacity, self._max_size))
        try:
            # Fresh allocation instead of an in-place resize so outstanding
            # views over the old store stay valid.
            grown = bytearray(new_capacity)
            grown[: self._length] = self._store[: self._length]
        except MemoryError as e:
            raise BufferAllocationError(
                f"Failed to grow buffer to {new_capacity} bytes",
                cause=e,
                length=self._length,
                requested_capacity=new_capacity,
            ) from e
        self._store = grown

    def as_view(self) -> memoryview:
        """Zero-copy view of the bytes written so far."""
        return memoryview(self._store)[: self._length]

    def to_bytes(self) -> bytes:
        try:
            return bytes(self._store[: self._length])
        except MemoryError as e:
            raise BufferAllocationError(
                f"Failed to copy {self._length} buffered bytes",
                cause=e,
                length=self._length,
            ) from e


class ByteCursor:
    """Read cursor over a caller-supplied payload.

    Never mutates or copies the payload up front. ``0 <= offset <= length``
    always holds and every read advances the offset by exactly the number of
    bytes copied.
    """

    __slots__ = ("_view", "_offset")

    def __init__(self, payload: BytesLike) -> None:
        view = payload if isinstance(payload, memoryview) else memoryview(payload)
        self._view = _flat(view)
        self._offset = 0

    @property
    def length(self) -> int:
        """Total payload length, independent of how much has been read."""
        return len(self._view)

    @property
    def offset(self) -> int:
        return self._offset

    def remaining(self) -> int:
        return len(self._view) - self._offset

    def read_into(self, destination: bytearray | memoryview, max_length: int) -> int:
        """Copy up to ``max_length`` bytes into ``destination``.

        Returns the number of bytes copied, 0 once the cursor is exhausted.
        """
        count = min(max_length, self.remaining(), len(destination))
        if count <= 0:
            return 0
        start = self._offset
        destination[:count] = self._view[start : start + count]
        self._offset = start + count
        return count

    def read(self, max_length: int) -> bytes:
        """Return the next chunk of at most ``max_length`` bytes (``b""`` at end)."""
        chunk = bytearray(max(0, min(max_length, self.remaining())))
        copied = self.read_into(chunk, max_length)
        return bytes(chunk[:copied])
