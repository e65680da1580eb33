"""Memory-mapped vector matrix with a companion file of deletion flags."""

from __future__ import annotations

import mmap
from pathlib import Path
from types import TracebackType

import numpy as np

HEADER_SIZE = 4
DELETED_HEADER = b"drop"
VECTORS_HEADER = b"data"

_DTYPE = np.dtype("<f4")


def _ensure_file_exists(path: Path, header: bytes) -> None:
    if path.exists():
        return
    with path.open("wb") as file:
        file.write(header)


def _map_read(path: Path) -> mmap.mmap:
    with path.open("rb") as file:
        return mmap.mmap(file.fileno(), 0, access=mmap.ACCESS_READ)


def _map_write(path: Path) -> mmap.mmap:
    with path.open("r+b") as file:
        return mmap.mmap(file.fileno(), 0, access=mmap.ACCESS_WRITE)


class MmapVectors:
    """Read-only mapping of a vector matrix plus a writable mapping of deletion flags.

    Both files start with a 4-byte header; the vector file holds little-endian
    32-bit floats, the flag file one byte per vector (non-zero means deleted).
    """

    def __init__(
        self,
        dim: int,
        num_vectors: int,
        vectors_map: mmap.mmap,
        deleted_map: mmap.mmap,
        deleted_count: int,
    ) -> None:
        self.dim = dim
        self.num_vectors = num_vectors
        self.deleted_count = deleted_count
        self._mmap: mmap.mmap | None = vectors_map
        self._deleted_mmap: mmap.mmap | None = deleted_map

    @classmethod
    def open(cls, vectors_path: str | Path, deleted_path: str | Path, dim: int) -> MmapVectors:
        """Map the two files, creating them with their headers when missing."""
        if dim <= 0:
            raise ValueError("vector dimension must be positive")
        vectors_path = Path(vectors_path)
        deleted_path = Path(deleted_path)
        _ensure_file_exists(vectors_path, VECTORS_HEADER)
        _ensure_file_exists(deleted_path, DELETED_HEADER)

        vectors_map = _map_read(vectors_path)
        num_vectors = (len(vectors_map) - HEADER_SIZE) // dim // _DTYPE.itemsize
        try:
            deleted_map = _map_write(deleted_path)
        except Exception:
            vectors_map.close()
            raise
        deleted_count = sum(deleted_map[HEADER_SIZE:])
        return cls(dim, num_vectors, vectors_map, deleted_map, deleted_count)

    @property
    def _vectors(self) -> mmap.mmap:
        if self._mmap is None:
            raise ValueError("vector mapping is closed")
        return self._mmap

    @property
    def _flags(self) -> mmap.mmap:
        if self._deleted_mmap is None:
            raise ValueError("vector mapping is closed")
        return self._deleted_mmap

    def data_offset(self, key: int) -> int | None:
        """Byte offset of the vector under ``key``; None when out of range."""
        if key < 0 or key >= self.num_vectors:
            return None
        return key * self.raw_size() + HEADER_SIZE

    def raw_size(self) -> int:
        """Number of bytes one vector occupies."""
        return self.dim * _DTYPE.itemsize

    def _vector_at(self, offset: int) -> np.ndarray:
        raw = self._vectors[offset : offset + self.raw_size()]
        return np.frombuffer(raw, dtype=_DTYPE).astype(np.float32)

    def raw_vector(self, key: int) -> np.ndarray | None:
        """The stored vector under ``key``, deleted or not; None when out of range."""
        offset = self.data_offset(key)
        return None if offset is None else self._vector_at(offset)

    def deleted(self, key: int) -> bool | None:
        """Deletion flag of ``key``; None when the flag file has no entry for it."""
        index = HEADER_SIZE + key
        flags = self._flags
        if key < 0 or index >= len(flags):
            return None
        return flags[index] > 0

    def get_vector(self, key: int) -> np.ndarray | None:
        """A copy of the vector under ``key``; None when missing or deleted."""
        if self.deleted(key) is not False:
            return None
        return self.raw_vector(key)

    def delete(self, key: int) -> None:
        """Mark ``key`` as deleted; keys out of range are ignored."""
        if 0 <= key < self.num_vectors:
            flags = self._flags
            index = HEADER_SIZE + key
            if flags[index] == 0:
                flags[index] = 1
                self.deleted_count += 1

    def flush(self) -> None:
        """Write the deletion flags to disk."""
        self._flags.flush()

    def close(self) -> None:
        """Release both mappings; closing twice is harmless."""
        if self._deleted_mmap is not None:
            self._deleted_mmap.flush()
            self._deleted_mmap.close()
            self._deleted_mmap = None
        if self._mmap is not None:
            self._mmap.close()
            self._mmap = None

    def __enter__(self) -> MmapVectors:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()