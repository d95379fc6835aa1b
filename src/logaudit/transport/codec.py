"""
LogRootV1 binary codec.

TLS-style encoding (big-endian):

    uint16  version            (= 1)
    uint64  tree_size
    opaque  root_hash<0..255>  (1-byte length prefix)
    uint64  timestamp_nanos
    uint64  revision
    opaque  metadata<0..65535> (2-byte length prefix)
"""

from __future__ import annotations

import struct

from logaudit.protocol.errors import FetchError
from logaudit.protocol.models import LogRoot

LOG_ROOT_V1 = 1

_U16 = struct.Struct(">H")
_U64 = struct.Struct(">Q")


def encode_log_root(root: LogRoot) -> bytes:
    if len(root.root_hash) > 0xFF:
        raise ValueError("root_hash too long for LogRootV1")
    if len(root.metadata) > 0xFFFF:
        raise ValueError("metadata too long for LogRootV1")

    return b"".join(
        [
            _U16.pack(LOG_ROOT_V1),
            _U64.pack(root.tree_size),
            bytes([len(root.root_hash)]),
            root.root_hash,
            _U64.pack(root.timestamp_nanos or 0),
            _U64.pack(root.revision),
            _U16.pack(len(root.metadata)),
            root.metadata,
        ]
    )


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise FetchError(
                f"truncated log root: need {n} bytes at offset {self._pos}, have {len(self._data) - self._pos}"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def u16(self) -> int:
        return _U16.unpack(self.take(2))[0]

    def u64(self) -> int:
        return _U64.unpack(self.take(8))[0]

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos


def decode_log_root(data: bytes) -> LogRoot:
    """
    Parse LogRootV1 bytes.

    Raises:
        FetchError: If the bytes are truncated, carry trailing data or use an
            unknown version.
    """
    reader = _Reader(data)
    version = reader.u16()
    if version != LOG_ROOT_V1:
        raise FetchError(f"unsupported log root version {version}")

    tree_size = reader.u64()
    root_hash = reader.take(reader.take(1)[0])
    timestamp_nanos = reader.u64()
    revision = reader.u64()
    metadata = reader.take(reader.u16())

    if reader.remaining:
        raise FetchError(f"log root has {reader.remaining} trailing bytes")

    return LogRoot(
        tree_size=tree_size,
        root_hash=root_hash,
        revision=revision,
        timestamp_nanos=timestamp_nanos,
        metadata=metadata,
    )
