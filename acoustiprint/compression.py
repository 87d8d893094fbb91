"""Compact binary encoding of raw fingerprints.

A compressed fingerprint is a four-byte header (algorithm, then the item
count as a 24-bit big-endian number) followed by two bit-packed streams.
Each item is XOR-ed with its predecessor and the positions of its set bits
are stored as gaps: 3-bit "normal" values, terminated by a zero, with gaps
of 7 or more continued in a 5-bit "exceptional" stream.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

import numpy as np

_NORMAL_BITS = 3
_EXCEPTION_BITS = 5
_MAX_NORMAL_VALUE = (1 << _NORMAL_BITS) - 1
_UINT32_MASK = 0xFFFFFFFF


class DecompressionError(ValueError):
    """Raised when compressed fingerprint data is malformed."""


@dataclass(frozen=True)
class FingerprintHeader:
    size: int
    algorithm: int


def _packed_size(count: int, bits: int) -> int:
    return (count * bits + 7) // 8


def _pack(values: list[int], bits: int) -> bytes:
    if not values:
        return b""
    array = np.asarray(values, dtype=np.uint8)
    bit_matrix = (array[:, None] >> np.arange(bits, dtype=np.uint8)) & 1
    return np.packbits(bit_matrix.ravel(), bitorder="little").tobytes()


def _unpack(data: bytes, bits: int) -> list[int]:
    stream = np.unpackbits(np.frombuffer(data, dtype=np.uint8), bitorder="little")
    count = stream.size // bits
    matrix = stream[:count * bits].reshape(count, bits).astype(np.int64)
    return (matrix << np.arange(bits, dtype=np.int64)).sum(axis=1).tolist()


def _bit_gaps(value: int) -> Iterator[int]:
    bit, last_bit = 1, 0
    while value:
        if value & 1:
            yield bit - last_bit
            last_bit = bit
        value >>= 1
        bit += 1


def compress_fingerprint(fingerprint: Iterable[int], algorithm: int = 0) -> bytes:
    """Encode a raw fingerprint (32-bit items) into the compact format."""
    normal: list[int] = []
    exceptional: list[int] = []
    previous = 0
    count = 0
    for item in fingerprint:
        item &= _UINT32_MASK
        for gap in _bit_gaps(item ^ previous):
            if gap >= _MAX_NORMAL_VALUE:
                normal.append(_MAX_NORMAL_VALUE)
                exceptional.append(gap - _MAX_NORMAL_VALUE)
            else:
                normal.append(gap)
        normal.append(0)
        previous = item
        count += 1

    header = bytes([
        algorithm & 255,
        (count >> 16) & 255,
        (count >> 8) & 255,
        count & 255,
    ])
    return header + _pack(normal, _NORMAL_BITS) + _pack(exceptional, _EXCEPTION_BITS)


def decompress_fingerprint_header(data: bytes) -> FingerprintHeader:
    """Read the item count and algorithm from compressed data."""
    data = bytes(data)
    if len(data) < 4:
        raise DecompressionError("invalid fingerprint (shorter than 4 bytes)")
    return FingerprintHeader(size=int.from_bytes(data[1:4], "big"), algorithm=data[0])


def decompress_fingerprint(data: bytes) -> tuple[list[int], int]:
    """Decode compressed data into ``(fingerprint, algorithm)``."""
    data = bytes(data)
    header = decompress_fingerprint_header(data)

    bits = _unpack(data[4:], _NORMAL_BITS)
    found_values = 0
    exceptional_count = 0
    for index, bit in enumerate(bits):
        if bit == 0:
            found_values += 1
            if found_values == header.size:
                del bits[index + 1:]
                break
        elif bit == _MAX_NORMAL_VALUE:
            exceptional_count += 1

    if found_values != header.size:
        raise DecompressionError(
            "invalid fingerprint (too short, not enough input for normal bits)"
        )

    offset = 4 + _packed_size(len(bits), _NORMAL_BITS)
    if len(data) < offset + _packed_size(exceptional_count, _EXCEPTION_BITS):
        raise DecompressionError(
            "invalid fingerprint (too short, not enough input for exceptional bits)"
        )

    if exceptional_count:
        extra = iter(_unpack(data[offset:], _EXCEPTION_BITS))
        bits = [bit + next(extra) if bit == _MAX_NORMAL_VALUE else bit for bit in bits]

    fingerprint: list[int] = []
    value = 0
    last_bit = 0
    for bit in bits:
        if bit == 0:
            fingerprint.append(value)
            last_bit = 0
        else:
            last_bit += bit
            value = (value ^ (1 << (last_bit - 1))) & _UINT32_MASK
    return fingerprint, header.algorithm