"""Compact-u16 ("shortvec") length prefix used for every vector in the wire format.

The encoding itself comes from solana-py; the wrappers add the range and
canonical-form checks that the runtime applies on decode.
"""

from __future__ import annotations

from typing import Tuple

from solana.utils import shortvec_encoding as shortvec

from .errors import ShortVecError


MAX_ENCODING_LENGTH = 3
MAX_VALUE = 0xFFFF


def encode_length(value: int) -> bytes:
    if (value < 0) or (value > MAX_VALUE):
        raise ShortVecError(f'Length {value} is out of range 0..{MAX_VALUE}')
    return shortvec.encode_length(value)


def decode_length(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Return the decoded length and the number of bytes it occupies at `offset`."""
    prefix = bytes(data[offset:offset + MAX_ENCODING_LENGTH])
    value, size = shortvec.decode_length(prefix)

    if (size == 0) or (prefix[size - 1] & 0x80):
        if size < MAX_ENCODING_LENGTH:
            raise ShortVecError('Length prefix is truncated')
        raise ShortVecError('Length prefix is too long')
    elif (size > 1) and (prefix[size - 1] == 0):
        raise ShortVecError('Length prefix has non-canonical encoding')
    elif value > MAX_VALUE:
        raise ShortVecError(f'Length {value} overflows u16')
    return value, size
