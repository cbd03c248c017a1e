"""Filename + content checksum used to detect duplicate uploads."""

import hashlib
from pathlib import Path
from typing import BinaryIO, Optional, Union

from common.constants import STREAM_CHUNK_SIZE_BYTES


def compute_checksum(name: Optional[str], stream: BinaryIO, chunk_size: int = STREAM_CHUNK_SIZE_BYTES) -> str:
    """
    Compute the MD5 digest of ``name`` followed by the stream content.

    MD5 is enough here: the digest only flags repeated uploads and is not
    a security boundary.

    Args:
        name: Filename mixed into the digest first (skipped when None)
        stream: Readable binary stream, consumed to EOF
        chunk_size: Bytes read per iteration

    Returns:
        Lowercase 32-character hex digest
    """
    hasher = hashlib.md5()
    if name is not None:
        hasher.update(name.encode("utf-8"))

    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        hasher.update(chunk)

    return hasher.hexdigest()


def compute_file_checksum(name: Optional[str], path: Union[str, Path]) -> str:
    with open(path, "rb") as f:
        return compute_checksum(name, f)
