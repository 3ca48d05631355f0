# gittree/ids.py
"""
Commit identifiers.

Responsibilities:
- Wrap the raw bytes of a git object id
- Decode and encode the hexadecimal wire form
- Hash cheaply by trusting the randomness of content hashes

This module does NOT:
- call git
- know anything about commit graphs
"""

from __future__ import annotations

from dataclasses import dataclass
import re


_HEX_RE = re.compile(r"[0-9a-fA-F]+")

# Leading bytes used directly as the hash value
_HASH_PREFIX_LEN = 8


class NotHexError(ValueError):
    pass


@dataclass(frozen=True, order=True)
class CommitId:
    """
    A git object identifier, stored as raw bytes.

    Ordering and equality compare the bytes. The hash is the first 8 bytes
    read as a signed little-endian integer, so it fits a Py_ssize_t and
    CPython keeps it as is (except -1, which becomes -2). Git ids are content
    hashes, so their leading bytes are already uniformly distributed.
    """

    value: bytes

    def __hash__(self) -> int:
        return int.from_bytes(self.value[:_HASH_PREFIX_LEN], "little", signed=True)

    @classmethod
    def from_hex(cls, text: str) -> CommitId:
        if not text:
            raise NotHexError("empty commit id")

        if len(text) % 2:
            raise NotHexError(f"odd-length commit id: {text!r}")

        if not _HEX_RE.fullmatch(text):
            raise NotHexError(f"not a hex commit id: {text!r}")

        return cls(bytes.fromhex(text))

    @property
    def hex(self) -> str:
        return self.value.hex()

    def short(self, length: int = 12) -> str:
        if length <= 0:
            raise ValueError("length must be a positive integer")
        return self.hex[:length]

    def __str__(self) -> str:
        return self.hex

    def __repr__(self) -> str:
        return f"CommitId({self.hex!r})"
