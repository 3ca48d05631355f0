# gittree/stream.py
"""
Edge record wire format.

One record per line: whitespace separated hex ids, the commit first and its
parents after it. This is the output format of `git rev-list --parents`.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from gittree.engine import EdgeRecord, MalformedRecordError
from gittree.ids import CommitId, NotHexError


def parse_edge_record(line: str) -> EdgeRecord:
    tokens = line.split()

    if not tokens:
        raise MalformedRecordError("edge record is missing its commit id")

    try:
        ids = [CommitId.from_hex(t) for t in tokens]
    except NotHexError as e:
        raise MalformedRecordError(f"malformed edge record {line.rstrip()!r}: {e}") from e

    return EdgeRecord(id=ids[0], parents=tuple(ids[1:]))


def iter_edge_records(lines: Iterable[str]) -> Iterator[EdgeRecord]:
    """
    Parse lines lazily, one record per line.

    Lines are pulled only as records are consumed.
    """
    for line in lines:
        yield parse_edge_record(line)


def format_edge_record(record: EdgeRecord) -> str:
    return " ".join(str(c) for c in (record.id, *record.parents))
