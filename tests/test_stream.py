"""Tests for the edge record wire format."""

import pytest

from gittree.engine import EdgeRecord, MalformedRecordError, compute_boundary
from gittree.ids import CommitId
from gittree.stream import format_edge_record, iter_edge_records, parse_edge_record


A = "a" * 40
B = "b" * 40
C = "c" * 40


class TestParse:
    def test_root_commit(self):
        record = parse_edge_record(A + "\n")
        assert record == EdgeRecord(CommitId.from_hex(A), ())

    def test_merge_commit(self):
        record = parse_edge_record(f"{C} {A} {B}\n")
        assert record.id == CommitId.from_hex(C)
        assert record.parents == (CommitId.from_hex(A), CommitId.from_hex(B))

    def test_any_whitespace_separates(self):
        record = parse_edge_record(f"{C}\t{A}  {B}")
        assert len(record.parents) == 2

    @pytest.mark.parametrize("line", ["", "\n", "   "])
    def test_missing_commit_id(self, line):
        with pytest.raises(MalformedRecordError, match="missing"):
            parse_edge_record(line)

    def test_bad_token(self):
        with pytest.raises(MalformedRecordError, match="not-hex"):
            parse_edge_record(f"{A} not-hex")

    def test_format(self):
        record = parse_edge_record(f"{C} {A} {B}")
        assert format_edge_record(record) == f"{C} {A} {B}"


class TestIter:
    def test_lazy(self):
        def lines():
            yield A + "\n"
            raise AssertionError("read ahead")

        records = iter_edge_records(lines())
        assert next(records).id == CommitId.from_hex(A)

    def test_feeds_engine(self):
        lines = [f"{A} {B}\n", f"{C} {A}\n"]
        result = compute_boundary({CommitId.from_hex(B)}, iter_edge_records(lines))
        assert result.includes == {CommitId.from_hex(C)}
        assert result.excludes == frozenset()
