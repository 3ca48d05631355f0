# gittree/engine.py
"""
Visibility propagation engine.

Responsibilities:
- Classify every streamed commit as inside or outside the visible window
- Forget commits as soon as they can no longer change any outcome
- Emit the minimal include/exclude boundary of the window

A commit is visible when its ancestry reaches one of the base commits. The
input must list a commit only after all of its parents (reverse topological
order), so a commit's visibility is final the moment it is processed.

This module does NOT:
- call git
- decide which commits are tips or bases
- render anything
"""

from __future__ import annotations

from dataclasses import dataclass, field
import enum
import logging
from typing import Dict, FrozenSet, Hashable, Iterable, NamedTuple, Optional, Tuple

from gittree.arena import Arena


logger = logging.getLogger(__name__)


class EngineError(RuntimeError):
    pass


class MalformedRecordError(EngineError):
    pass


class DuplicateRecordError(EngineError):
    pass


@enum.unique
class NodeState(enum.Enum):
    # No visible parent; no visible child seen
    PENDING_INVISIBLE = 1
    # Visible; no visible child seen yet, so it is on the outer frontier
    VISIBLE_LEAF = 2
    # Visible with at least one visible child
    VISIBLE_INTERIOR = 3

    @property
    def visible(self) -> bool:
        return self is not NodeState.PENDING_INVISIBLE


class EdgeRecord(NamedTuple):
    id: Optional[Hashable]
    parents: Tuple[Hashable, ...] = ()


@dataclass(frozen=True)
class EngineStats:
    records: int = 0
    unresolved_parents: int = 0
    peak_active: int = 0
    arena_capacity: int = 0


@dataclass(frozen=True)
class Boundary:
    includes: FrozenSet[Hashable] = frozenset()
    excludes: FrozenSet[Hashable] = frozenset()
    stats: EngineStats = field(default_factory=EngineStats)


class VisibilityEngine:
    """
    Single-pass classifier over a reverse topologically ordered edge stream.

    The active table maps a commit id to its arena slot and holds only commits
    that could still affect a later record. Bases are seeded as visible
    leaves before any record is fed.
    """

    def __init__(self, bases: Iterable[Hashable] = ()) -> None:
        self._arena = Arena()
        self._active: Dict[Hashable, int] = {}
        self._bases: FrozenSet[Hashable] = frozenset(bases)

        self._records = 0
        self._unresolved = 0

        for base in self._bases:
            self._active[base] = self._arena.allocate(NodeState.VISIBLE_LEAF)

        self._peak = len(self._active)

    def feed(self, record: EdgeRecord) -> NodeState:
        """
        Classify one record and update the states of its parents.

        Returns the state assigned to the record's commit.
        """
        commit = record.id
        if commit is None:
            raise MalformedRecordError(f"edge record without a commit id: {record!r}")

        if commit in self._active:
            raise DuplicateRecordError(f"commit {commit} appears more than once in the stream")

        resolved = []
        for parent in record.parents:
            slot = self._active.get(parent)
            if slot is None:
                # Forgotten, or outside the window. Either way it is not visible.
                self._unresolved += 1
                logger.debug("parent %s of %s is not tracked", parent, commit)
                continue
            resolved.append((parent, slot))

        visible = any(self._arena.get(slot).visible for _, slot in resolved)

        if visible:
            for _, slot in resolved:
                if self._arena.get(slot) is NodeState.VISIBLE_LEAF:
                    self._arena.set(slot, NodeState.VISIBLE_INTERIOR)
            state = NodeState.VISIBLE_LEAF
        else:
            # Every resolved parent is pending invisible and now has an
            # invisible child, so it can never be part of the boundary.
            for parent, slot in resolved:
                if self._active.pop(parent, None) is not None:
                    self._arena.free(slot)
            state = NodeState.PENDING_INVISIBLE

        self._active[commit] = self._arena.allocate(state)
        self._records += 1

        if len(self._active) > self._peak:
            self._peak = len(self._active)

        return state

    def feed_all(self, records: Iterable[EdgeRecord]) -> None:
        for record in records:
            self.feed(record)

    def state_of(self, commit: Hashable) -> Optional[NodeState]:
        """State of a tracked commit, or None once it has been forgotten."""
        slot = self._active.get(commit)
        if slot is None:
            return None
        return self._arena.get(slot)

    @property
    def active_count(self) -> int:
        return len(self._active)

    @property
    def stats(self) -> EngineStats:
        return EngineStats(
            records=self._records,
            unresolved_parents=self._unresolved,
            peak_active=self._peak,
            arena_capacity=self._arena.capacity,
        )

    def result(self) -> Boundary:
        """
        Extract the boundary from the active table.

        Visible leaves are included, pending invisible commits excluded.
        Seeded bases are never reported as includes.
        """
        includes = set()
        excludes = set()

        for commit, slot in self._active.items():
            state = self._arena.get(slot)

            if state is NodeState.VISIBLE_LEAF:
                if commit not in self._bases:
                    includes.add(commit)
            elif state is NodeState.PENDING_INVISIBLE:
                excludes.add(commit)

        return Boundary(
            includes=frozenset(includes),
            excludes=frozenset(excludes),
            stats=self.stats,
        )


def compute_boundary(
    bases: Iterable[Hashable],
    records: Iterable[EdgeRecord],
) -> Boundary:
    """
    Run the engine over a whole stream.

    Args:
        bases: commits visible by definition (merge bases)
        records: edge records, every parent before its children

    Returns:
        Boundary with the include and exclude sets

    Any exception raised while iterating records propagates; no partial
    boundary is produced.
    """
    engine = VisibilityEngine(bases)
    engine.feed_all(records)

    result = engine.result()
    logger.debug(
        "classified %d records: %d includes, %d excludes, peak active %d",
        result.stats.records,
        len(result.includes),
        len(result.excludes),
        result.stats.peak_active,
    )
    return result
