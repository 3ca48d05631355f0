# gittree/explore.py
"""
Fixpoint fallback for edge records in arbitrary order.

When records cannot be guaranteed to arrive parents-first, a commit's
visibility is not final when it is first seen. This module keeps the whole
graph in memory and re-evaluates commits with a worklist, pushing changes to
children until nothing moves. Visibility only ever switches on, so the
iteration terminates.

Produces the same boundary as gittree.engine for ordered input, at the cost
of memory proportional to the whole window.
"""

from __future__ import annotations

from collections import defaultdict
import logging
from typing import Dict, Hashable, Iterable, List, Set, Tuple

from gittree.engine import (
    Boundary,
    DuplicateRecordError,
    EdgeRecord,
    EngineStats,
    MalformedRecordError,
)


logger = logging.getLogger(__name__)


def resolve_unordered(
    bases: Iterable[Hashable],
    records: Iterable[EdgeRecord],
) -> Boundary:
    base_set = frozenset(bases)

    parents: Dict[Hashable, Tuple[Hashable, ...]] = {}
    children: Dict[Hashable, List[Hashable]] = defaultdict(list)
    visible: Set[Hashable] = set(base_set)
    updates = 0

    for record in records:
        commit = record.id
        if commit is None:
            raise MalformedRecordError(f"edge record without a commit id: {record!r}")

        if commit in parents or commit in base_set:
            raise DuplicateRecordError(f"commit {commit} appears more than once in the stream")

        parents[commit] = tuple(record.parents)
        for parent in parents[commit]:
            children[parent].append(commit)

        worklist = {commit}
        while worklist:
            node = worklist.pop()
            updates += 1

            if node in visible:
                continue

            if any(p in visible for p in parents[node]):
                visible.add(node)
                worklist.update(c for c in children[node] if c not in visible)

    logger.debug("fixpoint converged after %d updates over %d records", updates, len(parents))

    includes = set()
    excludes = set()

    for commit in parents:
        # Duplicate parents put a child in the list twice; harmless here.
        if commit in visible:
            if not any(c in visible for c in children[commit]):
                includes.add(commit)
        elif all(c in visible for c in children[commit]):
            excludes.add(commit)

    return Boundary(
        includes=frozenset(includes),
        excludes=frozenset(excludes),
        stats=EngineStats(
            records=len(parents),
            unresolved_parents=sum(
                1 for ps in parents.values() for p in ps if p not in parents and p not in base_set
            ),
            peak_active=len(parents) + len(base_set),
            arena_capacity=0,
        ),
    )
