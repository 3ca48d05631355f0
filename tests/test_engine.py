"""Tests for the visibility propagation engine."""

import random

import pytest

from gittree.engine import (
    DuplicateRecordError,
    EdgeRecord,
    MalformedRecordError,
    NodeState,
    VisibilityEngine,
    compute_boundary,
)
from gittree.explore import resolve_unordered


def rec(commit, *parents):
    return EdgeRecord(commit, tuple(parents))


# ---------------------------------------------------------------------
# Reference model
# ---------------------------------------------------------------------

def random_dag(rng, n):
    """Node i only has parents below i, so ascending order is parents first."""
    parents = {}
    for i in range(n):
        k = min(i, rng.choice([0, 1, 1, 1, 2, 2, 3]))
        parents[i] = tuple(rng.sample(range(i), k))
    return parents


def ancestors(parents, roots):
    """Inclusive ancestry closure."""
    seen = set()
    stack = list(roots)
    while stack:
        node = stack.pop()
        if node in seen:
            continue
        seen.add(node)
        stack.extend(parents.get(node, ()))
    return seen


def window(parents, tips, bases):
    return ancestors(parents, tips) - ancestors(parents, bases)


def ordered_stream(parents, nodes):
    return [EdgeRecord(i, parents[i]) for i in sorted(nodes)]


def random_case(seed):
    rng = random.Random(seed)
    n = rng.randint(1, 60)
    parents = random_dag(rng, n)
    tips = set(rng.sample(range(n), rng.randint(1, min(n, 4))))
    bases = set(rng.sample(range(n), rng.randint(0, min(n, 3))))
    # Merge bases never descend from one another
    bases = {b for b in bases if not any(b in ancestors(parents, parents[o]) for o in bases)}
    return parents, tips, bases


SEEDS = list(range(200))


# ---------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------

class TestScenarios:
    def test_base_equals_tip(self):
        result = compute_boundary({"H"}, [])
        assert result.includes == frozenset()
        assert result.excludes == frozenset()

    def test_diamond_fully_visible(self):
        engine = VisibilityEngine({"B"})
        engine.feed_all([rec("P1", "B"), rec("P2", "B"), rec("T", "P1", "P2")])

        assert engine.state_of("B") is NodeState.VISIBLE_INTERIOR
        assert engine.state_of("P1") is NodeState.VISIBLE_INTERIOR
        assert engine.state_of("P2") is NodeState.VISIBLE_INTERIOR
        assert engine.state_of("T") is NodeState.VISIBLE_LEAF

        result = engine.result()
        assert result.includes == {"T"}
        assert result.excludes == frozenset()

    def test_dead_branch_pruned(self):
        engine = VisibilityEngine({"Base"})

        assert engine.feed(rec("R")) is NodeState.PENDING_INVISIBLE
        assert engine.feed(rec("Q", "R")) is NodeState.PENDING_INVISIBLE
        assert engine.state_of("R") is None

        engine.feed(rec("P", "Base"))
        engine.feed(rec("T", "P", "Q"))

        assert engine.state_of("Base") is NodeState.VISIBLE_INTERIOR
        assert engine.state_of("P") is NodeState.VISIBLE_INTERIOR
        assert engine.state_of("Q") is NodeState.PENDING_INVISIBLE
        assert engine.state_of("T") is NodeState.VISIBLE_LEAF

        result = engine.result()
        assert result.includes == {"T"}
        assert result.excludes == {"Q"}

    def test_empty_frontier(self):
        result = compute_boundary({"B1", "B2"}, iter(()))
        assert result.includes == frozenset()
        assert result.excludes == frozenset()
        assert result.stats.records == 0

    def test_octopus_bases_promoted_by_common_descendant(self):
        engine = VisibilityEngine({"B1", "B2"})
        assert engine.state_of("B1") is NodeState.VISIBLE_LEAF
        assert engine.state_of("B2") is NodeState.VISIBLE_LEAF

        engine.feed(rec("T", "B1", "B2"))

        assert engine.state_of("B1") is NodeState.VISIBLE_INTERIOR
        assert engine.state_of("B2") is NodeState.VISIBLE_INTERIOR
        result = engine.result()
        assert result.includes == {"T"}
        assert result.excludes == frozenset()

    def test_octopus_bases_through_disjoint_chains(self):
        records = [
            rec("A1", "B1"),
            rec("A2", "A1"),
            rec("C1", "B2"),
            rec("T", "A2", "C1"),
        ]
        result = compute_boundary({"B1", "B2"}, records)
        assert result.includes == {"T"}
        assert result.excludes == frozenset()


# ---------------------------------------------------------------------
# Per record rules
# ---------------------------------------------------------------------

class TestFeed:
    def test_unknown_parent_contributes_nothing(self):
        engine = VisibilityEngine({"B"})
        assert engine.feed(rec("X", "missing")) is NodeState.PENDING_INVISIBLE
        assert engine.stats.unresolved_parents == 1

    def test_one_visible_parent_is_enough(self):
        engine = VisibilityEngine({"B"})
        engine.feed(rec("I"))
        assert engine.feed(rec("M", "I", "B")) is NodeState.VISIBLE_LEAF
        # I is not forgotten by a visible child
        assert engine.state_of("I") is NodeState.PENDING_INVISIBLE
        assert engine.result().excludes == {"I"}

    def test_interior_stays_interior(self):
        engine = VisibilityEngine({"B"})
        engine.feed(rec("A", "B"))
        engine.feed(rec("C1", "A"))
        engine.feed(rec("C2", "A"))
        assert engine.state_of("A") is NodeState.VISIBLE_INTERIOR
        assert engine.result().includes == {"C1", "C2"}

    def test_duplicate_parent_forgotten_once(self):
        engine = VisibilityEngine()
        engine.feed(rec("R"))
        engine.feed(rec("Q", "R", "R"))
        assert engine.state_of("R") is None
        assert engine.active_count == 1

    def test_duplicate_parent_promoted_once(self):
        engine = VisibilityEngine({"B"})
        engine.feed(rec("T", "B", "B"))
        assert engine.state_of("B") is NodeState.VISIBLE_INTERIOR

    def test_forgotten_parent_slot_is_reused(self):
        engine = VisibilityEngine()
        engine.feed(rec("R"))
        engine.feed(rec("Q", "R"))
        assert engine.stats.arena_capacity == 1

    def test_missing_id_is_fatal(self):
        engine = VisibilityEngine()
        with pytest.raises(MalformedRecordError):
            engine.feed(EdgeRecord(None, ("A",)))

    def test_duplicate_record_is_fatal(self):
        engine = VisibilityEngine()
        engine.feed(rec("A"))
        with pytest.raises(DuplicateRecordError):
            engine.feed(rec("A"))

    def test_streamed_base_is_fatal(self):
        engine = VisibilityEngine({"B"})
        with pytest.raises(DuplicateRecordError):
            engine.feed(rec("B"))

    def test_stream_failure_propagates(self):
        def failing():
            yield rec("A")
            raise OSError("pipe closed")

        with pytest.raises(OSError, match="pipe closed"):
            compute_boundary(set(), failing())


# ---------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------

class TestProperties:
    @pytest.mark.parametrize("seed", SEEDS)
    def test_reachability_equivalence(self, seed):
        parents, tips, bases = random_case(seed)
        nodes = window(parents, tips, bases)
        result = compute_boundary(bases, ordered_stream(parents, nodes))

        expected = {n for n in nodes if ancestors(parents, [n]) & bases}
        shown = ancestors(parents, result.includes) - ancestors(parents, result.excludes)
        assert shown & nodes == expected

    @pytest.mark.parametrize("seed", SEEDS)
    def test_boundary_sets_are_minimal(self, seed):
        parents, tips, bases = random_case(seed)
        nodes = window(parents, tips, bases)
        result = compute_boundary(bases, ordered_stream(parents, nodes))

        for group in (result.includes, result.excludes):
            for commit in group:
                strict = ancestors(parents, parents[commit])
                assert not strict & group

    @pytest.mark.parametrize("seed", SEEDS[:50])
    def test_deterministic(self, seed):
        parents, tips, bases = random_case(seed)
        stream = ordered_stream(parents, window(parents, tips, bases))

        first = compute_boundary(bases, stream)
        shuffled_bases = list(bases)
        random.Random(seed).shuffle(shuffled_bases)
        second = compute_boundary(shuffled_bases, stream)

        assert first.includes == second.includes
        assert first.excludes == second.excludes

    @pytest.mark.parametrize("seed", SEEDS)
    def test_matches_fixpoint_fallback(self, seed):
        parents, tips, bases = random_case(seed)
        stream = ordered_stream(parents, window(parents, tips, bases))
        streamed = compute_boundary(bases, stream)

        shuffled = list(stream)
        random.Random(seed).shuffle(shuffled)
        fallback = resolve_unordered(bases, shuffled)

        assert fallback.includes == streamed.includes
        assert fallback.excludes == streamed.excludes


class TestMemoryBound:
    def test_dead_chain_uses_constant_space(self):
        records = [rec(0)] + [rec(i, i - 1) for i in range(1, 1000)]
        result = compute_boundary({"base"}, records)

        assert result.stats.peak_active == 2
        assert result.stats.arena_capacity == 2
        assert result.excludes == {999}

    def test_many_dead_branches_merged_into_visible_line(self):
        # Each round: a short dead branch merged into a visible mainline.
        records = []
        tip = "base"
        for i in range(200):
            records.append(rec(f"d{i}a"))
            records.append(rec(f"d{i}b", f"d{i}a"))
            records.append(rec(f"m{i}", tip, f"d{i}b"))
            tip = f"m{i}"

        engine = VisibilityEngine({"base"})
        peak_width = 0
        for r in records:
            engine.feed(r)
            peak_width = max(peak_width, engine.active_count)

        result = engine.result()
        assert result.includes == {"m199"}
        assert len(result.excludes) == 200
        # Dead branch roots are forgotten as soon as their child arrives
        assert engine.state_of("d0a") is None
        assert result.stats.peak_active == peak_width
        assert result.stats.arena_capacity == peak_width
