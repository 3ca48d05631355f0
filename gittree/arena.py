# gittree/arena.py
"""
Slot arena for per-commit engine state.

States live in a dense list addressed by small integer slots. Freed slots go
onto a stack and are handed out again before the list grows, so storage
tracks the widest live set rather than the total number of allocations.
"""

from __future__ import annotations

from typing import Any, List


class ArenaError(LookupError):
    pass


# Marks a slot that sits on the free stack
_FREE = object()


class Arena:
    def __init__(self) -> None:
        self._slots: List[Any] = []
        self._free: List[int] = []

    def allocate(self, state: Any) -> int:
        if self._free:
            slot = self._free.pop()
            self._slots[slot] = state
            return slot

        self._slots.append(state)
        return len(self._slots) - 1

    def free(self, slot: int) -> None:
        self._check_live(slot)
        self._slots[slot] = _FREE
        self._free.append(slot)

    def get(self, slot: int) -> Any:
        self._check_live(slot)
        return self._slots[slot]

    def set(self, slot: int, state: Any) -> None:
        self._check_live(slot)
        self._slots[slot] = state

    @property
    def capacity(self) -> int:
        """Number of slots ever created, live or free."""
        return len(self._slots)

    def __len__(self) -> int:
        return len(self._slots) - len(self._free)

    def _check_live(self, slot: int) -> None:
        if not 0 <= slot < len(self._slots) or self._slots[slot] is _FREE:
            raise ArenaError(f"slot {slot} is not allocated")
