from typing import Dict, Iterator, List

import numpy as np

from ..errors import InvariantViolation
from ..params import SelectionPolicy
from .topology import Position


class FrontierQueue:
    """
    Set of candidate sites with O(1) membership, insertion and removal.

    Members live in a list with a position -> slot dict; removal swaps the
    last member into the freed slot. ``neighbor_weighted`` picks a member
    with probability proportional to its weight by rejection sampling
    against ``max_weight``.
    """

    def __init__(
        self,
        policy: SelectionPolicy,
        rng: np.random.Generator,
        max_weight: int = 8,
    ):
        self.policy = SelectionPolicy(policy)
        self._rng = rng
        self._max_weight = int(max_weight)
        self._members: List[Position] = []
        self._weights: List[int] = []
        self._slot: Dict[Position, int] = {}

    def __len__(self) -> int:
        return len(self._members)

    def __contains__(self, pos) -> bool:
        return pos in self._slot

    def __iter__(self) -> Iterator[Position]:
        return iter(list(self._members))

    def is_empty(self) -> bool:
        return not self._members

    def push(self, pos: Position, weight: int = 1) -> bool:
        if not 1 <= weight <= self._max_weight:
            raise InvariantViolation(f"Frontier weight {weight} outside 1..{self._max_weight}")
        slot = self._slot.get(pos)
        if slot is not None:
            self._weights[slot] = weight
            return False
        self._slot[pos] = len(self._members)
        self._members.append(pos)
        self._weights.append(weight)
        return True

    def weight(self, pos: Position) -> int:
        return self._weights[self._slot[pos]]

    def pop(self) -> Position:
        if not self._members:
            raise IndexError("pop from an empty frontier")
        if self.policy is SelectionPolicy.UNIFORM_RANDOM:
            slot = int(self._rng.integers(len(self._members)))
        else:
            slot = self._pick_weighted()
        return self._take(slot)

    def _pick_weighted(self) -> int:
        n = len(self._members)
        rng, weights, top = self._rng, self._weights, self._max_weight
        while True:
            slot = int(rng.integers(n))
            if rng.random() * top < weights[slot]:
                return slot

    def _take(self, slot: int) -> Position:
        pos = self._members[slot]
        last_pos = self._members.pop()
        last_weight = self._weights.pop()
        if slot < len(self._members):
            self._members[slot] = last_pos
            self._weights[slot] = last_weight
            self._slot[last_pos] = slot
        del self._slot[pos]
        return pos
