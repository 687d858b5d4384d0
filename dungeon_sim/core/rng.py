"""
Deterministic random streams for the simulator.

Every random draw made once a combat has started comes from a RandomStream
derived from the session seed plus a context (room id, phase, turn number).
Streams built from the same seed and context always produce the same
sequence, which is what makes a combat log reproducible.
"""

import hashlib
import random
import uuid
from collections.abc import Sequence
from typing import TypeVar

T = TypeVar("T")


def new_session_seed() -> str:
    """
    Generates a session-unique seed for combats started without one.

    Returns:
        str: A random hexadecimal seed.

    """
    return uuid.uuid4().hex


def _digest(seed: str, context: tuple[object, ...]) -> int:
    """
    Hashes a seed and its context into a 64-bit integer.

    The built-in hash() is salted per process, so SHA-256 is used instead.

    Args:
        seed (str): The session seed.
        context (tuple[object, ...]): The sub-context parts.

    Returns:
        int: The derived integer seed.

    """
    payload = "\x1f".join([str(seed), *(str(part) for part in context)])
    return int.from_bytes(hashlib.sha256(payload.encode("utf-8")).digest()[:8], "big")


class RandomStream:
    """A reproducible sequence of random numbers keyed by seed and context."""

    def __init__(self, seed: str, *context: object) -> None:
        """
        Initializes the stream.

        Args:
            seed (str): The session seed.
            *context (object): Sub-context parts, e.g. room id, phase, turn.

        """
        self.seed: str = str(seed)
        self.context: tuple[object, ...] = context
        self._random = random.Random(_digest(self.seed, context))
        self.draws: int = 0

    @classmethod
    def derive(cls, seed: str, *context: object) -> "RandomStream":
        """
        Builds a stream for the given seed and context.

        Args:
            seed (str): The session seed.
            *context (object): Sub-context parts.

        Returns:
            RandomStream: The derived stream.

        """
        return cls(seed, *context)

    def next(self) -> float:
        """
        Returns the next float in [0, 1).

        Returns:
            float: The next value of the sequence.

        """
        self.draws += 1
        return self._random.random()

    def range(self, lo: int, hi: int) -> int:
        """
        Returns an integer in [lo, hi], both inclusive.

        Args:
            lo (int): The lower bound.
            hi (int): The upper bound.

        Returns:
            int: The drawn integer.

        """
        if hi < lo:
            raise ValueError(f"Empty range [{lo}, {hi}]")
        return lo + int(self.next() * (hi - lo + 1))

    def choice(self, items: Sequence[T]) -> T:
        """
        Picks one element of a non-empty sequence.

        Args:
            items (Sequence[T]): The candidates.

        Returns:
            T: The chosen element.

        """
        if not items:
            raise ValueError("Cannot choose from an empty sequence")
        return items[int(self.next() * len(items))]

    def shuffle(self, items: Sequence[T]) -> list[T]:
        """
        Returns a shuffled copy of the sequence (Fisher-Yates).

        Args:
            items (Sequence[T]): The items to shuffle.

        Returns:
            list[T]: A new, shuffled list.

        """
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = int(self.next() * (i + 1))
            result[i], result[j] = result[j], result[i]
        return result

    def __repr__(self) -> str:
        return f"RandomStream(seed={self.seed!r}, context={self.context!r})"
