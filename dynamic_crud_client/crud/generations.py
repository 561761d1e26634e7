"""Per-operation request generation counters used to flag superseded responses."""

from typing import Dict


class RequestGenerations:
    """
    Monotonic counter per operation key.

    Each request takes the next generation for its key; when its response
    arrives it is current only if no newer request for the same key was issued
    in the meantime.
    """

    def __init__(self) -> None:
        self._latest: Dict[str, int] = {}

    def next(self, key: str) -> int:
        generation = self._latest.get(key, 0) + 1
        self._latest[key] = generation
        return generation

    def is_current(self, key: str, generation: int) -> bool:
        return self._latest.get(key) == generation

    def reset(self) -> None:
        self._latest.clear()
