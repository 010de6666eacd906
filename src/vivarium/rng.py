from __future__ import annotations

import random

_ENTITY_RNG_SALT = 0x0B5E55ED5EED4A11


def derive_stream_seed(seed: int, salt: int) -> int:
    return (int(seed) ^ int(salt)) & 0xFFFFFFFFFFFFFFFF


class DeterministicRng:
    def __init__(self, seed: int):
        self._random = random.Random(seed)

    @classmethod
    def for_entity(cls, seed: int, entity_id: int) -> "DeterministicRng":
        """Independent stream for one entity; depends only on the world seed and the id."""
        return cls(derive_stream_seed(seed, _ENTITY_RNG_SALT ^ (int(entity_id) * 0x9E3779B97F4A7C15)))

    def next_float(self) -> float:
        return self._random.random()

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)
