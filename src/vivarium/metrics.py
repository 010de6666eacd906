from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickSummary:
    tick: int
    population: int
    food: int
    births: int
    deaths: int
    food_spawned: int
    food_consumed: int
    born_ids: tuple[int, ...] = ()
    died_ids: tuple[int, ...] = ()
    spawned_food_ids: tuple[int, ...] = ()
    consumed_food_ids: tuple[int, ...] = ()
    tick_duration_ms: float = 0.0
