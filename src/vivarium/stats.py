from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from .world import World


@dataclass(frozen=True, slots=True)
class SpeciesSummary:
    color_tag: float
    count: int
    speed: float
    size: float


@dataclass(frozen=True, slots=True)
class Stats:
    elapsed_seconds: int
    organisms: int
    food: int
    average_speed: float
    average_size: float
    species: List[SpeciesSummary] = field(default_factory=list)


def summarize(world: World, max_species: Optional[int] = None) -> Stats:
    """
    Population metrics for the world's current state.

    Species are organisms sharing an identical colour tag, ranked by member
    count; the speed and size reported for a species come from the first
    member encountered.
    """

    config = world.config
    limit = config.max_species if max_species is None else max(0, max_species)
    population = 0
    speed_sum = 0.0
    size_sum = 0.0
    counts: Dict[float, int] = {}
    representatives: Dict[float, tuple[float, float]] = {}
    for organism in world.organisms():
        population += 1
        speed_sum += organism.speed
        size_sum += organism.size
        tag = organism.genome.color_tag
        if tag not in counts:
            counts[tag] = 0
            representatives[tag] = (organism.speed, organism.size)
        counts[tag] += 1

    # sorted() is stable, so equal counts keep first-seen order
    ranked = sorted(counts.items(), key=lambda item: -item[1])[:limit]
    species = [
        SpeciesSummary(color_tag=tag, count=count, speed=representatives[tag][0], size=representatives[tag][1])
        for tag, count in ranked
    ]
    return Stats(
        elapsed_seconds=world.tick_count // config.ticks_per_second,
        organisms=population,
        food=world.food_count,
        average_speed=0.0 if population == 0 else speed_sum / population,
        average_size=0.0 if population == 0 else size_sum / population,
        species=species,
    )
