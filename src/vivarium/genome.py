from __future__ import annotations

from dataclasses import dataclass

from .config import EvolutionConfig, FounderConfig, OrganismConfig
from .rng import DeterministicRng


@dataclass(frozen=True, slots=True)
class Genome:
    speed: float
    size: float
    sense_radius: float
    max_age: float
    reproduction_threshold: float
    color_tag: float

    @classmethod
    def founder(
        cls,
        rng: DeterministicRng,
        ranges: FounderConfig | None = None,
        hue_range: tuple[float, float] = (0.0, 360.0),
    ) -> "Genome":
        ranges = ranges or FounderConfig()
        return cls(
            speed=rng.next_range(*ranges.speed),
            size=rng.next_range(*ranges.size),
            sense_radius=rng.next_range(*ranges.sense_radius),
            max_age=rng.next_range(*ranges.max_age),
            reproduction_threshold=rng.next_range(*ranges.reproduction_threshold),
            color_tag=rng.next_range(*hue_range),
        )

    def mutate(self, mutation_rate: float, rng: DeterministicRng, evolution: EvolutionConfig | None = None) -> "Genome":
        """
        Return a child genome.

        Speed, size, sense radius and colour each mutate independently with
        probability ``mutation_rate``; lifespan and reproduction threshold are
        inherited as-is. Numeric traits are floored after perturbation.
        """

        evolution = evolution or EvolutionConfig()
        floor = evolution.floor
        speed = self.speed
        size = self.size
        sense_radius = self.sense_radius
        color_tag = self.color_tag
        if rng.next_float() < mutation_rate:
            speed += rng.next_range(-evolution.speed_step, evolution.speed_step)
        if rng.next_float() < mutation_rate:
            size += rng.next_range(-evolution.size_step, evolution.size_step)
        if rng.next_float() < mutation_rate:
            sense_radius += rng.next_range(-evolution.sense_radius_step, evolution.sense_radius_step)
        if rng.next_float() < mutation_rate:
            color_tag = rng.next_range(*evolution.hue_range)
        return Genome(
            speed=max(floor.speed, speed),
            size=max(floor.size, size),
            sense_radius=max(floor.sense_radius, sense_radius),
            max_age=self.max_age,
            reproduction_threshold=self.reproduction_threshold,
            color_tag=color_tag,
        )

    def metabolic_cost(self, organism: OrganismConfig | None = None) -> float:
        organism = organism or OrganismConfig()
        return organism.base_metabolism + self.speed * organism.speed_metabolism + self.size * organism.size_metabolism
