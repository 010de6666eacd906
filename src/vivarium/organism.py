from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from pygame.math import Vector2

from .config import SimulationConfig
from .food import FoodItem
from .genome import Genome
from .math2d import _clamp_value
from .rng import DeterministicRng
from .sensing import nearest


@dataclass(slots=True)
class Organism:
    id: int
    genome: Genome
    position: Vector2
    rng: DeterministicRng = field(repr=False, compare=False)
    energy: float = 100.0
    age: int = 0
    generation: int = 0
    parent_id: Optional[int] = None
    alive: bool = True

    @property
    def size(self) -> float:
        return self.genome.size

    def is_dead(self) -> bool:
        return self.energy <= 0 or self.age > self.genome.max_age

    def step(self, food: Sequence[FoodItem], width: float, height: float, config: SimulationConfig) -> Optional[Genome]:
        """Run one tick of behaviour. Returns the child genome when the organism reproduces."""
        self.sense_and_move(food, config.organism.wander_factor)
        self.energy -= self.genome.metabolic_cost(config.organism)
        self.age += 1
        self.clamp_to_bounds(width, height)
        if self.energy > self.genome.reproduction_threshold:
            self.energy /= 2
            return self.genome.mutate(config.mutation_rate, self.rng, config.evolution)
        return None

    def sense_and_move(self, food: Sequence[FoodItem], wander_factor: float = 0.5) -> Optional[FoodItem]:
        target = nearest(self.position, food, self.genome.sense_radius)
        speed = self.genome.speed
        if target is not None:
            angle = math.atan2(target.position.y - self.position.y, target.position.x - self.position.x)
            self.position.x += math.cos(angle) * speed
            self.position.y += math.sin(angle) * speed
        else:
            self.position.x += self.rng.next_range(-1.0, 1.0) * speed * wander_factor
            self.position.y += self.rng.next_range(-1.0, 1.0) * speed * wander_factor
        return target

    def clamp_to_bounds(self, width: float, height: float) -> None:
        size = self.genome.size
        self.position.x = _clamp_value(self.position.x, size, width - size)
        self.position.y = _clamp_value(self.position.y, size, height - size)


@dataclass(frozen=True, slots=True)
class OrganismView:
    id: int
    x: float
    y: float
    energy: float
    age: int
    generation: int
    parent_id: Optional[int]
    genome: Genome

    @property
    def speed(self) -> float:
        return self.genome.speed

    @property
    def size(self) -> float:
        return self.genome.size

    @classmethod
    def of(cls, organism: Organism) -> "OrganismView":
        return cls(
            id=organism.id,
            x=organism.position.x,
            y=organism.position.y,
            energy=organism.energy,
            age=organism.age,
            generation=organism.generation,
            parent_id=organism.parent_id,
            genome=organism.genome,
        )
