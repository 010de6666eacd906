from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from pygame.math import Vector2

from .config import SimulationConfig
from .errors import ConfigurationError
from .food import FoodItem, FoodView
from .genome import Genome
from .math2d import _clamp_value
from .metrics import TickSummary
from .organism import Organism, OrganismView
from .rng import DeterministicRng
from .snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from .stats import summarize

logger = logging.getLogger("vivarium.world")


class World:
    def __init__(self, width: float, height: float, config: SimulationConfig | None = None):
        if width <= 0 or height <= 0:
            raise ConfigurationError(f"world dimensions must be positive, got {width}x{height}")
        config = config if config is not None else SimulationConfig()
        config.validate()
        self._width = float(width)
        self._height = float(height)
        self._config = config
        self._seed = config.seed
        self._rng = DeterministicRng(self._seed)
        self._organisms: List[Organism] = []
        self._food: List[FoodItem] = []
        self._birth_queue: List[Tuple[Organism, Genome]] = []
        self._next_organism_id = 0
        self._next_food_id = 0
        self._tick = 0
        self._last_summary: TickSummary | None = None

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def tick_count(self) -> int:
        return self._tick

    @property
    def population(self) -> int:
        return len(self._organisms)

    @property
    def food_count(self) -> int:
        return len(self._food)

    @property
    def last_summary(self) -> TickSummary | None:
        return self._last_summary

    def update_config(self, config: SimulationConfig) -> None:
        config.validate()
        if config.seed != self._seed:
            logger.info("seed change from %d to %d takes effect on reset", self._seed, config.seed)
        self._config = config

    def organisms(self) -> Iterator[OrganismView]:
        return iter([OrganismView.of(organism) for organism in self._organisms])

    def food(self) -> Iterator[FoodView]:
        return iter([FoodView.of(item) for item in self._food])

    def reset(self) -> None:
        self._organisms.clear()
        self._food.clear()
        self._birth_queue.clear()
        self._seed = self._config.seed
        self._rng = DeterministicRng(self._seed)
        self._next_organism_id = 0
        self._next_food_id = 0
        self._tick = 0
        self._last_summary = None
        logger.info("world reset (%gx%g, seed=%d)", self._width, self._height, self._seed)

    def spawn_cluster(self, x: float, y: float, n: Optional[int] = None) -> List[int]:
        """Add `n` founders scattered around (x, y); returns their ids."""
        config = self._config
        count = config.cluster_size if n is None else n
        if count < 0:
            raise ValueError(f"cluster size must not be negative, got {count}")
        spread = config.cluster_spread
        spawned: List[int] = []
        for _ in range(count):
            position = Vector2(
                x + self._rng.next_range(-spread, spread),
                y + self._rng.next_range(-spread, spread),
            )
            genome = Genome.founder(self._rng, config.founder, config.evolution.hue_range)
            organism = self._insert_organism(position, genome)
            organism.clamp_to_bounds(self._width, self._height)
            spawned.append(organism.id)
        logger.info("spawned cluster of %d founders near (%.1f, %.1f)", count, x, y)
        return spawned

    def tick(self) -> TickSummary:
        start = perf_counter()
        config = self._config
        was_populated = bool(self._organisms)

        spawned_food: List[int] = []
        if self._tick % config.food_cadence == 0:
            spawned_food.append(self._spawn_food().id)

        # Sensing sees the food present at the start of the tick, whatever is eaten later.
        food_snapshot = tuple(self._food)
        for organism in self._organisms:
            child_genome = organism.step(food_snapshot, self._width, self._height, config)
            if child_genome is not None:
                self._birth_queue.append((organism, child_genome))

        consumed_food = self._resolve_consumption()
        for organism in self._organisms:
            if organism.is_dead():
                organism.alive = False

        born = self._apply_births()
        died = self._remove_dead()
        self._tick += 1

        summary = TickSummary(
            tick=self._tick,
            population=len(self._organisms),
            food=len(self._food),
            births=len(born),
            deaths=len(died),
            food_spawned=len(spawned_food),
            food_consumed=len(consumed_food),
            born_ids=tuple(born),
            died_ids=tuple(died),
            spawned_food_ids=tuple(spawned_food),
            consumed_food_ids=tuple(consumed_food),
            tick_duration_ms=(perf_counter() - start) * 1000.0,
        )
        self._last_summary = summary
        if was_populated and not self._organisms:
            logger.info("population extinct at tick %d", self._tick)
        logger.debug(
            "tick %d: population=%d food=%d births=%d deaths=%d eaten=%d",
            summary.tick,
            summary.population,
            summary.food,
            summary.births,
            summary.deaths,
            summary.food_consumed,
        )
        return summary

    def snapshot(self) -> Snapshot:
        config = self._config
        return Snapshot(
            tick=self._tick,
            stats=summarize(self),
            organisms=[self._organism_snapshot(organism) for organism in self._organisms],
            food=[
                {"id": item.id, "x": item.position.x, "y": item.position.y, "radius": item.radius}
                for item in self._food
            ],
            world=SnapshotWorld(width=self._width, height=self._height),
            metadata=SnapshotMetadata(
                ticks_per_second=config.ticks_per_second,
                seed=self._seed,
                food_rate=config.food_rate,
                mutation_rate=config.mutation_rate,
                config_version=config.config_version,
            ),
        )

    def _insert_organism(
        self,
        position: Vector2,
        genome: Genome,
        energy: float | None = None,
        generation: int = 0,
        parent_id: int | None = None,
    ) -> Organism:
        organism_id = self._next_organism_id
        self._next_organism_id += 1
        organism = Organism(
            id=organism_id,
            genome=genome,
            position=Vector2(position),
            rng=DeterministicRng.for_entity(self._seed, organism_id),
            energy=self._config.organism.initial_energy if energy is None else energy,
            generation=generation,
            parent_id=parent_id,
        )
        self._organisms.append(organism)
        return organism

    def _spawn_food(self, position: Vector2 | None = None) -> FoodItem:
        if position is None:
            position = Vector2(
                self._rng.next_range(0.0, self._width),
                self._rng.next_range(0.0, self._height),
            )
        else:
            position = Vector2(
                _clamp_value(position.x, 0.0, self._width),
                _clamp_value(position.y, 0.0, self._height),
            )
        item = FoodItem(
            id=self._next_food_id,
            position=position,
            energy=self._config.food.energy,
            radius=self._config.food.radius,
        )
        self._next_food_id += 1
        self._food.append(item)
        return item

    def _resolve_consumption(self) -> List[int]:
        """
        Hand every reachable food item to exactly one organism.

        An item is reachable by an organism whose centre is closer than its
        size. Contested items go to the nearest claimant, ties to the lowest id,
        so the outcome does not depend on organism order.
        """

        consumed: List[int] = []
        eaten: Set[int] = set()
        for item in self._food:
            best_key: tuple[float, int] | None = None
            best: Organism | None = None
            for organism in self._organisms:
                distance = organism.position.distance_to(item.position)
                if distance >= organism.size:
                    continue
                key = (distance, organism.id)
                if best_key is None or key < best_key:
                    best_key = key
                    best = organism
            if best is not None:
                best.energy += item.energy
                consumed.append(item.id)
                eaten.add(item.id)
        if eaten:
            self._food = [item for item in self._food if item.id not in eaten]
        return consumed

    def _apply_births(self) -> List[int]:
        born: List[int] = []
        # Ids are handed out in parent-id order so they do not depend on iteration order.
        for parent, genome in sorted(self._birth_queue, key=lambda entry: entry[0].id):
            child = self._insert_organism(
                parent.position,
                genome,
                generation=parent.generation + 1,
                parent_id=parent.id,
            )
            born.append(child.id)
        self._birth_queue.clear()
        return born

    def _remove_dead(self) -> List[int]:
        died: List[int] = []
        survivors = []
        for organism in self._organisms:
            if organism.alive:
                survivors.append(organism)
            else:
                died.append(organism.id)
        self._organisms = survivors
        return died

    @staticmethod
    def _organism_snapshot(organism: Organism) -> Dict[str, Any]:
        genome = organism.genome
        return {
            "id": organism.id,
            "x": organism.position.x,
            "y": organism.position.y,
            "energy": organism.energy,
            "age": organism.age,
            "generation": organism.generation,
            "size": genome.size,
            "speed": genome.speed,
            "sense_radius": genome.sense_radius,
            "hue": genome.color_tag,
        }
