from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .errors import ConfigurationError

# Food spawns every (FOOD_CADENCE_BASE - food_rate) ticks.
FOOD_CADENCE_BASE = 25


@dataclass(frozen=True)
class OrganismConfig:
    initial_energy: float = 100.0
    base_metabolism: float = 0.1
    speed_metabolism: float = 0.05
    size_metabolism: float = 0.02
    wander_factor: float = 0.5


@dataclass(frozen=True)
class FoodConfig:
    energy: float = 50.0
    radius: float = 3.0


@dataclass(frozen=True)
class FounderConfig:
    speed: tuple[float, float] = (0.5, 2.5)
    size: tuple[float, float] = (4.0, 10.0)
    sense_radius: tuple[float, float] = (50.0, 150.0)
    max_age: tuple[float, float] = (800.0, 1500.0)
    reproduction_threshold: tuple[float, float] = (120.0, 180.0)


@dataclass(frozen=True)
class TraitFloorConfig:
    speed: float = 0.2
    size: float = 2.0
    sense_radius: float = 20.0


@dataclass(frozen=True)
class EvolutionConfig:
    speed_step: float = 0.2
    size_step: float = 0.5
    sense_radius_step: float = 10.0
    hue_range: tuple[float, float] = (0.0, 360.0)
    floor: TraitFloorConfig = field(default_factory=TraitFloorConfig)


@dataclass(frozen=True)
class SimulationConfig:
    food_rate: int = 12
    mutation_rate: float = 0.1
    seed: int = 42
    ticks_per_second: int = 60
    cluster_size: int = 5
    cluster_spread: float = 10.0
    max_species: int = 5
    config_version: str = "v1"
    organism: OrganismConfig = field(default_factory=OrganismConfig)
    food: FoodConfig = field(default_factory=FoodConfig)
    founder: FounderConfig = field(default_factory=FounderConfig)
    evolution: EvolutionConfig = field(default_factory=EvolutionConfig)

    @property
    def food_cadence(self) -> int:
        return FOOD_CADENCE_BASE - self.food_rate

    def validate(self) -> None:
        if isinstance(self.food_rate, bool) or not isinstance(self.food_rate, int):
            raise ConfigurationError(f"food_rate must be an integer, got {self.food_rate!r}")
        if self.food_cadence <= 0:
            raise ConfigurationError(
                f"food_rate must be below {FOOD_CADENCE_BASE}, got {self.food_rate}"
            )
        if isinstance(self.mutation_rate, bool) or not isinstance(self.mutation_rate, (int, float)):
            raise ConfigurationError(f"mutation_rate must be a number, got {self.mutation_rate!r}")
        if not 0.0 <= self.mutation_rate <= 1.0:
            raise ConfigurationError(f"mutation_rate must be within [0, 1], got {self.mutation_rate}")
        if self.ticks_per_second <= 0:
            raise ConfigurationError(f"ticks_per_second must be positive, got {self.ticks_per_second}")
        if self.cluster_size < 0:
            raise ConfigurationError(f"cluster_size must not be negative, got {self.cluster_size}")
        if self.max_species < 0:
            raise ConfigurationError(f"max_species must not be negative, got {self.max_species}")
        for name in ("speed", "size", "sense_radius", "max_age", "reproduction_threshold"):
            low, high = getattr(self.founder, name)
            if low > high:
                raise ConfigurationError(f"founder.{name} range is inverted: ({low}, {high})")
        low, high = self.evolution.hue_range
        if low > high:
            raise ConfigurationError(f"evolution.hue_range is inverted: ({low}, {high})")

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass(frozen=True)
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    width: float = 800.0
    height: float = 600.0
    initial_founders: int = 0
    broadcast_interval: int = 2


def load_config(raw: dict) -> SimulationConfig:
    try:
        return _build_config(raw)
    except TypeError as exc:
        raise ConfigurationError(f"invalid simulation config: {exc}") from exc


def _build_config(raw: dict) -> SimulationConfig:
    default_founder = FounderConfig()
    default_evolution = EvolutionConfig()

    def _pair(value: tuple[float, float] | list[float] | None, default: tuple[float, float]) -> tuple[float, float]:
        if isinstance(value, (tuple, list)) and len(value) == 2:
            return (float(value[0]), float(value[1]))
        return default

    organism = OrganismConfig(**raw.get("organism", {}))
    food = FoodConfig(**raw.get("food", {}))
    founder_raw = raw.get("founder", {})
    founder = FounderConfig(
        speed=_pair(founder_raw.get("speed"), default_founder.speed),
        size=_pair(founder_raw.get("size"), default_founder.size),
        sense_radius=_pair(founder_raw.get("sense_radius"), default_founder.sense_radius),
        max_age=_pair(founder_raw.get("max_age"), default_founder.max_age),
        reproduction_threshold=_pair(
            founder_raw.get("reproduction_threshold"), default_founder.reproduction_threshold
        ),
    )
    evolution_raw = raw.get("evolution", {})
    floor = TraitFloorConfig(**evolution_raw.get("floor", {}))
    evolution_values = {k: v for k, v in evolution_raw.items() if k not in {"floor", "hue_range"}}
    evolution = EvolutionConfig(
        floor=floor,
        hue_range=_pair(evolution_raw.get("hue_range"), default_evolution.hue_range),
        **evolution_values,
    )
    sim_values = {k: v for k, v in raw.items() if k not in {"organism", "food", "founder", "evolution"}}
    return SimulationConfig(organism=organism, food=food, founder=founder, evolution=evolution, **sim_values)


def load_app_config(raw: dict) -> AppConfig:
    app_values = {k: v for k, v in raw.items() if k != "simulation"}
    simulation = load_config(raw.get("simulation", {}))
    try:
        return AppConfig(simulation=simulation, **app_values)
    except TypeError as exc:
        raise ConfigurationError(f"invalid app config: {exc}") from exc
