from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .stats import Stats


@dataclass(slots=True)
class Snapshot:
    tick: int
    stats: Stats
    organisms: List[Dict[str, Any]]
    food: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float


@dataclass(slots=True)
class SnapshotMetadata:
    ticks_per_second: int
    seed: int
    food_rate: int
    mutation_rate: float
    config_version: str
