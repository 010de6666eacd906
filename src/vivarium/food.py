from __future__ import annotations

from dataclasses import dataclass

from pygame.math import Vector2


@dataclass(slots=True)
class FoodItem:
    id: int
    position: Vector2
    energy: float = 50.0
    radius: float = 3.0


@dataclass(frozen=True, slots=True)
class FoodView:
    id: int
    x: float
    y: float
    energy: float
    radius: float

    @classmethod
    def of(cls, item: FoodItem) -> "FoodView":
        return cls(id=item.id, x=item.position.x, y=item.position.y, energy=item.energy, radius=item.radius)
