from __future__ import annotations

from typing import Iterable, Optional, Protocol, TypeVar

from pygame.math import Vector2


class Positioned(Protocol):
    position: Vector2


P = TypeVar("P", bound=Positioned)


def nearest(origin: Vector2, candidates: Iterable[P], max_radius: float) -> Optional[P]:
    """
    Return the candidate closest to `origin`, provided it lies strictly inside `max_radius`.

    Linear scan; on equal distances the first candidate in scan order is kept.
    """

    if max_radius <= 0.0:
        return None
    closest: Optional[P] = None
    closest_dist_sq = max_radius * max_radius
    origin_x = origin.x
    origin_y = origin.y
    for candidate in candidates:
        pos = candidate.position
        offset_x = pos.x - origin_x
        offset_y = pos.y - origin_y
        dist_sq = offset_x * offset_x + offset_y * offset_y
        if dist_sq < closest_dist_sq:
            closest_dist_sq = dist_sq
            closest = candidate
    return closest
