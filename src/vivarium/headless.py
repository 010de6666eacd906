from __future__ import annotations

import argparse
import csv
import dataclasses
import json
import logging
import math
from pathlib import Path
from typing import Optional

from .config import SimulationConfig
from .metrics import TickSummary
from .stats import Stats, summarize
from .world import World

logger = logging.getLogger("vivarium.headless")

_HEADER = [
    "tick",
    "population",
    "food",
    "births",
    "deaths",
    "food_spawned",
    "food_consumed",
    "avg_speed",
    "avg_size",
    "species",
    "top_species_count",
    "tick_ms",
]


def _format_row(summary: TickSummary, stats: Stats, tick_ms: float) -> list[object]:
    return [
        summary.tick,
        summary.population,
        summary.food,
        summary.births,
        summary.deaths,
        summary.food_spawned,
        summary.food_consumed,
        f"{stats.average_speed:.4f}",
        f"{stats.average_size:.4f}",
        len(stats.species),
        stats.species[0].count if stats.species else 0,
        f"{tick_ms:.3f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    width: float = 800.0,
    height: float = 600.0,
    founders: int = 20,
    config_path: Optional[Path] = None,
    summary_path: Optional[Path] = None,
) -> Stats:
    if steps <= 0:
        raise ValueError(f"steps must be positive, got {steps}")
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config = dataclasses.replace(config, seed=seed)
    world = World(width, height, config)
    world.spawn_cluster(width / 2.0, height / 2.0, founders)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_HEADER)

    population_series: list[float] = []
    food_series: list[float] = []
    tick_ms_series: list[float] = []
    peak_population = (-1, -1)
    extinct_at: Optional[int] = None
    total_births = 0
    total_deaths = 0

    try:
        for _ in range(steps):
            summary = world.tick()
            tick_ms = 0.0 if deterministic_log else summary.tick_duration_ms
            total_births += summary.births
            total_deaths += summary.deaths
            population_series.append(float(summary.population))
            food_series.append(float(summary.food))
            tick_ms_series.append(tick_ms)
            if summary.population > peak_population[0]:
                peak_population = (summary.population, summary.tick)
            if extinct_at is None and summary.population == 0:
                extinct_at = summary.tick
            if writer:
                writer.writerow(_format_row(summary, summarize(world), tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    final_stats = summarize(world)
    logger.info(
        "ran %d ticks: population=%d food=%d births=%d deaths=%d",
        steps,
        final_stats.organisms,
        final_stats.food,
        total_births,
        total_deaths,
    )

    if summary_path:
        payload = {
            "steps": steps,
            "seed": config.seed,
            "founders": founders,
            "deterministic_log": deterministic_log,
            "births": total_births,
            "deaths": total_deaths,
            "extinct_at": extinct_at,
            "population": _summary_stats(population_series),
            "food": _summary_stats(food_series),
            "tick_ms": _summary_stats(tick_ms_series),
            "peaks": {"population": {"value": peak_population[0], "tick": peak_population[1]}},
            "final": dataclasses.asdict(final_stats),
        }
        Path(summary_path).write_text(json.dumps(payload, indent=2))
    return final_stats


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless vivarium simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--width", type=float, default=800.0)
    parser.add_argument("--height", type=float, default=600.0)
    parser.add_argument("--founders", type=int, default=20, help="Founders seeded at the world centre")
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per-tick metrics")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file for run summary stats.")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--verbose", action="store_true", help="Log per-tick summaries")
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        width=args.width,
        height=args.height,
        founders=args.founders,
        config_path=args.config,
        summary_path=args.summary,
    )


if __name__ == "__main__":
    main()
