from __future__ import annotations

import pytest
from pygame.math import Vector2
from pytest import approx

from vivarium.config import SimulationConfig
from vivarium.errors import ConfigurationError
from vivarium.genome import Genome
from vivarium.world import World


def _genome(**overrides) -> Genome:
    values = dict(
        speed=1.0,
        size=5.0,
        sense_radius=50.0,
        max_age=1000.0,
        reproduction_threshold=150.0,
        color_tag=90.0,
    )
    values.update(overrides)
    return Genome(**values)


def _quiet_world(config: SimulationConfig | None = None) -> World:
    world = World(800, 600, config or SimulationConfig(food_rate=12, mutation_rate=0.1))
    # skip the food spawn that always happens on tick zero
    world._tick = 1
    return world


def _run(world: World, steps: int) -> list:
    return [world.tick() for _ in range(steps)]


def _state(world: World) -> list[tuple]:
    return sorted(
        (view.id, view.x, view.y, view.energy, view.age, view.genome) for view in world.organisms()
    ) + sorted((item.id, item.x, item.y) for item in world.food())


def test_metabolic_cost_without_food_or_movement():
    world = _quiet_world()
    genome = _genome(speed=1.2, size=7.0)
    organism = world._insert_organism(Vector2(400, 300), genome)

    world.tick()

    assert organism.energy == approx(100.0 - (0.1 + 1.2 * 0.05 + 7.0 * 0.02))
    assert organism.age == 1


def test_reproduction_halves_energy_and_spawns_one_child_in_place():
    world = _quiet_world()
    genome = _genome()
    parent = world._insert_organism(Vector2(400, 300), genome, energy=genome.reproduction_threshold + 1.0)
    cost = genome.metabolic_cost()

    summary = world.tick()

    assert parent.energy == approx((genome.reproduction_threshold + 1.0 - cost) / 2)
    assert summary.births == 1
    assert world.population == 2
    child = next(view for view in world.organisms() if view.id != parent.id)
    assert (child.x, child.y) == (parent.position.x, parent.position.y)
    assert child.parent_id == parent.id
    assert child.generation == 1
    assert child.energy == approx(100.0)


def test_offspring_are_not_processed_in_their_birth_tick():
    world = _quiet_world()
    world._insert_organism(Vector2(400, 300), _genome(), energy=5000.0)

    summary = world.tick()

    (child_id,) = summary.born_ids
    child = next(view for view in world.organisms() if view.id == child_id)
    assert child.age == 0
    assert child.energy == 100.0


def test_organism_dies_when_energy_runs_out():
    world = _quiet_world()
    organism = world._insert_organism(Vector2(400, 300), _genome(), energy=0.05)

    summary = world.tick()

    assert organism.id in summary.died_ids
    assert all(view.id != organism.id for view in world.organisms())
    assert world.population == 0


def test_organism_dies_of_old_age():
    world = _quiet_world()
    organism = world._insert_organism(Vector2(400, 300), _genome(max_age=3.0))

    summaries = _run(world, 4)

    assert [s.deaths for s in summaries] == [0, 0, 0, 1]
    assert summaries[-1].died_ids == (organism.id,)


def test_food_within_reach_is_eaten_in_the_same_tick():
    world = _quiet_world()
    genome = _genome()
    organism = world._insert_organism(Vector2(400, 300), genome)
    item = world._spawn_food(Vector2(402, 300))

    summary = world.tick()

    assert summary.consumed_food_ids == (item.id,)
    assert world.food_count == 0
    assert organism.energy == approx(100.0 - genome.metabolic_cost() + 50.0)


def test_contested_food_goes_to_the_closest_organism():
    world = _quiet_world()
    near = world._insert_organism(Vector2(400, 300), _genome())
    far = world._insert_organism(Vector2(406, 300), _genome())
    world._spawn_food(Vector2(402.5, 300))
    world._organisms.reverse()

    world.tick()

    cost = _genome().metabolic_cost()
    assert near.energy == approx(100.0 - cost + 50.0)
    assert far.energy == approx(100.0 - cost)


def test_contested_food_tie_goes_to_lowest_id():
    world = _quiet_world()
    first = world._insert_organism(Vector2(400, 300), _genome())
    second = world._insert_organism(Vector2(406, 300), _genome())
    world._spawn_food(Vector2(403, 300))
    world._organisms.reverse()

    world.tick()

    assert first.energy > second.energy


def test_food_spawns_on_cadence():
    config = SimulationConfig(food_rate=20)
    world = World(800, 600, config)

    summaries = _run(world, 11)

    assert [s.food_spawned for s in summaries] == [1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1]
    assert world.food_count == 3
    for item in world.food():
        assert 0.0 <= item.x <= 800.0
        assert 0.0 <= item.y <= 600.0
        assert item.energy == 50.0


def test_single_founder_scenario_has_one_food_after_thirteen_ticks():
    world = World(800, 600, SimulationConfig(food_rate=12, mutation_rate=0.1))
    world.spawn_cluster(400, 300, 1)
    assert world.food_count == 0

    summaries = _run(world, 25 - 12)

    spawned = sum(s.food_spawned for s in summaries)
    consumed = sum(s.food_consumed for s in summaries)
    assert spawned == 1
    assert world.food_count + consumed == 1
    assert world.tick_count == 13


def test_tick_result_does_not_depend_on_organism_order():
    config = SimulationConfig(seed=77, food_rate=22, mutation_rate=0.3)
    world_a = World(300, 300, config)
    world_b = World(300, 300, config)
    for world in (world_a, world_b):
        world.spawn_cluster(150, 150, 25)
        for offset in range(30):
            world._spawn_food(Vector2(140 + offset, 150 + (offset % 5)))
        for organism in world._organisms[::3]:
            organism.energy = 170.0

    for _ in range(200):
        world_b._organisms.reverse()
        summary_a = world_a.tick()
        summary_b = world_b.tick()
        assert summary_a.population == summary_b.population
        assert summary_a.births == summary_b.births
        assert summary_a.deaths == summary_b.deaths

    assert sorted(v.id for v in world_a.organisms()) == sorted(v.id for v in world_b.organisms())
    total_a = sum(v.energy for v in world_a.organisms())
    total_b = sum(v.energy for v in world_b.organisms())
    assert total_a == approx(total_b)


def test_same_seed_runs_are_identical():
    def run() -> list[tuple]:
        world = World(640, 480, SimulationConfig(seed=1234, food_rate=20, mutation_rate=0.2))
        world.spawn_cluster(320, 240, 12)
        _run(world, 300)
        return _state(world)

    assert run() == run()


def test_trait_floors_hold_for_every_organism():
    config = SimulationConfig(seed=3, food_rate=23, mutation_rate=1.0)
    world = World(400, 400, config)
    world.spawn_cluster(200, 200, 10)
    for organism in world._organisms:
        organism.energy = 400.0

    for _ in range(150):
        world.tick()
        for view in world.organisms():
            assert view.genome.speed >= 0.2
            assert view.genome.size >= 2.0
            assert view.genome.sense_radius >= 20.0
            if view.age == 0:
                # newborns sit on the parent's spot until their first move
                continue
            assert view.size <= view.x <= 400 - view.size
            assert view.size <= view.y <= 400 - view.size


def test_spawn_cluster_scatters_founders_near_point():
    world = World(800, 600, SimulationConfig())
    ids = world.spawn_cluster(100, 120)

    assert ids == [0, 1, 2, 3, 4]
    for view in world.organisms():
        assert abs(view.x - 100) <= 10.0
        assert abs(view.y - 120) <= 10.0
        assert view.energy == 100.0
        assert view.age == 0
        assert view.generation == 0


def test_spawn_cluster_near_edge_stays_in_bounds():
    world = World(800, 600, SimulationConfig())
    world.spawn_cluster(0, 600, 8)
    for view in world.organisms():
        assert view.size <= view.x <= 800 - view.size
        assert view.size <= view.y <= 600 - view.size


def test_views_do_not_alias_live_organisms():
    world = World(800, 600, SimulationConfig())
    world.spawn_cluster(400, 300, 1)
    view = next(world.organisms())
    organism = world._organisms[0]
    organism.position.x += 5.0
    assert view.x != organism.position.x


def test_reset_clears_state_and_replays_deterministically():
    world = World(800, 600, SimulationConfig(seed=8))
    world.spawn_cluster(400, 300, 6)
    _run(world, 40)
    first_run = _state(world)

    world.reset()
    assert world.population == 0
    assert world.food_count == 0
    assert world.tick_count == 0
    assert world.last_summary is None

    world.spawn_cluster(400, 300, 6)
    _run(world, 40)
    assert _state(world) == first_run


def test_empty_world_ticks_without_error():
    world = World(800, 600, SimulationConfig())
    summary = world.tick()
    assert summary.population == 0
    assert summary.food == 1
    assert summary.tick == 1


@pytest.mark.parametrize(
    "config",
    [
        SimulationConfig(food_rate=25),
        SimulationConfig(food_rate=40),
        SimulationConfig(mutation_rate=1.5),
        SimulationConfig(mutation_rate=-0.1),
    ],
)
def test_invalid_config_is_rejected_at_construction(config):
    with pytest.raises(ConfigurationError):
        World(800, 600, config)


def test_invalid_dimensions_are_rejected():
    with pytest.raises(ConfigurationError):
        World(0, 600, SimulationConfig())


def test_update_config_changes_rates_and_rejects_bad_values():
    world = World(800, 600, SimulationConfig(food_rate=12))
    world.update_config(SimulationConfig(food_rate=24, mutation_rate=0.5))
    assert world.config.food_cadence == 1

    with pytest.raises(ConfigurationError):
        world.update_config(SimulationConfig(food_rate=25))
    assert world.config.food_rate == 24

    summaries = _run(world, 3)
    assert [s.food_spawned for s in summaries] == [1, 1, 1]


def test_seed_change_waits_for_reset():
    current = World(800, 600, SimulationConfig(seed=1))
    updated = World(800, 600, SimulationConfig(seed=1))
    updated.update_config(SimulationConfig(seed=2))

    current.spawn_cluster(400, 300, 3)
    updated.spawn_cluster(400, 300, 3)
    assert [o.rng.next_float() for o in current._organisms] == [o.rng.next_float() for o in updated._organisms]
    _run(current, 30)
    _run(updated, 30)
    assert _state(current) == _state(updated)
    assert updated.snapshot().metadata.seed == 1

    fresh = World(800, 600, SimulationConfig(seed=2))
    updated.reset()
    fresh.spawn_cluster(400, 300, 3)
    updated.spawn_cluster(400, 300, 3)
    _run(fresh, 30)
    _run(updated, 30)
    assert _state(updated) == _state(fresh)
    assert updated.snapshot().metadata.seed == 2

def test_snapshot_contains_world_and_entities():
    world = World(640, 480, SimulationConfig(seed=7, food_rate=20))
    world.spawn_cluster(320, 240, 3)
    world.tick()

    snapshot = world.snapshot()

    assert snapshot.tick == 1
    assert snapshot.world.width == approx(640.0)
    assert snapshot.world.height == approx(480.0)
    assert snapshot.metadata.seed == 7
    assert snapshot.metadata.food_rate == 20
    assert snapshot.stats.organisms == len(snapshot.organisms)
    payload = snapshot.organisms[0]
    for key in ["id", "x", "y", "energy", "age", "size", "speed", "hue"]:
        assert key in payload
    assert len(snapshot.food) == world.food_count
