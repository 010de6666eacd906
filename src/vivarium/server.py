from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from .config import AppConfig
from .stats import summarize
from .world import World

logger = logging.getLogger("vivarium.server")

# Oldest unacknowledged snapshots are dropped past this many.
MAX_QUEUED_SNAPSHOTS = 120


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: AppConfig):
        self.config = config
        self.world = World(config.width, config.height, config.simulation)
        self.broadcast_interval = max(1, config.broadcast_interval)
        self.running = False
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=MAX_QUEUED_SNAPSHOTS)
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._loop_task: asyncio.Task | None = None
        self._seed_initial_founders()

    @property
    def tick(self) -> int:
        return self.world.tick_count

    async def launch(self) -> None:
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._loop())

    async def start(self) -> None:
        await self.launch()
        self.running = True
        logger.info("simulation started at tick %d", self.tick)

    async def stop(self) -> None:
        self.running = False
        logger.info("simulation stopped at tick %d", self.tick)

    async def reset(self) -> None:
        async with self._lock:
            self.running = False
            self.world.reset()
            self._seed_initial_founders()
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def seed(self, x: float, y: float, count: Optional[int] = None) -> List[int]:
        async with self._lock:
            spawned = self.world.spawn_cluster(x, y, count)
        if not self.running:
            await self._broadcast_snapshot()
        return spawned

    async def update_rates(self, food_rate: Optional[int] = None, mutation_rate: Optional[float] = None) -> None:
        changes: Dict[str, object] = {}
        if food_rate is not None:
            changes["food_rate"] = food_rate
        if mutation_rate is not None:
            changes["mutation_rate"] = mutation_rate
        async with self._lock:
            updated = dataclasses.replace(self.world.config, **changes)
            self.world.update_config(updated)
        logger.info("config updated: %s", changes)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(1.0 / self.world.config.ticks_per_second / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.world.tick()
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _seed_initial_founders(self) -> None:
        if self.config.initial_founders > 0:
            self.world.spawn_cluster(
                self.config.width / 2.0, self.config.height / 2.0, self.config.initial_founders
            )

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot()
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "stats": asdict(snapshot.stats),
                "organisms": snapshot.organisms,
                "food": snapshot.food,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            if self._snapshot_queue and self._snapshot_queue[-1].tick == queued.tick:
                self._snapshot_queue[-1] = queued
            else:
                self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app = FastAPI(title="Vivarium Simulation")
controller = SimulationController(AppConfig())


@app.on_event("startup")
async def _startup() -> None:
    await controller.launch()


@app.get("/api/status")
async def status() -> JSONResponse:
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": controller.world.population,
            "food": controller.world.food_count,
        }
    )


@app.get("/api/stats")
async def stats() -> JSONResponse:
    return JSONResponse(asdict(summarize(controller.world)))


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/control/seed")
async def seed_cluster(payload: dict) -> JSONResponse:
    count = payload.get("count")
    try:
        spawned = await controller.seed(
            float(payload.get("x", 0.0)),
            float(payload.get("y", 0.0)),
            None if count is None else int(count),
        )
    except (TypeError, ValueError) as exc:
        logger.warning("rejected seed request %s: %s", payload, exc)
        return JSONResponse({"error": str(exc)}, status_code=400)
    return JSONResponse({"spawned": spawned, "population": controller.world.population})


@app.post("/api/config")
async def update_config(payload: dict) -> JSONResponse:
    food_rate = payload.get("food_rate")
    mutation_rate = payload.get("mutation_rate")
    try:
        await controller.update_rates(
            food_rate=None if food_rate is None else int(food_rate),
            mutation_rate=None if mutation_rate is None else float(mutation_rate),
        )
    except (TypeError, ValueError) as exc:
        logger.warning("rejected config update %s: %s", payload, exc)
        return JSONResponse({"error": str(exc)}, status_code=400)
    config = controller.world.config
    return JSONResponse({"food_rate": config.food_rate, "mutation_rate": config.mutation_rate})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
