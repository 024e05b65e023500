"""EngineManager: owns the WorldLoop and the background thread that ticks it.

Readers never touch the live world.  After every tick, and after every
command, the manager publishes a fresh immutable :class:`Snapshot` by
swapping a single reference.  Ticks and commands both run under the world
lock, so a command always lands between two ticks.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import TYPE_CHECKING, Callable, TypeVar

from eternity.engine.setup import build_world_loop
from eternity.utils.event_log import EventLog

if TYPE_CHECKING:
    from eternity.config import SimulationConfig
    from eternity.core.snapshot import Snapshot
    from eternity.core.terrain import TerrainGrid
    from eternity.engine.world_loop import WorldLoop

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MIN_INTERVAL = 0.01
_MAX_INTERVAL = 2.0


class EngineStatus(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


class EngineManager:
    """Lifecycle: STOPPED -> start -> RUNNING <-> PAUSED -> stop/reset -> STOPPED.

    ``step`` pauses a running engine and queues one tick for the thread;
    ``step_now`` ticks on the caller's thread and is what a stopped engine
    uses.
    """

    def __init__(self, config: SimulationConfig) -> None:
        self.config = config
        self.event_log = EventLog()
        self._interval = config.tick_delta

        self._world_lock = threading.RLock()
        self._wake = threading.Condition(self._world_lock)
        self._halt = threading.Event()
        self._status = EngineStatus.STOPPED
        self._pending_steps = 0
        self._thread: threading.Thread | None = None

        self._snapshot: Snapshot | None = None
        self._loop: WorldLoop = self._build()

    # -- status --

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def running(self) -> bool:
        return self._status is not EngineStatus.STOPPED

    @property
    def paused(self) -> bool:
        return self._status is EngineStatus.PAUSED

    @property
    def tick(self) -> int:
        return self._loop.world.tick

    @property
    def total_removed(self) -> int:
        return self._loop.removed_count

    @property
    def tick_rate(self) -> float:
        """Seconds the thread waits between ticks."""
        return self._interval

    @tick_rate.setter
    def tick_rate(self, value: float) -> None:
        self._interval = min(max(value, _MIN_INTERVAL), _MAX_INTERVAL)

    # -- reads --

    def get_snapshot(self) -> Snapshot | None:
        return self._snapshot

    def get_terrain(self) -> TerrainGrid | None:
        snapshot = self._snapshot
        return snapshot.terrain if snapshot is not None else None

    # -- writes --

    def execute(self, command: Callable[[WorldLoop], T]) -> T:
        """Apply *command* to the live loop between ticks and republish."""
        with self._world_lock:
            try:
                return command(self._loop)
            finally:
                self._publish()

    def step_now(self) -> int:
        with self._world_lock:
            self._loop.tick_once()
            self._publish()
            return self._loop.world.tick

    # -- lifecycle --

    def start(self) -> None:
        with self._wake:
            if self._status is not EngineStatus.STOPPED:
                return
            self._halt.clear()
            self._pending_steps = 0
            self._status = EngineStatus.RUNNING
            self._thread = threading.Thread(target=self._run, name="engine-loop", daemon=True)
            self._thread.start()
        logger.info("Engine started (%.3fs between ticks).", self._interval)

    def pause(self) -> None:
        with self._wake:
            if self._status is EngineStatus.RUNNING:
                self._status = EngineStatus.PAUSED
                logger.info("Engine paused.")

    def resume(self) -> None:
        with self._wake:
            if self._status is EngineStatus.PAUSED:
                self._status = EngineStatus.RUNNING
                self._wake.notify_all()
                logger.info("Engine resumed.")

    def step(self) -> None:
        with self._wake:
            if self._status is EngineStatus.STOPPED:
                return
            self._status = EngineStatus.PAUSED
            self._pending_steps += 1
            self._wake.notify_all()

    def stop(self) -> None:
        with self._wake:
            thread, self._thread = self._thread, None
            self._halt.set()
            self._status = EngineStatus.STOPPED
            self._wake.notify_all()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5.0)
            if thread.is_alive():
                logger.warning("Engine thread did not exit within 5s.")

    def reset(self) -> None:
        """Stop and rebuild the world from the same config, leaving it stopped."""
        self.stop()
        self.event_log.clear()
        with self._world_lock:
            self._loop = self._build()
        logger.info("Engine reset.")

    # -- internals --

    def _build(self) -> WorldLoop:
        with self._world_lock:
            loop = build_world_loop(self.config, self.event_log)
            self._loop = loop
            self._publish()
        return loop

    def _publish(self) -> None:
        self._snapshot = self._loop.create_snapshot()

    def _run(self) -> None:
        while True:
            with self._wake:
                while (
                    self._status is EngineStatus.PAUSED
                    and not self._pending_steps
                    and not self._halt.is_set()
                ):
                    self._wake.wait()
                if self._halt.is_set():
                    break
                single = self._pending_steps > 0
                if single:
                    self._pending_steps -= 1
                alive = self._loop.tick_once()
                self._publish()

            if not alive:
                logger.info("Simulation reached its tick limit.")
                with self._wake:
                    self._status = EngineStatus.STOPPED
                break
            if not single:
                self._halt.wait(self._interval)
