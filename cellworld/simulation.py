"""
Cellworld simulation clock.

Drives the per-tick update: advances every organism, removes the dead in
one batch, drops food, and triggers periodic statistics snapshots.
"""

import math
import os
import time
from enum import Enum
from pathlib import Path
from typing import List, Optional

from loguru import logger

from .constants import (
    DEBUG_INVARIANTS_ENV,
    FOOD_SPAWN_AREA_DIVISOR,
    TICK_TIME_WINDOW,
)
from .controller import EnvironmentController
from .data_types import CellState, SimulationSettings
from .loader import load_settings
from .rng import random_cell
from .world import CellWorld


class ClockState(Enum):
    RUNNING = "running"
    RESET_PENDING = "reset_pending"


class SimulationClock:
    """
    Main tick driver for a CellWorld.

    Single-threaded and step-based: the world only changes inside tick()
    and reset(). A reset requested while a tick is in progress (auto-reset
    on extinction) runs once the tick has finished.
    """

    def __init__(self, world: CellWorld):
        """
        Args:
            world: World to advance
        """
        self.world = world
        self.state = ClockState.RUNNING
        self.paused = False
        self.controller: Optional[EnvironmentController] = None

        self._in_tick = False
        self._reset_requested = False

        # Performance metrics
        self._tick_times: List[float] = []
        self._tick_time_sum: float = 0.0
        self._tick_time_window: int = TICK_TIME_WINDOW  # Rolling average window

        self._deaths_last_tick = 0
        self._food_last_tick = 0

    @classmethod
    def from_settings(cls, settings: SimulationSettings, renderer=None) -> 'SimulationClock':
        """
        Build world, clock and extinction controller from loaded settings.

        Args:
            settings: SimulationSettings from loader.load_settings()
            renderer: Optional render collaborator

        Returns:
            SimulationClock with .controller attached
        """
        world = CellWorld(settings.hyperparameters, settings.world, renderer=renderer)
        clock = cls(world)
        clock.controller = EnvironmentController(clock)
        if settings.world.start_with_life:
            world.origin_of_life()
        return clock

    @classmethod
    def from_config_file(cls, file_path: Path, renderer=None) -> 'SimulationClock':
        """Load settings YAML and build a ready-to-run clock"""
        return cls.from_settings(load_settings(file_path), renderer=renderer)

    def tick(self):
        """
        Advance the world by one step.

        TWO-PHASE REMOVAL CONTRACT:

        Phase A: Update pass
        --------------------
        The population is traversed back-to-front over the length it had
        when the tick started. Each organism runs its own update; indices of
        organisms that are no longer living are collected. Nothing is
        removed during the pass, and offspring appended by reproduction are
        not visited until the next tick.

        Phase B: Batch removal
        ----------------------
        All collected indices are removed in a single remove_batch call,
        so registry aggregates and the spatial index change atomically.

        Then: food spawn, tick counter, periodic statistics snapshot.
        """
        start_time = time.perf_counter()
        world = self.world
        registry = world.registry
        hp = world.hyperparams

        self._in_tick = True
        try:
            # Phase A: update pass
            dead = []
            for i in range(len(registry) - 1, -1, -1):
                organism = registry[i]
                if not organism.living or not organism.update():
                    dead.append(i)

            # Phase B: batch removal
            registry.remove_batch(dead)
            self._deaths_last_tick = len(dead)

            self._food_last_tick = self.spawn_food() if hp.food_drop_prob > 0 else 0

            world.total_ticks += 1
            if hp.data_update_rate > 0 and world.total_ticks % hp.data_update_rate == 0:
                world.fossil_record.update_data()
        finally:
            self._in_tick = False

        # Record timing
        elapsed = time.perf_counter() - start_time
        self._record_tick_time(elapsed)

        if self._reset_requested:
            self._reset_requested = False
            self.reset(confirm_reset=False)

        # Debug invariant check (zero perf impact when env var not set)
        if os.getenv(DEBUG_INVARIANTS_ENV) == '1':
            registry.check_invariants()

    def run(self, ticks: int) -> int:
        """
        Tick up to `ticks` times, stopping early if paused.

        Returns:
            Number of ticks executed
        """
        executed = 0
        for _ in range(ticks):
            if self.paused:
                break
            self.tick()
            executed += 1
        return executed

    def spawn_food(self) -> int:
        """
        Drop food on random empty cells.

        Candidates per tick = max(floor(cols * rows * p / 50000), 1); each
        candidate succeeds with probability p and lands on a uniformly
        random cell, which only changes if it is empty.

        Returns:
            Number of food cells placed
        """
        world = self.world
        grid_map = world.grid_map
        prob = world.hyperparams.food_drop_prob
        if prob <= 0:
            return 0

        num_candidates = max(math.floor(grid_map.cols * grid_map.rows * prob / FOOD_SPAWN_AREA_DIVISOR), 1)
        placed = 0
        for _ in range(num_candidates):
            if world.rng.random() <= prob:
                c, r = random_cell(world.rng, grid_map.cols, grid_map.rows)
                if grid_map.cell_at(c, r).state == CellState.EMPTY:
                    world.change_cell(c, r, CellState.FOOD, None)
                    placed += 1
        return placed

    def request_reset(self):
        """Reset now, or after the current tick if one is in progress"""
        if self._in_tick:
            self._reset_requested = True
        else:
            self.reset(confirm_reset=False)

    def reset(self, confirm_reset: bool = True, reset_life: bool = True, confirmed: bool = False) -> bool:
        """
        Replace the world with an empty one (optionally reseeded).

        All-or-nothing: an unconfirmed destructive reset changes nothing.

        Args:
            confirm_reset: Whether this reset needs confirmation (auto-reset passes False)
            reset_life: Plant an origin-of-life organism afterwards
            confirmed: Caller's confirmation answer

        Returns:
            True if the world was reset
        """
        world = self.world
        if confirm_reset and world.config.confirm_reset and not confirmed:
            logger.info("Reset aborted: destructive reset not confirmed")
            return False

        self.state = ClockState.RESET_PENDING
        try:
            world.registry.clear()
            keep_walls = not world.config.clear_walls_on_reset
            world.grid_map.fill_grid(CellState.EMPTY, ignore_walls=keep_walls)
            if not keep_walls:
                world.walls = []
            world.render_full()
            world.total_ticks = 0
            world.fossil_record.clear_record()
            if reset_life:
                world.origin_of_life()
        finally:
            self.state = ClockState.RUNNING

        logger.info(f"World reset (reset_count={world.reset_count}, life={'yes' if reset_life else 'no'})")
        return True

    def get_tick_stats(self) -> dict:
        """
        Get current tick timing statistics.

        Returns:
            Dict with tick_count, avg_tick_time_ms, last_tick_time_ms
        """
        if not self._tick_times:
            return {
                'tick_count': self.world.total_ticks,
                'avg_tick_time_ms': 0.0,
                'last_tick_time_ms': 0.0
            }

        avg_time = self._tick_time_sum / len(self._tick_times)
        last_time = self._tick_times[-1]

        return {
            'tick_count': self.world.total_ticks,
            'avg_tick_time_ms': avg_time * 1000.0,
            'last_tick_time_ms': last_time * 1000.0
        }

    def _record_tick_time(self, elapsed: float):
        """
        Record tick timing for rolling average.

        Args:
            elapsed: Tick time in seconds
        """
        self._tick_times.append(elapsed)
        self._tick_time_sum += elapsed

        # Maintain rolling window
        if len(self._tick_times) > self._tick_time_window:
            removed = self._tick_times.pop(0)
            self._tick_time_sum -= removed

    def get_snapshot(self) -> dict:
        """
        Lightweight statistics snapshot (not a save file; see serializer).

        Returns:
            Dict with tick, population, species and timing figures
        """
        world = self.world
        return {
            'tick_count': world.total_ticks,
            'population': len(world.registry),
            'species_count': len(world.fossil_record.extant_species),
            'average_mutability': world.average_mutability(),
            'largest_cell_count': world.largest_cell_count,
            'reset_count': world.reset_count,
            'deaths_last_tick': self._deaths_last_tick,
            'food_last_tick': self._food_last_tick,
            'timing': self.get_tick_stats()
        }

    def print_tick_summary(self):
        """Print tick summary to console (lightweight monitoring)"""
        stats = self.get_tick_stats()
        print(f"Tick {stats['tick_count']:5d} | "
              f"Avg: {stats['avg_tick_time_ms']:6.3f} ms | "
              f"Last: {stats['last_tick_time_ms']:6.3f} ms | "
              f"Organisms: {len(self.world.registry)} | "
              f"Species: {len(self.world.fossil_record.extant_species)}")
