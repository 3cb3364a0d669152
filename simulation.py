# simulation.py

"""
Simulation Loop and Particle Set Handles

A SimulationLoop advances one ParticleSet in discrete ticks. Each tick cools
alpha, pulls every particle toward its anchor by a step scaled with alpha,
then relaxes overlaps with a collision strength that does not decay. Once
alpha drops below its floor the loop goes idle and further ticks do nothing.

A ParticleSetHandle bundles a set, its loop and a lock, and is the object
callers pass around. The module-level functions mirror its methods for
callers that prefer a functional interface.

Data Contract:
- The simulation needs no event loop. An external driver (a frame timer,
  a test, a headless run) calls tick() or run().
- Tick callbacks receive a TickSnapshot copy and must treat it as read-only.
"""

import logging
import threading
import numpy as np
from collision import resolve_all
from forces import apply_gravity
from particle_set import ParticleSet
from quadtree import QuadTree

logger = logging.getLogger("cluster_layout")

# Defaults for the 'simulation' config section.
DEFAULT_INITIAL_ALPHA = 1.0
DEFAULT_COOLING_FACTOR = 0.99
DEFAULT_ALPHA_MIN = 0.005
DEFAULT_GRAVITY_WEIGHT = 0.5
DEFAULT_COLLISION_STRENGTH = 0.85

LOG_EVERY_TICKS = 100

class SimulationLoop:
    """
    Drives one ParticleSet through Idle -> Running -> Idle.

    Data Contract:
    - Inputs:
        - particle_set (ParticleSet): The population this loop owns.
        - config (dict): The 'simulation' section of the config file. Every key is optional.
    - Outputs: tick() returns True when a tick ran, False while idle.
    - Side Effects: Mutates particle_set.positions; invokes tick callbacks.
    - Invariants: Gravity scales with alpha, collision strength never does.
      Anchors are never written.
    """
    def __init__(self, particle_set: ParticleSet, config: dict = None):
        config = config or {}
        self.particle_set = particle_set
        self.initial_alpha = config.get('initial_alpha', DEFAULT_INITIAL_ALPHA)
        self.cooling_factor = config.get('cooling_factor', DEFAULT_COOLING_FACTOR)
        self.alpha_min = config.get('alpha_min', DEFAULT_ALPHA_MIN)
        self.gravity_weight = config.get('gravity_weight', DEFAULT_GRAVITY_WEIGHT)
        self.collision_strength = config.get('collision_strength', DEFAULT_COLLISION_STRENGTH)
        self.collision_iterations = config.get('collision_iterations', 1)

        self.alpha = 0.0
        self.running = False
        self.tick_count = 0
        self.last_corrections = 0
        self._callbacks = []
        self._qtree = QuadTree()

    def start(self):
        """(Re)start the decay clock."""
        self.alpha = self.initial_alpha
        self.running = True
        logger.info(f"{self.particle_set.name}: simulation started with alpha={self.alpha} ({len(self.particle_set)} particles).")

    def stop(self):
        self.alpha = 0.0
        self.running = False

    def on_tick(self, callback):
        """Register a callback invoked with a TickSnapshot after every tick that ran."""
        self._callbacks.append(callback)
        return callback

    def remove_tick_callback(self, callback):
        self._callbacks.remove(callback)

    def tick(self) -> bool:
        if not self.running:
            return False

        self.alpha *= self.cooling_factor
        if self.alpha < self.alpha_min:
            self.stop()
            logger.info(f"{self.particle_set.name}: layout converged after {self.tick_count} ticks.")
            return False

        particle_set = self.particle_set
        if len(particle_set) > 0:
            # --- 1. Gravity toward anchors, decaying with alpha ---
            apply_gravity(particle_set.positions, particle_set.anchors, self.gravity_weight * self.alpha)

            # --- 2. Collision relaxation at full strength ---
            self.last_corrections = resolve_all(
                particle_set, self.collision_strength, tree=self._qtree, iterations=self.collision_iterations
            )
        else:
            self.last_corrections = 0

        self.tick_count += 1

        # --- Logging (throttled) ---
        if self.tick_count % LOG_EVERY_TICKS == 0:
            logger.debug(
                f"{particle_set.name}: Tick={self.tick_count}, "
                f"Alpha={self.alpha:.4f}, "
                f"Particles={len(particle_set)}, "
                f"Corrections={self.last_corrections}, "
                f"MeanAnchorDistance={self.mean_anchor_distance():.3f}"
            )

        if self._callbacks:
            snapshot = particle_set.snapshot(tick=self.tick_count, alpha=self.alpha)
            for callback in self._callbacks:
                callback(snapshot)
        return True

    def run(self, max_ticks: int = None) -> int:
        """Tick until the loop goes idle or max_ticks is reached. Returns the number of ticks that ran."""
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            if not self.tick():
                break
            ticks += 1
        return ticks

    def mean_anchor_distance(self) -> float:
        if len(self.particle_set) == 0:
            return 0.0
        diffs = self.particle_set.anchors - self.particle_set.positions
        return float(np.mean(np.sqrt(np.sum(diffs**2, axis=1))))

class ParticleSetHandle:
    """
    Caller-owned handle to one independent simulation.

    Mutations and ticks are serialized through a re-entrant lock, so an
    add() from another thread lands between ticks rather than in the middle
    of a collision pass. Every mutation restarts the decay clock.
    """
    def __init__(self, particle_set: ParticleSet, config: dict = None):
        self.particle_set = particle_set
        self.loop = SimulationLoop(particle_set, config)
        self._lock = threading.RLock()

    @property
    def name(self) -> str:
        return self.particle_set.name

    @property
    def alpha(self) -> float:
        return self.loop.alpha

    @property
    def running(self) -> bool:
        return self.loop.running

    def __len__(self):
        return len(self.particle_set)

    def add(self, particle) -> int:
        with self._lock:
            index = self.particle_set.add(particle)
            self.loop.start()
            return index

    def remove(self, index: int):
        with self._lock:
            removed = self.particle_set.remove(index)
            self.loop.start()
            return removed

    def clear(self):
        with self._lock:
            self.particle_set.clear()
            self.loop.start()

    def start(self):
        with self._lock:
            self.loop.start()

    def stop(self):
        with self._lock:
            self.loop.stop()

    def tick(self) -> bool:
        with self._lock:
            return self.loop.tick()

    def run(self, max_ticks: int = None) -> int:
        with self._lock:
            return self.loop.run(max_ticks)

    def on_tick(self, callback):
        with self._lock:
            return self.loop.on_tick(callback)

    def find_at(self, point):
        with self._lock:
            return self.particle_set.find_at(point)

    def snapshot(self):
        with self._lock:
            return self.particle_set.snapshot(tick=self.loop.tick_count, alpha=self.loop.alpha)

def create_particle_set(initial_particles=(), config: dict = None, rng: np.random.Generator = None,
                        name: str = "particles", padding: float = 0.0, spawn_point=(0.0, 0.0)) -> ParticleSetHandle:
    """
    Create an independent simulation seeded with the given particles.

    Initial particles keep their own position when they carry one; the rest
    spawn at spawn_point. The loop stays idle until start() is called.
    """
    config = config or {}
    particle_set = ParticleSet(
        padding=padding,
        spawn_point=spawn_point,
        spawn_jitter=config.get('spawn_jitter', 1.0),
        rng=rng,
        name=name,
    )
    for particle in initial_particles:
        particle_set.add(particle)
    handle = ParticleSetHandle(particle_set, config)
    logger.info(f"{name}: particle set created with {len(particle_set)} particle(s), padding={padding}.")
    return handle

def add(handle: ParticleSetHandle, particle_spec) -> int:
    return handle.add(particle_spec)

def remove(handle: ParticleSetHandle, index: int):
    return handle.remove(index)

def clear(handle: ParticleSetHandle):
    handle.clear()

def on_tick(handle: ParticleSetHandle, callback):
    return handle.on_tick(callback)

def start(handle: ParticleSetHandle):
    handle.start()
