"""Force-directed layout simulation.

Tick-based integrator over mutable per-node position/velocity arrays.
Forces are summed into velocities each tick:

- link: spring toward a target separation, stiffer for AI edges
- charge: pairwise inverse-distance repulsion
- collision: keeps nodes at least (visual_size + margin) apart
- center: shifts the free nodes so the centroid drifts to the viewport center

Energy ("alpha") cools geometrically toward alpha_target but never below
alpha_min, so the simulation keeps running at low energy and stays
responsive to drags and reheats. Pinned axes (fx / fy) are held in place
while still acting as anchors for their neighbors.

The simulator is independent of any render loop: call tick() directly for
headless use, or drive it with LayoutLoop.
"""

import logging
import math
from collections.abc import Callable

import numpy as np

from notegraph.graph.config import LayoutConfig
from notegraph.models import KnowledgeGraph

logger = logging.getLogger(__name__)

Positions = dict[str, tuple[float, float]]
TickListener = Callable[[Positions], None]

_INITIAL_RADIUS = 10.0
_INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))
_DISTANCE_MIN2 = 1.0
_JIGGLE = 1e-6


class ForceSimulation:
    """Mutable 2-D force simulation over one graph topology at a time."""

    def __init__(self, config: LayoutConfig | None = None, seed: int | None = None) -> None:
        self.config = config or LayoutConfig()
        self._rng = np.random.default_rng(seed)

        self.alpha = self.config.reheat_alpha
        self.alpha_target = 0.0
        self.tick_count = 0

        self._ids: list[str] = []
        self._index: dict[str, int] = {}
        self._pos = np.zeros((0, 2))
        self._vel = np.zeros((0, 2))
        self._fixed = np.full((0, 2), np.nan)
        self._radii = np.zeros(0)

        self._link_src = np.zeros(0, dtype=int)
        self._link_tgt = np.zeros(0, dtype=int)
        self._link_distance = np.zeros(0)
        self._link_strength = np.zeros(0)
        self._link_bias = np.zeros(0)

        self._listeners: list[TickListener] = []

    @property
    def center(self) -> tuple[float, float]:
        return self.config.width / 2, self.config.height / 2

    @property
    def node_ids(self) -> list[str]:
        return list(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    # ------------------------------------------------------------------
    # Topology
    # ------------------------------------------------------------------

    def set_graph(self, graph: KnowledgeGraph) -> None:
        """Load a new topology, keeping position/velocity/pin of surviving ids.

        Always reheats so the new topology settles instead of freezing
        in the previous equilibrium.
        """
        old_index = self._index
        old_pos, old_vel, old_fixed = self._pos, self._vel, self._fixed

        ids = graph.node_ids
        n = len(ids)
        index = {node_id: i for i, node_id in enumerate(ids)}

        pos = np.zeros((n, 2))
        vel = np.zeros((n, 2))
        fixed = np.full((n, 2), np.nan)
        placed = np.zeros(n, dtype=bool)

        for node_id, i in index.items():
            j = old_index.get(node_id)
            if j is not None:
                pos[i] = old_pos[j]
                vel[i] = old_vel[j]
                fixed[i] = old_fixed[j]
                placed[i] = True

        # New nodes start next to an already placed neighbor when there is one
        cx, cy = self.center
        for node_id, i in index.items():
            if placed[i]:
                continue
            anchor = next(
                (index[nb] for nb in sorted(graph.neighbors(node_id)) if placed[index[nb]]),
                None,
            )
            if anchor is not None:
                pos[i] = pos[anchor] + self._rng.uniform(-_INITIAL_RADIUS, _INITIAL_RADIUS, 2)
            else:
                radius = _INITIAL_RADIUS * math.sqrt(0.5 + i)
                angle = i * _INITIAL_ANGLE
                pos[i] = (cx + radius * math.cos(angle), cy + radius * math.sin(angle))
            placed[i] = True

        self._ids = ids
        self._index = index
        self._pos, self._vel, self._fixed = pos, vel, fixed
        self._radii = np.array(
            [node.visual_size + self.config.collision_margin for node in graph.nodes], dtype=float
        )
        self._load_links(graph)

        kept = sum(1 for node_id in ids if node_id in old_index)
        logger.info(f"Layout topology: {n} nodes ({kept} kept), {len(graph.edges)} links")
        self.reheat()

    def _load_links(self, graph: KnowledgeGraph) -> None:
        cfg = self.config
        edges = graph.edges
        self._link_src = np.array([self._index[e.source_id] for e in edges], dtype=int)
        self._link_tgt = np.array([self._index[e.target_id] for e in edges], dtype=int)
        self._link_distance = np.array(
            [cfg.link_distance * (cfg.ai_link_distance_scale if e.is_ai else 1.0) for e in edges],
            dtype=float,
        )
        self._link_strength = np.array(
            [cfg.ai_link_strength if e.is_ai else cfg.link_strength for e in edges], dtype=float
        )

        # Lower-degree endpoint moves more
        count = np.zeros(len(self._ids))
        np.add.at(count, self._link_src, 1)
        np.add.at(count, self._link_tgt, 1)
        if len(edges):
            self._link_bias = count[self._link_src] / (
                count[self._link_src] + count[self._link_tgt]
            )
        else:
            self._link_bias = np.zeros(0)

    # ------------------------------------------------------------------
    # Energy and pinning
    # ------------------------------------------------------------------

    def reheat(self, alpha: float | None = None) -> None:
        """Inject kinetic energy: raise alpha and jitter free velocities."""
        self.alpha = max(self.alpha, alpha if alpha is not None else self.config.reheat_alpha)
        if len(self._ids) and self.config.reheat_jitter > 0:
            jitter = self._rng.uniform(
                -self.config.reheat_jitter, self.config.reheat_jitter, self._vel.shape
            )
            self._vel += np.where(np.isnan(self._fixed), jitter, 0.0)

    def pin(self, node_id: str, x: float | None = None, y: float | None = None) -> bool:
        """Fix a node on both axes. An axis left as None is pinned where the node is now.

        Use pin_axis() to fix a single axis.
        """
        i = self._index.get(node_id)
        if i is None:
            return False
        self._fixed[i, 0] = self._pos[i, 0] if x is None else x
        self._fixed[i, 1] = self._pos[i, 1] if y is None else y
        self._pos[i] = self._fixed[i]
        self._vel[i] = 0.0
        return True

    def pin_axis(self, node_id: str, axis: str, value: float | None = None) -> bool:
        """Fix one axis ("x" or "y") and leave the other to the forces."""
        if axis not in ("x", "y"):
            raise ValueError(f"axis must be 'x' or 'y', got {axis!r}")
        i = self._index.get(node_id)
        if i is None:
            return False
        a = 0 if axis == "x" else 1
        self._fixed[i, a] = self._pos[i, a] if value is None else value
        self._pos[i, a] = self._fixed[i, a]
        self._vel[i, a] = 0.0
        return True

    def unpin(self, node_id: str) -> bool:
        """Release a pinned node back into the simulation."""
        i = self._index.get(node_id)
        if i is None:
            return False
        self._fixed[i] = np.nan
        return True

    def is_pinned(self, node_id: str) -> bool:
        i = self._index.get(node_id)
        return i is not None and not np.isnan(self._fixed[i]).all()

    def drag_start(self, node_id: str) -> bool:
        """Begin a user drag: hold the node where it is and keep the system warm."""
        if not self.pin(node_id):
            return False
        self.alpha_target = self.config.drag_alpha_target
        self.alpha = max(self.alpha, self.alpha_target)
        return True

    def drag_to(self, node_id: str, x: float, y: float) -> bool:
        return self.pin(node_id, x, y)

    def drag_end(self, node_id: str) -> bool:
        """Release the dragged node and let the system cool again."""
        self.alpha_target = 0.0
        return self.unpin(node_id)

    # ------------------------------------------------------------------
    # Integration
    # ------------------------------------------------------------------

    def subscribe(self, listener: TickListener) -> Callable[[], None]:
        """Register a per-tick position callback. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def tick(self, iterations: int = 1) -> Positions:
        """Advance the simulation and publish the resulting positions."""
        for _ in range(iterations):
            self._step()
        self.tick_count += iterations

        positions = self.positions()
        for listener in list(self._listeners):
            listener(positions)
        return positions

    def _step(self) -> None:
        cfg = self.config
        self.alpha += (self.alpha_target - self.alpha) * cfg.alpha_decay
        self.alpha = max(self.alpha, cfg.alpha_min)

        if not len(self._ids):
            return

        self._apply_links()
        self._apply_charge()
        self._apply_collision()
        self._apply_center()

        free = np.isnan(self._fixed)
        self._vel *= 1 - cfg.velocity_decay
        self._pos = np.where(free, self._pos + self._vel, self._fixed)
        self._vel = np.where(free, self._vel, 0.0)

    def _jiggle(self, shape: tuple[int, ...]) -> np.ndarray:
        return (self._rng.random(shape) - 0.5) * _JIGGLE

    def _apply_links(self) -> None:
        if not len(self._link_src):
            return
        s, t = self._link_src, self._link_tgt
        delta = (self._pos[t] + self._vel[t]) - (self._pos[s] + self._vel[s])
        zero = ~delta.any(axis=1)
        if zero.any():
            delta[zero] = self._jiggle((int(zero.sum()), 2))

        length = np.linalg.norm(delta, axis=1)
        scale = (length - self._link_distance) / length * self.alpha * self._link_strength
        delta *= scale[:, None]

        bias = self._link_bias[:, None]
        np.add.at(self._vel, t, -delta * bias)
        np.add.at(self._vel, s, delta * (1 - bias))

    def _apply_charge(self) -> None:
        n = len(self._ids)
        if n < 2 or self.config.charge_strength == 0:
            return
        # delta[i, j] = pos[j] - pos[i]
        delta = self._pos[None, :, :] - self._pos[:, None, :]
        off_diag = ~np.eye(n, dtype=bool)
        coincident = off_diag & ~delta.any(axis=2)
        if coincident.any():
            delta[coincident] = self._jiggle((int(coincident.sum()), 2))

        dist2 = (delta ** 2).sum(axis=2)
        dist2 = np.where(dist2 < _DISTANCE_MIN2, np.sqrt(_DISTANCE_MIN2 * dist2), dist2)
        np.fill_diagonal(dist2, np.inf)

        weight = self.config.charge_strength * self.alpha / dist2
        self._vel += (delta * weight[:, :, None]).sum(axis=1)

    def _apply_collision(self) -> None:
        n = len(self._ids)
        if n < 2 or self.config.collision_strength == 0:
            return
        predicted = self._pos + self._vel
        i_idx, j_idx = np.triu_indices(n, k=1)
        delta = predicted[i_idx] - predicted[j_idx]
        min_dist = self._radii[i_idx] + self._radii[j_idx]
        dist2 = (delta ** 2).sum(axis=1)

        overlap = dist2 < min_dist ** 2
        if not overlap.any():
            return

        i_idx, j_idx = i_idx[overlap], j_idx[overlap]
        delta, min_dist, dist2 = delta[overlap], min_dist[overlap], dist2[overlap]
        zero = dist2 == 0
        if zero.any():
            delta[zero] = self._jiggle((int(zero.sum()), 2))
            dist2[zero] = (delta[zero] ** 2).sum(axis=1)

        dist = np.sqrt(dist2)
        push = delta * ((min_dist - dist) / dist * self.config.collision_strength)[:, None]

        ri2 = self._radii[i_idx] ** 2
        rj2 = self._radii[j_idx] ** 2
        share = (rj2 / (ri2 + rj2))[:, None]
        np.add.at(self._vel, i_idx, push * share)
        np.add.at(self._vel, j_idx, -push * (1 - share))

    def _apply_center(self) -> None:
        strength = self.config.center_strength
        if strength == 0:
            return
        offset = (self._pos.mean(axis=0) - np.array(self.center)) * strength
        free = np.isnan(self._fixed)
        self._pos = np.where(free, self._pos - offset, self._pos)

    # ------------------------------------------------------------------
    # Read-out
    # ------------------------------------------------------------------

    def position(self, node_id: str) -> tuple[float, float] | None:
        i = self._index.get(node_id)
        if i is None:
            return None
        return float(self._pos[i, 0]), float(self._pos[i, 1])

    def positions(self) -> Positions:
        return {
            node_id: (float(self._pos[i, 0]), float(self._pos[i, 1]))
            for node_id, i in self._index.items()
        }

    def kinetic_energy(self) -> float:
        return float(0.5 * (self._vel ** 2).sum())
