"""Configuration for graph building and layout."""

from dataclasses import dataclass

from notegraph.config import Settings, settings


@dataclass
class GraphBuildConfig:
    """Configuration for the graph builder."""

    # Edge weights
    tag_edge_weight: float = 0.2  # Per shared tag
    cluster_edge_weight: float = 0.1  # Same cluster, no shared tag

    # Node sizing: base + per_tag * tags + chars / chars_per_size, capped
    node_base_size: float = 10.0
    node_size_per_tag: float = 2.0
    node_chars_per_size: float = 80.0
    node_max_size: float = 20.0

    label_max_chars: int = 20

    @classmethod
    def from_settings(cls, s: Settings | None = None) -> "GraphBuildConfig":
        s = s or settings
        return cls(
            tag_edge_weight=s.tag_edge_weight,
            cluster_edge_weight=s.cluster_edge_weight,
            node_base_size=s.node_base_size,
            node_size_per_tag=s.node_size_per_tag,
            node_chars_per_size=s.node_chars_per_size,
            node_max_size=s.node_max_size,
            label_max_chars=s.label_max_chars,
        )


@dataclass
class LayoutConfig:
    """Configuration for the force simulation."""

    # Link force
    link_distance: float = 120.0
    ai_link_distance_scale: float = 1.0
    ai_link_strength: float = 0.3  # AI edges pull harder
    link_strength: float = 0.05

    # Many-body force (negative = repulsion)
    charge_strength: float = -400.0

    # Collision radius = visual_size + margin
    collision_margin: float = 30.0
    collision_strength: float = 1.0

    # Fraction of the centroid offset removed per tick
    center_strength: float = 0.1

    # Integration / cooling
    velocity_decay: float = 0.4
    alpha_decay: float = 1 - 0.001 ** (1 / 300)
    alpha_min: float = 0.001  # Energy floor, the simulation never halts
    drag_alpha_target: float = 0.3
    reheat_alpha: float = 1.0
    reheat_jitter: float = 1.0

    # Viewport
    width: float = 960.0
    height: float = 500.0

    @classmethod
    def from_settings(cls, s: Settings | None = None) -> "LayoutConfig":
        s = s or settings
        return cls(
            link_distance=s.link_distance,
            ai_link_distance_scale=s.ai_link_distance_scale,
            ai_link_strength=s.ai_link_strength,
            link_strength=s.link_strength,
            charge_strength=s.charge_strength,
            collision_margin=s.collision_margin,
            center_strength=s.center_strength,
            velocity_decay=s.velocity_decay,
            alpha_decay=s.alpha_decay,
            alpha_min=s.alpha_min,
            drag_alpha_target=s.drag_alpha_target,
            reheat_alpha=s.reheat_alpha,
            reheat_jitter=s.reheat_jitter,
            width=s.viewport_width,
            height=s.viewport_height,
        )
