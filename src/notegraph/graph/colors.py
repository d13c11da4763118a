"""Persistent color assignment for tags and clusters."""

from notegraph.models import Node

COLOR_PALETTE = (
    "#00f0ff",
    "#a855f7",
    "#22c55e",
    "#f59e0b",
    "#ec4899",
    "#3b82f6",
    "#ef4444",
    "#14b8a6",
)
UNTAGGED_COLOR = "#64748b"


class ColorRegistry:
    """
    Assigns each key a palette color the first time it is seen.

    Assignment is by insertion order and wraps around the palette, so the
    same sequence of keys always yields the same colors. One registry lives
    as long as the viewer session; rebuilding the graph keeps existing colors.
    """

    def __init__(self, palette: tuple[str, ...] = COLOR_PALETTE) -> None:
        if not palette:
            raise ValueError("palette must not be empty")
        self.palette = tuple(palette)
        self._assigned: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._assigned)

    def __contains__(self, key: object) -> bool:
        return key in self._assigned

    def color_for(self, key: str) -> str:
        if key not in self._assigned:
            self._assigned[key] = self.palette[len(self._assigned) % len(self.palette)]
        return self._assigned[key]

    def node_color(self, node: Node) -> str:
        """Cluster color if clustered, else first-tag color, else neutral."""
        if node.cluster_id is not None:
            return self.color_for(f"cluster-{node.cluster_id}")
        if node.tags:
            return self.color_for(node.tags[0])
        return UNTAGGED_COLOR

    def snapshot(self) -> dict[str, str]:
        """Current key -> color mapping, in assignment order."""
        return dict(self._assigned)
