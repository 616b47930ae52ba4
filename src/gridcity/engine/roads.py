"""
Road Graph — connectivity between road tiles.

The City notifies the graph whenever a road is placed or bulldozed via
``update_tile(x, y, building)``; ``building`` is None on removal. The
graph links each road node to its orthogonal road neighbours and answers
reachability questions for services and overlays. It holds no render
state.
"""

from collections import deque
from typing import Any, Dict, List, Optional, Set, Tuple

from gridcity.core.logger import get_logger

Coord = Tuple[int, int]


class RoadNode:
    def __init__(self, x: int, y: int) -> None:
        self.x = x
        self.y = y
        self.neighbors: Set[Coord] = set()

    def __repr__(self) -> str:
        return f"RoadNode({self.x}, {self.y}, links={len(self.neighbors)})"


class RoadGraph:
    """Adjacency graph over road tiles."""

    def __init__(self, size: int) -> None:
        self.size = size
        self.nodes: Dict[Coord, RoadNode] = {}

    def update_tile(self, x: int, y: int, building: Optional[Any]) -> None:
        key = (x, y)
        if building is None:
            node = self.nodes.pop(key, None)
            if node is None:
                return
            for other in node.neighbors:
                self.nodes[other].neighbors.discard(key)
            get_logger().log_debug("ROADS", f"Removed road node at {key}")
            return

        node = self.nodes.get(key)
        if node is None:
            node = RoadNode(x, y)
            self.nodes[key] = node
        for dx, dy in ((-1, 0), (1, 0), (0, -1), (0, 1)):
            other = (x + dx, y + dy)
            if other in self.nodes:
                node.neighbors.add(other)
                self.nodes[other].neighbors.add(key)
        get_logger().log_debug("ROADS", f"Added road node at {key}")

    def get_node(self, x: int, y: int) -> Optional[RoadNode]:
        return self.nodes.get((x, y))

    def is_connected(self, a: Coord, b: Coord) -> bool:
        if a not in self.nodes or b not in self.nodes:
            return False
        return b in self.reachable_from(a)

    def reachable_from(self, start: Coord) -> Set[Coord]:
        if start not in self.nodes:
            return set()
        seen = {start}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for other in self.nodes[current].neighbors:
                if other not in seen:
                    seen.add(other)
                    queue.append(other)
        return seen

    def components(self) -> List[Set[Coord]]:
        """Connected road networks, largest first."""
        remaining = set(self.nodes)
        result = []
        while remaining:
            component = self.reachable_from(next(iter(remaining)))
            remaining -= component
            result.append(component)
        result.sort(key=len, reverse=True)
        return result

    def clear(self) -> None:
        self.nodes.clear()
