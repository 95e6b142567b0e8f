"""Deterministic generation of the four canonical topologies.

Node counts are fixed per kind. Positions are derived only from the layout
area, so the same (kind, width, height) always yields the same graph.
"""

from __future__ import annotations

import math
from typing import List, Tuple

from .core import Link, Node, NodeRole, TopologyKind


DEFAULT_WIDTH = 1200.0
DEFAULT_HEIGHT = 800.0

BUS_DEVICE_COUNT = 6
BUS_DEVICE_OFFSET = 90.0  # drop cable length above/below the backbone
BUS_TERMINATOR_OFFSET = 30.0

RING_DEVICE_COUNT = 6
STAR_DEVICE_COUNT = 6
MESH_DEVICE_COUNT = 4  # K4; edge count grows quadratically

SWITCH_ID = "switch"
LEFT_TERMINATOR_ID = "t_left"
RIGHT_TERMINATOR_ID = "t_right"


def _device(i: int, x: float, y: float) -> Node:
    return Node(id=f"n{i}", x=x, y=y, label=f"PC {i + 1}", role=NodeRole.DEVICE)


def _circle(count: int, cx: float, cy: float, radius: float, phase: float) -> List[Tuple[float, float]]:
    points = []
    for i in range(count):
        angle = (i / count) * 2 * math.pi + phase
        points.append((cx + radius * math.cos(angle), cy + radius * math.sin(angle)))
    return points


def _bus(width: float, height: float) -> Tuple[List[Node], List[Link]]:
    count = BUS_DEVICE_COUNT
    spacing = width / (count + 1)
    y_backbone = height / 2

    nodes: List[Node] = []
    links: List[Link] = []

    for i in range(count):
        nodes.append(Node(id=f"b{i}", x=spacing * (i + 1), y=y_backbone, label="", role=NodeRole.BACKBONE))

    for i in range(count):
        # alternate above / below the line
        y = y_backbone - BUS_DEVICE_OFFSET if i % 2 == 0 else y_backbone + BUS_DEVICE_OFFSET
        nodes.append(_device(i, spacing * (i + 1), y))

    nodes.append(Node(id=LEFT_TERMINATOR_ID, x=spacing - BUS_TERMINATOR_OFFSET, y=y_backbone,
                      label="Term", role=NodeRole.TERMINATOR))
    nodes.append(Node(id=RIGHT_TERMINATOR_ID, x=spacing * count + BUS_TERMINATOR_OFFSET, y=y_backbone,
                      label="Term", role=NodeRole.TERMINATOR))

    for i in range(count - 1):
        links.append(Link.between(f"b{i}", f"b{i + 1}"))

    links.append(Link.between(LEFT_TERMINATOR_ID, "b0"))
    links.append(Link.between(f"b{count - 1}", RIGHT_TERMINATOR_ID))

    # drop cables
    for i in range(count):
        links.append(Link.between(f"n{i}", f"b{i}"))

    return nodes, links


def _ring(width: float, height: float) -> Tuple[List[Node], List[Link]]:
    count = RING_DEVICE_COUNT
    radius = min(width, height) / 3
    points = _circle(count, width / 2, height / 2, radius, -math.pi / 2)

    nodes = [_device(i, x, y) for i, (x, y) in enumerate(points)]
    links = [Link.between(f"n{i}", f"n{(i + 1) % count}") for i in range(count)]
    return nodes, links


def _star(width: float, height: float) -> Tuple[List[Node], List[Link]]:
    count = STAR_DEVICE_COUNT
    cx, cy = width / 2, height / 2
    radius = min(width, height) / 3

    nodes: List[Node] = [Node(id=SWITCH_ID, x=cx, y=cy, label="Switch", role=NodeRole.SWITCH)]
    links: List[Link] = []
    for i, (x, y) in enumerate(_circle(count, cx, cy, radius, 0.0)):
        dev = _device(i, x, y)
        nodes.append(dev)
        links.append(Link.between(SWITCH_ID, dev.id))
    return nodes, links


def _mesh(width: float, height: float) -> Tuple[List[Node], List[Link]]:
    count = MESH_DEVICE_COUNT
    radius = min(width, height) / 3
    points = _circle(count, width / 2, height / 2, radius, -math.pi / 2)

    nodes = [_device(i, x, y) for i, (x, y) in enumerate(points)]
    links = []
    for i in range(count):
        for j in range(i + 1, count):
            links.append(Link.between(f"n{i}", f"n{j}"))
    return nodes, links


_BUILDERS = {
    TopologyKind.BUS: _bus,
    TopologyKind.RING: _ring,
    TopologyKind.STAR: _star,
    TopologyKind.MESH: _mesh,
}


def generate(kind, width: float = DEFAULT_WIDTH, height: float = DEFAULT_HEIGHT) -> Tuple[List[Node], List[Link]]:
    """Build a fresh node set and link set for ``kind`` laid out in ``width`` x ``height``.

    All nodes and links start active. Raises ``ValueError`` for an unknown kind.
    """
    kind = TopologyKind.parse(kind)
    return _BUILDERS[kind](float(width), float(height))
