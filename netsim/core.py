from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional, Tuple, Iterable, Any


SCHEMA_VERSION = 1


class TopologyKind(str, Enum):
    BUS = "BUS"
    RING = "RING"
    STAR = "STAR"
    MESH = "MESH"

    @staticmethod
    def parse(text: "str | TopologyKind") -> "TopologyKind":
        if isinstance(text, TopologyKind):
            return text
        name = (text or "").strip().upper()
        try:
            return TopologyKind(name)
        except ValueError:
            raise ValueError(f"Unknown topology: {text!r}") from None


class NodeRole(str, Enum):
    DEVICE = "device"
    SWITCH = "switch"
    BACKBONE = "backbone"
    TERMINATOR = "terminator"


ACCEPTED = "accepted"
REJECTED = "rejected"


def canonical_pair(a: str, b: str) -> Tuple[str, str]:
    # (A, B) and (B, A) name the same cable
    return tuple(sorted((a, b)))  # type: ignore[return-value]


@dataclass
class Node:
    id: str
    x: float
    y: float
    label: str = ""
    role: NodeRole = NodeRole.DEVICE
    active: bool = True

    @property
    def is_device(self) -> bool:
        return self.role == NodeRole.DEVICE


@dataclass
class Link:
    id: str
    source: str
    target: str
    active: bool = True

    @staticmethod
    def between(source: str, target: str) -> "Link":
        return Link(id=f"{source}-{target}", source=source, target=target)

    def other_end(self, node_id: str) -> Optional[str]:
        if node_id == self.source:
            return self.target
        if node_id == self.target:
            return self.source
        return None


@dataclass
class SimulationResult:
    success: bool
    path: List[str] = field(default_factory=list)
    log: str = ""


@dataclass
class PacketState:
    id: str
    x: float
    y: float
    node_id: str = ""


def node_index(nodes: Iterable[Node]) -> Dict[str, Node]:
    return {n.id: n for n in nodes}


def devices(nodes: Iterable[Node]) -> List[Node]:
    return [n for n in nodes if n.is_device]


def default_endpoints(nodes: Iterable[Node]) -> Tuple[str, str]:
    """First and second device, the caller-side default selection."""
    devs = devices(nodes)
    sender = devs[0].id if devs else ""
    receiver = devs[1].id if len(devs) > 1 else ""
    return sender, receiver


def find_link(links: Iterable[Link], a: str, b: str) -> Optional[Link]:
    key = canonical_pair(a, b)
    for l in links:
        if canonical_pair(l.source, l.target) == key:
            return l
    return None


def degree(node_id: str, links: Iterable[Link]) -> int:
    return sum(1 for l in links if node_id in (l.source, l.target))


def inactive_nodes(nodes: Iterable[Node]) -> List[Node]:
    return [n for n in nodes if not n.active]


def inactive_links(links: Iterable[Link]) -> List[Link]:
    return [l for l in links if not l.active]


def export_dict(
    kind: TopologyKind,
    nodes: List[Node],
    links: List[Link],
    result: Optional[SimulationResult] = None,
) -> Dict[str, Any]:
    """Plain JSON-compatible view of a generated network."""
    nodes_out = []
    for n in nodes:
        d = asdict(n)
        d["role"] = n.role.value
        nodes_out.append(d)

    out: Dict[str, Any] = {
        "schemaVersion": SCHEMA_VERSION,
        "meta": {"topology": kind.value},
        "nodes": nodes_out,
        "links": [asdict(l) for l in links],
    }
    if result is not None:
        out["result"] = asdict(result)
    return out
