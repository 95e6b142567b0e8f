"""Deterministic bus/ring/star/mesh network failure simulator.

The engine is stdlib-only and designed for unit testing; the desktop viewer,
explanation service and MCP server sit on top of it.
"""

from .core import Link, Node, NodeRole, PacketState, SimulationResult, TopologyKind
from .topology import generate
from .reachability import build_adjacency, find_path
from .sequencer import run, plan_transmission, packets_at, finalize, validate_request
from .scheduler import ManualScheduler
from .session import Session
from .cli import CLIEngine

__all__ = [
    "Link",
    "Node",
    "NodeRole",
    "PacketState",
    "SimulationResult",
    "TopologyKind",
    "generate",
    "build_adjacency",
    "find_path",
    "run",
    "plan_transmission",
    "packets_at",
    "finalize",
    "validate_request",
    "ManualScheduler",
    "Session",
    "CLIEngine",
]
