"""Transmission sequencing: targets, paths, tick schedule and final verdict.

The sequencer is split into pure steps so any timer (or none) can drive it:

    plan = plan_transmission(kind, sender, receiver, nodes, links)
    for tick in range(plan.tick_count):
        packets = packets_at(plan, tick, nodes)
    statuses, result = finalize(plan)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .core import (
    ACCEPTED,
    REJECTED,
    Link,
    Node,
    PacketState,
    SimulationResult,
    TopologyKind,
    node_index,
)
from .messages import message
from .reachability import build_adjacency, find_path


def validate_request(nodes: List[Node], sender: Optional[str], receiver: Optional[str]) -> List[str]:
    """Return problems that make a run request invalid (empty list = valid)."""
    problems: List[str] = []
    if not sender:
        problems.append("Sender is not set.")
    if not receiver:
        problems.append("Receiver is not set.")
    if problems:
        return problems

    if sender == receiver:
        problems.append("Sender and receiver must be different devices.")

    by_id = node_index(nodes)
    for role_name, uid in (("Sender", sender), ("Receiver", receiver)):
        node = by_id.get(uid)
        if node is None:
            problems.append(f"{role_name} '{uid}' does not exist.")
        elif not node.is_device:
            problems.append(f"{role_name} '{uid}' is a {node.role.value}, not a device.")
    return problems


@dataclass
class TransmissionPlan:
    kind: TopologyKind
    sender: str
    receiver: str
    targets: List[str]
    paths: List[List[str]]
    reached: List[str]
    success: bool
    language: str = "en"

    @property
    def tick_count(self) -> int:
        return max(len(p) for p in self.paths)

    def receiver_path(self) -> List[str]:
        for p in self.paths:
            if p and p[-1] == self.receiver:
                return list(p)
        return []


@dataclass
class Transmission:
    plan: TransmissionPlan
    schedule: List[List[PacketState]] = field(default_factory=list)
    statuses: Dict[str, str] = field(default_factory=dict)
    result: Optional[SimulationResult] = None


def select_targets(kind: TopologyKind, sender: str, receiver: str, nodes: List[Node]) -> List[str]:
    # Bus is a shared medium: every station sees every frame.
    if kind == TopologyKind.BUS:
        return [n.id for n in nodes if n.is_device and n.id != sender]
    return [receiver]


def plan_transmission(
    kind,
    sender: str,
    receiver: str,
    nodes: List[Node],
    links: List[Link],
    language: str = "en",
) -> Optional[TransmissionPlan]:
    """Resolve targets and paths against the current failure state.

    Returns None for an invalid request. Flags are read once, here.
    """
    if validate_request(nodes, sender, receiver):
        return None

    kind = TopologyKind.parse(kind)
    adj = build_adjacency(nodes, links)
    targets = select_targets(kind, sender, receiver, nodes)

    paths: List[List[str]] = []
    reached: List[str] = []
    for tid in targets:
        path = find_path(sender, tid, nodes, adj)
        if path:
            paths.append(path)
            reached.append(tid)

    success = receiver in reached

    # Nothing reached: show the packet appear and die at the origin.
    if not paths:
        paths.append([sender])

    return TransmissionPlan(
        kind=kind,
        sender=sender,
        receiver=receiver,
        targets=targets,
        paths=paths,
        reached=reached,
        success=success,
        language=language,
    )


def packets_at(plan: TransmissionPlan, tick: int, nodes: List[Node]) -> List[PacketState]:
    """Visible packets for one tick; finished paths stop rendering."""
    by_id = node_index(nodes)
    packets: List[PacketState] = []
    for idx, path in enumerate(plan.paths):
        if 0 <= tick < len(path):
            node = by_id.get(path[tick])
            if node is not None:
                packets.append(PacketState(id=f"p-{idx}", x=node.x, y=node.y, node_id=node.id))
    return packets


def classify(plan: TransmissionPlan) -> Dict[str, str]:
    statuses: Dict[str, str] = {}
    for tid in plan.reached:
        if tid == plan.receiver:
            statuses[tid] = ACCEPTED
        elif plan.kind != TopologyKind.BUS:
            statuses[tid] = REJECTED
        # Bus bystanders stay unmarked.
    return statuses


def finalize(plan: TransmissionPlan) -> Tuple[Dict[str, str], SimulationResult]:
    result = SimulationResult(
        success=plan.success,
        path=plan.receiver_path(),
        log=message("arrived" if plan.success else "dropped", plan.language),
    )
    return classify(plan), result


class TransmissionRun:
    """Stepwise playback of a plan, one tick per call to :meth:`step`."""

    def __init__(self, plan: TransmissionPlan, nodes: List[Node]):
        self.plan = plan
        self.nodes = nodes
        self.tick = 0
        self.statuses: Dict[str, str] = {}
        self.result: Optional[SimulationResult] = None

    @property
    def done(self) -> bool:
        return self.result is not None

    def step(self) -> Optional[List[PacketState]]:
        """Advance one tick.

        Returns the packets for the tick, or None once the schedule has ended
        (statuses and result are then available).
        """
        if self.done:
            return None
        if self.tick >= self.plan.tick_count:
            self.statuses, self.result = finalize(self.plan)
            return None

        packets = packets_at(self.plan, self.tick, self.nodes)
        self.tick += 1
        return packets


def run(
    kind,
    sender: str,
    receiver: str,
    nodes: List[Node],
    links: List[Link],
    language: str = "en",
) -> Optional[Transmission]:
    """Plan and play a transmission to completion without a timer."""
    plan = plan_transmission(kind, sender, receiver, nodes, links, language=language)
    if plan is None:
        return None

    playback = TransmissionRun(plan, nodes)
    out = Transmission(plan=plan)
    while True:
        packets = playback.step()
        if packets is None:
            break
        out.schedule.append(packets)
    out.statuses = playback.statuses
    out.result = playback.result
    return out
