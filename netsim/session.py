from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from .core import (
    Link,
    Node,
    PacketState,
    SimulationResult,
    TopologyKind,
    default_endpoints,
    export_dict,
    inactive_links,
    inactive_nodes,
    node_index,
)
from .messages import default_language, normalize_language
from .scheduler import ManualScheduler, Scheduler, TICK_INTERVAL_MS
from .sequencer import TransmissionRun, plan_transmission, validate_request
from .topology import DEFAULT_HEIGHT, DEFAULT_WIDTH, generate


class Session:
    """Holds the live network, the user's selection and at most one in-flight run.

    Generation, reachability and sequencing are pure functions over the node
    and link lists; this class owns those lists and is the only thing that
    mutates them.
    """

    def __init__(
        self,
        kind=TopologyKind.BUS,
        width: float = DEFAULT_WIDTH,
        height: float = DEFAULT_HEIGHT,
        scheduler: Optional[Scheduler] = None,
        language: Optional[str] = None,
        tick_interval_ms: int = TICK_INTERVAL_MS,
        log_event_cb: Optional[Callable[..., None]] = None,
    ):
        self.kind = TopologyKind.parse(kind)
        self.width = float(width)
        self.height = float(height)
        self.scheduler: Scheduler = scheduler if scheduler is not None else ManualScheduler()
        self.language = normalize_language(language) if language else default_language()
        self.tick_interval_ms = int(tick_interval_ms)
        self.log_event_cb = log_event_cb

        # Called after every visible change (tick, completion, toggle, regeneration).
        self.listeners: List[Callable[["Session"], None]] = []

        self.nodes: List[Node] = []
        self.links: List[Link] = []
        self.sender_id = ""
        self.receiver_id = ""

        self.packets: List[PacketState] = []
        self.statuses: Dict[str, str] = {}
        self.last_result: Optional[SimulationResult] = None

        self._run: Optional[TransmissionRun] = None
        self._job: Any = None

        self.regenerate()

    # ───────────────────────────── Events ─────────────────────────────

    def _log(self, kind: str, **data: Any) -> None:
        if not self.log_event_cb:
            return
        try:
            self.log_event_cb(kind, **data)
        except Exception:
            pass

    def _notify(self) -> None:
        for cb in list(self.listeners):
            cb(self)

    # ───────────────────────────── Graph ─────────────────────────────

    @property
    def is_simulating(self) -> bool:
        return self._run is not None

    def node(self, uid: str) -> Optional[Node]:
        return node_index(self.nodes).get(uid)

    def link(self, link_id: str) -> Optional[Link]:
        for l in self.links:
            if l.id == link_id:
                return l
        return None

    def regenerate(self) -> None:
        """Rebuild the graph wholesale; any in-flight run is torn down."""
        self.cancel_run()
        self.nodes, self.links = generate(self.kind, self.width, self.height)
        self.sender_id, self.receiver_id = default_endpoints(self.nodes)
        self.last_result = None
        self.packets = []
        self.statuses = {}
        self._log(
            "topology_generated",
            topology=self.kind.value,
            width=self.width,
            height=self.height,
            nodeCount=len(self.nodes),
            linkCount=len(self.links),
        )
        self._notify()

    def set_topology(self, kind) -> None:
        self.kind = TopologyKind.parse(kind)
        self.regenerate()

    def resize(self, width: float, height: float) -> None:
        self.width = float(width)
        self.height = float(height)
        self.regenerate()

    def toggle_node(self, uid: str) -> bool:
        if self.is_simulating:
            return False
        node = self.node(uid)
        if node is None:
            return False
        node.active = not node.active
        self._log("node_toggled", id=uid, active=node.active)
        self._notify()
        return True

    def toggle_link(self, link_id: str) -> bool:
        if self.is_simulating:
            return False
        link = self.link(link_id)
        if link is None:
            return False
        link.active = not link.active
        self._log("link_toggled", id=link_id, active=link.active)
        self._notify()
        return True

    def reset_network(self) -> None:
        """Repair every node and cable and clear the last outcome."""
        self.cancel_run()
        for n in self.nodes:
            n.active = True
        for l in self.links:
            l.active = True
        self.last_result = None
        self.statuses = {}
        self.packets = []
        self._log("network_reset", topology=self.kind.value)
        self._notify()

    def _set_endpoint(self, attr: str, uid: str) -> bool:
        if self.is_simulating:
            return False
        node = self.node(uid)
        if node is None or not node.is_device:
            return False
        setattr(self, attr, uid)
        self._log("endpoints_changed", sender=self.sender_id, receiver=self.receiver_id)
        self._notify()
        return True

    def set_sender(self, uid: str) -> bool:
        return self._set_endpoint("sender_id", uid)

    def set_receiver(self, uid: str) -> bool:
        return self._set_endpoint("receiver_id", uid)

    # ───────────────────────────── Runs ─────────────────────────────

    def request_problems(self) -> List[str]:
        return validate_request(self.nodes, self.sender_id, self.receiver_id)

    def start_run(self) -> bool:
        """Start a transmission; returns False (and does nothing else) if refused."""
        if self.is_simulating:
            self._log("run_rejected", reason="simulation in flight")
            return False

        plan = plan_transmission(
            self.kind, self.sender_id, self.receiver_id, self.nodes, self.links, language=self.language
        )
        if plan is None:
            self._log("run_rejected", reason="; ".join(self.request_problems()))
            return False

        self.last_result = None
        self.statuses = {}
        self.packets = []
        self._run = TransmissionRun(plan, self.nodes)
        self._log(
            "run_started",
            topology=self.kind.value,
            sender=plan.sender,
            receiver=plan.receiver,
            targets=list(plan.targets),
            reached=list(plan.reached),
            ticks=plan.tick_count,
        )
        self._job = self.scheduler.call_later(self.tick_interval_ms, self._on_tick)
        self._notify()
        return True

    def _on_tick(self) -> None:
        self._job = None
        run = self._run
        if run is None:
            return

        packets = run.step()
        if packets is None:
            self._run = None
            self.packets = []
            self.statuses = dict(run.statuses)
            self.last_result = run.result
            self._log(
                "run_completed",
                success=run.result.success,
                path=list(run.result.path),
                statuses=dict(run.statuses),
            )
            self._notify()
            return

        self.packets = packets
        self._log("run_tick", tick=run.tick - 1, packets=[p.node_id for p in packets])
        self._job = self.scheduler.call_later(self.tick_interval_ms, self._on_tick)
        self._notify()

    def cancel_run(self) -> bool:
        if self._job is not None:
            self.scheduler.cancel(self._job)
            self._job = None
        if self._run is None:
            return False
        self._run = None
        self.packets = []
        self._log("run_cancelled")
        self._notify()
        return True

    # ───────────────────────────── Export ─────────────────────────────

    def export_dict(self) -> Dict[str, Any]:
        data = export_dict(self.kind, self.nodes, self.links, self.last_result)
        data["meta"]["sender"] = self.sender_id
        data["meta"]["receiver"] = self.receiver_id
        data["statuses"] = dict(self.statuses)
        return data

    def explain_context(self) -> Dict[str, Any]:
        """Fields consumed by the explanation service after a run."""
        result = self.last_result
        return {
            "topology": self.kind.value,
            "sender": self.sender_id,
            "receiver": self.receiver_id,
            "success": bool(result and result.success),
            "path": list(result.path) if result else [],
            "broken_nodes": [n.label or n.id for n in inactive_nodes(self.nodes)],
            "broken_links": [f"{l.source}-{l.target}" for l in inactive_links(self.links)],
            "language": self.language,
        }
