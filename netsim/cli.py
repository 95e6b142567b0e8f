from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional
import shlex
import sys

from .core import ACCEPTED, REJECTED, PacketState, TopologyKind, degree
from .messages import MESSAGES, message, normalize_language
from .reachability import build_adjacency, reachable_set
from .scheduler import ManualScheduler
from .session import Session


class CLIError(Exception):
    pass


AMBIGUOUS_COMMAND = "% Ambiguous command."
UNKNOWN_COMMAND = "% Unknown command."

COMMANDS = [
    "topology",
    "size",
    "show",
    "sender",
    "receiver",
    "toggle",
    "reset",
    "send",
    "explain",
    "lang",
    "exit",
    "quit",
]

SHOW_TOPICS = ["nodes", "links", "result", "status", "reach", "log"]


@dataclass
class CLIResult:
    output: str = ""
    prompt: str = ""


@dataclass
class CLIContext:
    session: Session
    frames: List[List[PacketState]] = field(default_factory=list)

    def prompt(self) -> str:
        return f"netsim({self.session.kind.value.lower()})> "


class CLIEngine:
    """Line-oriented shell over a :class:`Session`.

    Runs are driven by a virtual-clock scheduler so ``send`` plays the whole
    tick schedule immediately and prints every frame.
    """

    def __init__(self, explainer: Any = None, log_event_cb=None, session_log: Any = None):
        self.explainer = explainer
        self.session_log = session_log
        if log_event_cb is None and session_log is not None:
            log_event_cb = session_log.add
        self.log_event_cb = log_event_cb

    def new_context(self, kind=TopologyKind.BUS, width: float = 1200, height: float = 800,
                    language: Optional[str] = None) -> CLIContext:
        session = Session(
            kind=kind,
            width=width,
            height=height,
            scheduler=ManualScheduler(),
            language=language,
            log_event_cb=self.log_event_cb,
        )
        ctx = CLIContext(session=session)

        def capture(s: Session) -> None:
            if s.is_simulating and s.packets:
                ctx.frames.append(list(s.packets))

        session.listeners.append(capture)
        return ctx

    def _log(self, kind: str, **data: Any) -> None:
        if not self.log_event_cb:
            return
        try:
            self.log_event_cb(kind, **data)
        except Exception:
            pass

    def execute(self, ctx: CLIContext, line: str) -> CLIResult:
        raw = (line or "").rstrip("\n")
        stripped = raw.strip()
        if stripped == "" or stripped.startswith("#"):
            return CLIResult(output="", prompt=ctx.prompt())

        if stripped == "?" or stripped.endswith(" ?"):
            return CLIResult(output=self._help(), prompt=ctx.prompt())

        try:
            argv = shlex.split(stripped)
        except ValueError:
            argv = stripped.split()

        try:
            argv[0] = self._expand_unique_prefix(argv[0], COMMANDS)
            out = self._dispatch(ctx, argv[0], argv)
        except CLIError as e:
            out = str(e)

        return CLIResult(output=out, prompt=ctx.prompt())

    def _expand_unique_prefix(self, token: str, candidates: List[str]) -> str:
        t = token.lower()
        if t in candidates:
            return t
        matches = [c for c in candidates if c.startswith(t)]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            raise CLIError(AMBIGUOUS_COMMAND)
        return t

    def _help(self) -> str:
        return "\n".join(
            [
                "topology bus|ring|star|mesh",
                "size <width> <height>",
                "show nodes|links|result|status|reach|log",
                "sender <device-id>",
                "receiver <device-id>",
                "toggle <node-id|link-id>",
                "reset",
                "send [<sender> <receiver>]",
                "explain",
                "lang en|fr",
                "exit",
            ]
        )

    def _dispatch(self, ctx: CLIContext, cmd: str, argv: List[str]) -> str:
        s = ctx.session

        if cmd in ("exit", "quit"):
            return "__CLOSE__"

        if cmd == "topology":
            if len(argv) != 2:
                raise CLIError("% Usage: topology bus|ring|star|mesh")
            try:
                s.set_topology(argv[1])
            except ValueError:
                raise CLIError(f"% Unknown topology '{argv[1]}'.")
            return f"{s.kind.value} topology: {len(s.nodes)} nodes, {len(s.links)} links"

        if cmd == "size":
            if len(argv) != 3:
                raise CLIError("% Usage: size <width> <height>")
            try:
                w, h = float(argv[1]), float(argv[2])
            except ValueError:
                raise CLIError("% Invalid size.")
            if w <= 0 or h <= 0:
                raise CLIError("% Invalid size.")
            s.resize(w, h)
            return ""

        if cmd == "show":
            if len(argv) < 2:
                raise CLIError("% Usage: show nodes|links|result|status|reach|log")
            topic = self._expand_unique_prefix(argv[1], SHOW_TOPICS)
            return self._cmd_show(ctx, topic)

        if cmd in ("sender", "receiver"):
            if len(argv) != 2:
                raise CLIError(f"% Usage: {cmd} <device-id>")
            setter = s.set_sender if cmd == "sender" else s.set_receiver
            if not setter(argv[1]):
                raise CLIError(f"% '{argv[1]}' is not a device.")
            return ""

        if cmd == "toggle":
            if len(argv) != 2:
                raise CLIError("% Usage: toggle <node-id|link-id>")
            target = argv[1]
            if s.node(target) is not None:
                s.toggle_node(target)
                state = "up" if s.node(target).active else "down"
                return f"Node {target} is {state}"
            if s.link(target) is not None:
                s.toggle_link(target)
                state = "up" if s.link(target).active else "down"
                return f"Link {target} is {state}"
            raise CLIError(f"% No node or link named '{target}'.")

        if cmd == "reset":
            s.reset_network()
            return ""

        if cmd == "send":
            return self._cmd_send(ctx, argv)

        if cmd == "explain":
            return self._cmd_explain(ctx)

        if cmd == "lang":
            if len(argv) != 2 or argv[1].lower() not in MESSAGES:
                raise CLIError("% Usage: lang en|fr")
            s.language = normalize_language(argv[1])
            return ""

        raise CLIError(UNKNOWN_COMMAND)

    def _cmd_show(self, ctx: CLIContext, topic: str) -> str:
        s = ctx.session
        if topic == "nodes":
            lines = ["ID       Role        Label    Status  Degree  Position"]
            for n in s.nodes:
                status = "up" if n.active else "down"
                pos = f"({n.x:.1f}, {n.y:.1f})"
                lines.append(
                    f"{n.id:<8} {n.role.value:<11} {n.label or '-':<8} {status:<7} {degree(n.id, s.links):<7} {pos}"
                )
            return "\n".join(lines)

        if topic == "links":
            lines = ["ID              Endpoints           Status"]
            for l in s.links:
                status = "up" if l.active else "cut"
                lines.append(f"{l.id:<15} {l.source + ' <-> ' + l.target:<19} {status}")
            return "\n".join(lines)

        if topic == "result":
            r = s.last_result
            if r is None:
                return "No simulation has completed."
            return "\n".join(
                [
                    f"Status: {'SUCCESS' if r.success else 'FAILURE'}",
                    f"Path: {' -> '.join(r.path) if r.path else '-'}",
                    f"Log: {r.log}",
                ]
            )

        if topic == "status":
            accepted = sorted(k for k, v in s.statuses.items() if v == ACCEPTED)
            rejected = sorted(k for k, v in s.statuses.items() if v == REJECTED)
            return "\n".join(
                [
                    f"Topology: {s.kind.value}",
                    f"Sender: {s.sender_id or 'unset'}",
                    f"Receiver: {s.receiver_id or 'unset'}",
                    f"Simulating: {'yes' if s.is_simulating else 'no'}",
                    f"Accepted: {', '.join(accepted) or '-'}",
                    f"Rejected: {', '.join(rejected) or '-'}",
                ]
            )

        if topic == "log":
            if self.session_log is None:
                return "Session log is off."
            events = self.session_log.tail(10)
            return "\n".join(e.describe() for e in events) or "Session log is empty."

        if topic == "reach":
            adj = build_adjacency(s.nodes, s.links)
            seen = reachable_set(s.sender_id, s.nodes, adj)
            devs = [n.id for n in s.nodes if n.is_device and n.id in seen and n.id != s.sender_id]
            return f"Reachable from {s.sender_id or 'unset'}: {', '.join(devs) or 'none'}"

        raise CLIError("% Usage: show nodes|links|result|status|reach|log")

    def _cmd_send(self, ctx: CLIContext, argv: List[str]) -> str:
        s = ctx.session
        if len(argv) not in (1, 3):
            raise CLIError("% Usage: send [<sender> <receiver>]")
        if len(argv) == 3:
            for setter, uid in ((s.set_sender, argv[1]), (s.set_receiver, argv[2])):
                if not setter(uid):
                    raise CLIError(f"% '{uid}' is not a device.")

        ctx.frames = []
        if not s.start_run():
            problems = s.request_problems() or ["A simulation is already in flight."]
            raise CLIError("\n".join(f"% {p}" for p in problems))

        scheduler = s.scheduler
        if not isinstance(scheduler, ManualScheduler):
            return message("start", s.language)
        scheduler.run_pending()

        lines = [message("start", s.language)]
        for tick, packets in enumerate(ctx.frames):
            where = " ".join(f"{p.id}@{p.node_id}" for p in packets)
            lines.append(f"tick {tick}: {where}")
        lines.append(self._cmd_show(ctx, "result"))
        return "\n".join(lines)

    def _cmd_explain(self, ctx: CLIContext) -> str:
        s = ctx.session
        if s.last_result is None:
            raise CLIError("% Run 'send' first.")
        if self.explainer is None:
            return message("explain_missing_key", s.language)

        from ai.explainer import ExplanationRequest

        req = ExplanationRequest.from_session(s)
        self._log("explain_requested", **req.model_dump())
        text = self.explainer.explain(req)
        self._log("explain_reply", message=text)
        return text


def main(argv: Optional[List[str]] = None) -> int:
    from ai.explainer import TopologyExplainer
    from session_log import SessionLogger

    args = list(sys.argv[1:] if argv is None else argv)
    kind = args[0] if args else "bus"

    engine = CLIEngine(explainer=TopologyExplainer(), session_log=SessionLogger())
    try:
        ctx = engine.new_context(kind=kind)
    except ValueError as e:
        print(f"% {e}", file=sys.stderr)
        return 2

    print("NetSim shell. Type ? for help.")
    while True:
        try:
            line = input(ctx.prompt())
        except EOFError:
            break
        res = engine.execute(ctx, line)
        if res.output == "__CLOSE__":
            break
        if res.output:
            print(res.output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
