import threading
import tkinter as tk
from tkinter import filedialog, messagebox
from typing import Any, Dict, List, Optional

from ai.explainer import ExplanationRequest, TopologyExplainer
from netsim import Session, TopologyKind
from netsim.core import ACCEPTED, NodeRole
from netsim.messages import message
from session_log import SessionLogger

DEVICE_RADIUS = 24
SWITCH_RADIUS = 30
BACKBONE_RADIUS = 4
PACKET_RADIUS = 8

EDGE_COLOR = "#64748b"
EDGE_WIDTH = 4
EDGE_BROKEN_COLOR = "#ef4444"
EDGE_BROKEN_DASH = (5, 5)
EDGE_HIT_TOL = 10

BG_COLOR = "#0f172a"
PANEL_BG = "#1e293b"
TEXT_COLOR = "#cbd5e1"

NODE_COLORS = {
    "broken": ("#7f1d1d", "#ef4444"),
    "sender": ("#2563eb", "#60a5fa"),
    "receiver": ("#059669", "#34d399"),
    NodeRole.SWITCH: ("#9333ea", "#c084fc"),
    NodeRole.BACKBONE: ("#475569", "#64748b"),
    NodeRole.TERMINATOR: ("#94a3b8", "#64748b"),
    NodeRole.DEVICE: ("#334155", "#64748b"),
}

RESIZE_DEBOUNCE_MS = 100


class TkScheduler:
    """Session scheduler backed by the Tk event loop."""

    def __init__(self, root: tk.Misc):
        self.root = root

    def call_later(self, delay_ms: int, callback):
        return self.root.after(int(delay_ms), callback)

    def cancel(self, handle) -> None:
        try:
            self.root.after_cancel(handle)
        except Exception:
            pass


class NetSimTool:
    def __init__(self, root: tk.Tk):
        self.root = root
        self.root.title("Network Topology Simulator")

        self.session_log = SessionLogger()
        self.explainer = TopologyExplainer()
        self.session = Session(
            kind=TopologyKind.BUS,
            scheduler=TkScheduler(root),
            log_event_cb=self.log_event,
        )
        self.session.listeners.append(self._on_session_change)

        self.break_mode = tk.BooleanVar(value=False)
        self.sender_var = tk.StringVar(value=self.session.sender_id)
        self.receiver_var = tk.StringVar(value=self.session.receiver_id)
        self._resize_job: Optional[str] = None
        self._last_completed: Any = None

        self.panes = tk.PanedWindow(root, orient=tk.HORIZONTAL, sashwidth=6, sashrelief=tk.RAISED)
        self.panes.pack(fill=tk.BOTH, expand=True)

        self.left = tk.Frame(self.panes, bg=PANEL_BG, width=300)
        self.right = tk.Frame(self.panes, bg=BG_COLOR)
        self.panes.add(self.left, minsize=260)
        self.panes.add(self.right, stretch="always")

        self.canvas = tk.Canvas(self.right, bg=BG_COLOR, width=1200, height=800, highlightthickness=0)
        self.canvas.pack(fill=tk.BOTH, expand=True)

        self._build_controls()
        self.build_menu()
        self.bind_events()
        self.redraw()

    def log_event(self, kind: str, **data):
        try:
            self.session_log.add(kind, **data)
        except Exception:
            pass

    # ───────────────── Controls ─────────────────

    def _button(self, parent, text, command):
        return tk.Button(
            parent,
            text=text,
            command=command,
            bg="#334155",
            fg="#e2e8f0",
            activebackground="#475569",
            activeforeground="#ffffff",
            relief=tk.FLAT,
            padx=8,
            pady=4,
        )

    def _build_controls(self):
        tk.Label(self.left, text="NetSim", fg="#60a5fa", bg=PANEL_BG,
                 font=("Arial", 14, "bold"), anchor="w").pack(fill=tk.X, padx=12, pady=(12, 4))

        topo_row = tk.Frame(self.left, bg=PANEL_BG)
        topo_row.pack(fill=tk.X, padx=12, pady=6)
        for i, kind in enumerate(TopologyKind):
            btn = self._button(topo_row, kind.value.title(), lambda k=kind: self.select_topology(k))
            btn.grid(row=i // 2, column=i % 2, sticky="ew", padx=2, pady=2)
        topo_row.columnconfigure(0, weight=1)
        topo_row.columnconfigure(1, weight=1)

        tk.Label(self.left, text="Sender", fg=TEXT_COLOR, bg=PANEL_BG, anchor="w").pack(fill=tk.X, padx=12)
        self.sender_menu = tk.OptionMenu(self.left, self.sender_var, "")
        self.sender_menu.pack(fill=tk.X, padx=12, pady=(0, 6))

        tk.Label(self.left, text="Receiver", fg=TEXT_COLOR, bg=PANEL_BG, anchor="w").pack(fill=tk.X, padx=12)
        self.receiver_menu = tk.OptionMenu(self.left, self.receiver_var, "")
        self.receiver_menu.pack(fill=tk.X, padx=12, pady=(0, 6))

        tk.Checkbutton(
            self.left,
            text="Breakdown mode (click PCs or cables)",
            variable=self.break_mode,
            fg="#f87171",
            bg=PANEL_BG,
            selectcolor=PANEL_BG,
            activebackground=PANEL_BG,
            anchor="w",
        ).pack(fill=tk.X, padx=12, pady=6)

        self.send_btn = self._button(self.left, "Send Data", self.send_data)
        self.send_btn.pack(fill=tk.X, padx=12, pady=4)
        self.reset_btn = self._button(self.left, "Reset Network", self.reset_network)
        self.reset_btn.pack(fill=tk.X, padx=12, pady=4)

        self.result_label = tk.Label(self.left, text="", fg=TEXT_COLOR, bg=PANEL_BG,
                                     justify=tk.LEFT, anchor="w", wraplength=260)
        self.result_label.pack(fill=tk.X, padx=12, pady=(12, 4))
        self.explain_label = tk.Label(self.left, text="", fg="#94a3b8", bg=PANEL_BG,
                                      justify=tk.LEFT, anchor="w", wraplength=260)
        self.explain_label.pack(fill=tk.X, padx=12, pady=4)

        self._refresh_endpoint_menus()

    def build_menu(self):
        menubar = tk.Menu(self.root)
        filemenu = tk.Menu(menubar, tearoff=0)
        filemenu.add_command(label="Save Session Log...", command=self.save_session_log)
        filemenu.add_command(label="Clear Session Log", command=self.session_log.clear)
        filemenu.add_separator()
        filemenu.add_command(label="Exit", command=self.root.quit)
        menubar.add_cascade(label="File", menu=filemenu)

        langmenu = tk.Menu(menubar, tearoff=0)
        langmenu.add_command(label="English", command=lambda: self.set_language("en"))
        langmenu.add_command(label="Français", command=lambda: self.set_language("fr"))
        menubar.add_cascade(label="Language", menu=langmenu)
        self.root.config(menu=menubar)

    def bind_events(self):
        self.canvas.bind("<Button-1>", self.on_click)
        self.canvas.bind("<Configure>", self.on_configure)
        self.root.bind("<Control-Return>", lambda e: self.send_data())
        self.root.bind("<Escape>", lambda e: self.session.cancel_run())

    def _refresh_endpoint_menus(self):
        device_ids = [n.id for n in self.session.nodes if n.is_device]
        labels = {n.id: n.label for n in self.session.nodes}
        for menu_btn, var, setter in (
            (self.sender_menu, self.sender_var, self.session.set_sender),
            (self.receiver_menu, self.receiver_var, self.session.set_receiver),
        ):
            menu = menu_btn["menu"]
            menu.delete(0, "end")
            for uid in device_ids:
                menu.add_command(
                    label=labels.get(uid, uid),
                    command=lambda u=uid, v=var, s=setter: (s(u) and v.set(u)),
                )
        self.sender_var.set(self.session.sender_id)
        self.receiver_var.set(self.session.receiver_id)

    def _set_controls_state(self):
        busy = self.session.is_simulating
        s = self.session
        invalid = bool(s.request_problems())
        state = tk.DISABLED if busy else tk.NORMAL
        self.sender_menu.configure(state=state)
        self.receiver_menu.configure(state=state)
        self.send_btn.configure(state=tk.DISABLED if (busy or invalid) else tk.NORMAL)

    # ───────────────── Actions ─────────────────

    def select_topology(self, kind: TopologyKind):
        self.session.set_topology(kind)
        self._refresh_endpoint_menus()

    def set_language(self, lang: str):
        self.session.language = lang
        self.redraw()

    def send_data(self):
        self.explain_label.config(text="")
        self.session.start_run()

    def reset_network(self):
        self.explain_label.config(text="")
        self.session.reset_network()

    def save_session_log(self):
        path = filedialog.asksaveasfilename(defaultextension=".json", filetypes=[("JSON", "*.json")])
        if not path:
            return
        try:
            self.session_log.save_json(path)
        except Exception as e:
            messagebox.showerror("Save failed", str(e))

    def on_configure(self, event):
        if self._resize_job is not None:
            self.root.after_cancel(self._resize_job)
        self._resize_job = self.root.after(RESIZE_DEBOUNCE_MS, lambda: self._apply_resize(event.width, event.height))

    def _apply_resize(self, width: int, height: int):
        self._resize_job = None
        if width <= 1 or height <= 1:
            return
        if (width, height) == (int(self.session.width), int(self.session.height)):
            return
        self.session.resize(width, height)
        self._refresh_endpoint_menus()

    def on_click(self, event):
        if not self.break_mode.get() or self.session.is_simulating:
            return
        hit = self.canvas.find_overlapping(event.x - EDGE_HIT_TOL, event.y - EDGE_HIT_TOL,
                                           event.x + EDGE_HIT_TOL, event.y + EDGE_HIT_TOL)
        # nodes are drawn above links, prefer the topmost item
        for item in reversed(hit):
            for tag in self.canvas.gettags(item):
                if tag.startswith("node:"):
                    self.session.toggle_node(tag[5:])
                    return
                if tag.startswith("link:"):
                    self.session.toggle_link(tag[5:])
                    return

    def _on_session_change(self, session: Session):
        self.redraw()
        result = session.last_result
        if result is not None and result is not self._last_completed:
            self._last_completed = result
            self._fetch_explanation()

    def _fetch_explanation(self):
        req = ExplanationRequest.from_session(self.session)
        self.log_event("explain_requested", **req.model_dump())

        def worker():
            text = self.explainer.explain(req)

            def done():
                self.log_event("explain_reply", message=text)
                self.explain_label.config(text=text)

            self.root.after(0, done)

        threading.Thread(target=worker, daemon=True).start()

    # ───────────────── Rendering ─────────────────

    def _node_colors(self, node):
        s = self.session
        if not node.active:
            return NODE_COLORS["broken"]
        if node.id == s.sender_id:
            return NODE_COLORS["sender"]
        if node.id == s.receiver_id:
            return NODE_COLORS["receiver"]
        return NODE_COLORS[node.role]

    def redraw(self):
        s = self.session
        c = self.canvas
        c.delete("all")
        by_id: Dict[str, Any] = {n.id: n for n in s.nodes}

        for l in s.links:
            a, b = by_id.get(l.source), by_id.get(l.target)
            if a is None or b is None:
                continue
            if l.active:
                c.create_line(a.x, a.y, b.x, b.y, fill=EDGE_COLOR, width=EDGE_WIDTH, tags=(f"link:{l.id}",))
            else:
                c.create_line(a.x, a.y, b.x, b.y, fill=EDGE_BROKEN_COLOR, width=2,
                              dash=EDGE_BROKEN_DASH, tags=(f"link:{l.id}",))

        for n in s.nodes:
            fill, outline = self._node_colors(n)
            if n.role == NodeRole.TERMINATOR:
                c.create_rectangle(n.x - 6, n.y - 12, n.x + 6, n.y + 12, fill=fill, outline=outline)
                continue
            if n.role == NodeRole.BACKBONE:
                r = BACKBONE_RADIUS if n.active else 6
                c.create_oval(n.x - r, n.y - r, n.x + r, n.y + r, fill=fill, outline=outline,
                              tags=(f"node:{n.id}",))
                continue

            r = SWITCH_RADIUS if n.role == NodeRole.SWITCH else DEVICE_RADIUS
            c.create_oval(n.x - r, n.y - r, n.x + r, n.y + r, fill=fill, outline=outline, width=2,
                          tags=(f"node:{n.id}",))
            c.create_text(n.x, n.y + r + 14, text=n.label, fill=TEXT_COLOR, font=("Courier", 9))
            if not n.active:
                c.create_text(n.x, n.y, text="!", fill="#fecaca", font=("Arial", 14, "bold"))

            status = s.statuses.get(n.id)
            if status:
                mark, color = ("✔", "#34d399") if status == ACCEPTED else ("✘", "#f87171")
                c.create_text(n.x + 18, n.y - 28, text=mark, fill=color, font=("Arial", 14, "bold"))

        for p in s.packets:
            c.create_oval(p.x - PACKET_RADIUS, p.y - PACKET_RADIUS, p.x + PACKET_RADIUS, p.y + PACKET_RADIUS,
                          fill="#facc15", outline="#fde68a", width=2)

        self._update_result_text()
        self._set_controls_state()

    def _update_result_text(self):
        s = self.session
        if s.is_simulating:
            self.result_label.config(text=message("start", s.language))
            return
        r = s.last_result
        if r is None:
            self.result_label.config(text="")
            return
        lines: List[str] = ["Status: " + ("Success" if r.success else "Failure"), r.log]
        if r.path:
            lines.append(" -> ".join(r.path))
        self.result_label.config(text="\n".join(lines))


def main():
    root = tk.Tk()
    NetSimTool(root)
    root.mainloop()


if __name__ == "__main__":
    main()
