from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class SessionEvent:
    ts: str
    kind: str
    data: Dict[str, Any]

    def describe(self) -> str:
        fields = " ".join(f"{k}={v}" for k, v in self.data.items())
        return f"{self.ts} {self.kind} {fields}".rstrip()


class SessionLogger:
    """In-memory session log for debugging and classroom replay.

    Captures topology changes, failure toggles, run ticks/outcomes and
    explanation requests. Optionally can be saved to a JSON file.
    """

    def __init__(self, max_events: int = 5000):
        self.max_events = max_events
        self.events: List[SessionEvent] = []

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat(timespec="milliseconds")

    def add(self, kind: str, **data: Any) -> SessionEvent:
        ev = SessionEvent(ts=self._now(), kind=str(kind), data=dict(data))
        self.events.append(ev)
        if len(self.events) > self.max_events:
            # oldest events go first
            del self.events[: len(self.events) - self.max_events]
        return ev

    def of_kind(self, kind: str) -> List[SessionEvent]:
        return [e for e in self.events if e.kind == kind]

    def last(self, kind: Optional[str] = None) -> Optional[SessionEvent]:
        for ev in reversed(self.events):
            if kind is None or ev.kind == kind:
                return ev
        return None

    def tail(self, n: int = 10) -> List[SessionEvent]:
        return self.events[-n:] if n > 0 else []

    def counts(self) -> Dict[str, int]:
        return dict(Counter(e.kind for e in self.events))

    def clear(self) -> None:
        self.events.clear()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": "netsim-session-log/v1",
            "eventCount": len(self.events),
            "counts": self.counts(),
            "events": [asdict(e) for e in self.events],
        }

    def save_json(self, path: str) -> None:
        import json

        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
