import os
from typing import Any, Dict, List, Literal, Optional

from openai import OpenAI
from pydantic import BaseModel, ConfigDict, Field

from netsim.messages import LANGUAGE_NAMES, message, normalize_language


# Structured Outputs requires "additionalProperties": false on every object
# schema, hence extra="forbid" on both models.


class ExplanationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    topology: Literal["BUS", "RING", "STAR", "MESH"] = Field(..., description="Topology kind")
    sender: str = Field(..., description="Sender node id")
    receiver: str = Field(..., description="Receiver node id")
    success: bool = Field(..., description="Whether the receiver was reached")
    path: List[str] = Field(default_factory=list, description="Node ids from sender to receiver")
    broken_nodes: List[str] = Field(default_factory=list, description="Labels of inactive nodes")
    broken_links: List[str] = Field(default_factory=list, description="Inactive cables as source-target")
    language: str = Field("en", description="en or fr")

    @classmethod
    def from_session(cls, session) -> "ExplanationRequest":
        return cls(**session.explain_context())


class ExplanationReply(BaseModel):
    model_config = ConfigDict(extra="forbid")

    message: str = Field(..., description="At most three sentences explaining the outcome.")
    factors: List[str] = Field(
        default_factory=list,
        description="Short names of the failures or topology rules that decided the outcome.",
    )


SYSTEM_PROMPT = """\
You are a network engineer explaining the outcome of a transmission in an
educational network topology simulator.

You will receive the topology kind, sender, receiver, outcome, the path taken
and the lists of broken devices and cut cables.

Explain simply why the data transmission succeeded or failed based on the
topology rules and the specific failures (if any):
- BUS: mention how the backbone or terminators affect it.
- RING: mention the loop direction or the break.
- STAR: mention the central hub/switch status.
- MESH: mention redundancy or lack of paths.

Keep it short (max 3 sentences) and answer in the requested language.
Always return JSON matching the ExplanationReply schema (no extra keys).\
"""


def build_context(req: ExplanationRequest) -> str:
    lang = LANGUAGE_NAMES.get(normalize_language(req.language), "English")
    return "\n".join(
        [
            "Context: Network Topology Simulator.",
            f"Topology Type: {req.topology}.",
            f"Sender: Node {req.sender}.",
            f"Receiver: Node {req.receiver}.",
            f"Outcome: {'SUCCESS' if req.success else 'FAILURE'}.",
            f"Path Taken: {' -> '.join(req.path)}.",
            f"Broken Devices: [{', '.join(req.broken_nodes)}].",
            f"Broken Cables: [{', '.join(req.broken_links)}].",
            f"Language: {lang}.",
        ]
    )


class TopologyExplainer:
    """Best-effort natural-language rationale for a finished run.

    Never raises: a missing key, a transport error or an empty reply all turn
    into a localized fallback sentence.
    """

    def __init__(self, model: Optional[str] = None, client: Any = None):
        # Set OPENAI_API_KEY in the environment; never hardcode it.
        self.api_key = os.getenv("OPENAI_API_KEY")
        self.model = model or os.getenv("NETSIM_AI_MODEL", "gpt-4o-2024-08-06")
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    @property
    def available(self) -> bool:
        return bool(self.api_key) or self._client is not None

    def explain(self, request: ExplanationRequest) -> str:
        reply = self.explain_structured(request)
        return reply.message

    def explain_structured(self, request: ExplanationRequest) -> ExplanationReply:
        lang = request.language
        if not self.available:
            return ExplanationReply(message=message("explain_missing_key", lang), factors=[])

        input_messages: List[Dict[str, Any]] = [
            {"role": "system", "content": [{"type": "input_text", "text": SYSTEM_PROMPT}]},
            {"role": "user", "content": [{"type": "input_text", "text": build_context(request)}]},
        ]

        try:
            resp = self.client.responses.parse(
                model=self.model,
                input=input_messages,
                text_format=ExplanationReply,
            )
            parsed: Optional[ExplanationReply] = resp.output_parsed
        except Exception:
            return ExplanationReply(message=message("explain_error", lang), factors=[])

        if parsed is None or not (parsed.message or "").strip():
            return ExplanationReply(message=message("explain_no_response", lang), factors=[])
        return parsed
