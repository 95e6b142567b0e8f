"""
Optional: MCP server exposing the topology simulator as tools.

Lets an MCP client (MCP Inspector, a desktop assistant, or OpenAI "Remote MCP"
tools) generate canonical topologies and run failure scenarios without the GUI.

Run (example):
  pip install mcp
  python mcp_server/netsim_mcp_server.py

Then connect an MCP client to:
  http://localhost:8000/mcp
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from netsim.core import TopologyKind, default_endpoints, export_dict
from netsim.sequencer import run, validate_request
from netsim.topology import DEFAULT_HEIGHT, DEFAULT_WIDTH, generate

mcp = FastMCP(
    "NetSim MCP Server",
    instructions="Tools for generating bus/ring/star/mesh topologies and simulating transmissions under failures.",
    stateless_http=True,
    json_response=True,
)


def _kind_or_problem(kind: str):
    try:
        return TopologyKind.parse(kind), None
    except ValueError as e:
        return None, str(e)


@mcp.tool()
def generate_topology(kind: str, width: float = DEFAULT_WIDTH, height: float = DEFAULT_HEIGHT) -> Dict[str, Any]:
    """Generate the node/link set of a canonical topology (bus, ring, star or mesh)."""
    k, problem = _kind_or_problem(kind)
    if k is None:
        return {"ok": False, "problems": [problem]}
    nodes, links = generate(k, width, height)
    out = export_dict(k, nodes, links)
    sender, receiver = default_endpoints(nodes)
    out["meta"]["defaultSender"] = sender
    out["meta"]["defaultReceiver"] = receiver
    out["ok"] = True
    return out


@mcp.tool()
def validate_transmission(kind: str, sender: str, receiver: str) -> Dict[str, Any]:
    """Check that sender/receiver are distinct devices of the given topology."""
    k, problem = _kind_or_problem(kind)
    if k is None:
        return {"ok": False, "problems": [problem]}
    nodes, _links = generate(k)
    problems = validate_request(nodes, sender, receiver)
    return {"ok": len(problems) == 0, "problems": problems}


@mcp.tool()
def simulate_transmission(
    kind: str,
    sender: str,
    receiver: str,
    failed_nodes: Optional[List[str]] = None,
    failed_links: Optional[List[str]] = None,
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
    language: str = "en",
) -> Dict[str, Any]:
    """Disable the listed nodes/links, send from sender to receiver and return the tick schedule and outcome."""
    k, problem = _kind_or_problem(kind)
    if k is None:
        return {"ok": False, "problems": [problem]}

    nodes, links = generate(k, width, height)
    problems: List[str] = []

    node_ids = {n.id for n in nodes}
    link_ids = {l.id for l in links}
    failed_nodes = list(failed_nodes or [])
    failed_links = list(failed_links or [])
    for uid in failed_nodes:
        if uid not in node_ids:
            problems.append(f"Unknown node '{uid}'.")
    for lid in failed_links:
        if lid not in link_ids:
            problems.append(f"Unknown link '{lid}'.")
    problems.extend(validate_request(nodes, sender, receiver))
    if problems:
        return {"ok": False, "problems": problems}

    for n in nodes:
        if n.id in failed_nodes:
            n.active = False
    for l in links:
        if l.id in failed_links:
            l.active = False

    outcome = run(k, sender, receiver, nodes, links, language=language)
    plan = outcome.plan
    return {
        "ok": True,
        "topology": k.value,
        "sender": sender,
        "receiver": receiver,
        "targets": list(plan.targets),
        "reached": list(plan.reached),
        "paths": [list(p) for p in plan.paths],
        "schedule": [[asdict(p) for p in frame] for frame in outcome.schedule],
        "statuses": dict(outcome.statuses),
        "result": asdict(outcome.result),
    }


def main():
    # Streamable HTTP transport is recommended in the MCP SDK docs.
    mcp.run(transport="streamable-http")


if __name__ == "__main__":
    main()
