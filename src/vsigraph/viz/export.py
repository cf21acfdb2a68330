"""
Visualization export for VSI peer graphs.

Exports synthesized graphs (a SynthesisResult or a published GraphSnapshot)
to React Flow node/edge JSON, D3.js force JSON, Mermaid diagram syntax and
standalone interactive HTML maps.
"""

import json
import html
from typing import Union

import networkx as nx

from ..graph.orchestrator import GraphSnapshot
from ..graph.synthesizer import (
    DOWN_COLOR,
    UP_COLOR,
    VSI,
    SynthesisResult,
)

GraphLike = Union[SynthesisResult, GraphSnapshot]


class ReactFlowExporter:
    """Export graphs as React Flow ``nodes``/``edges`` arrays."""

    @staticmethod
    def to_react_flow(graph: GraphLike) -> dict:
        return {
            "nodes": [n.to_dict() for n in graph.nodes],
            "edges": [e.to_dict() for e in graph.edges],
        }

    @staticmethod
    def save(filepath: str, graph: GraphLike):
        """Save React Flow JSON to file."""
        data = ReactFlowExporter.to_react_flow(graph)
        with open(filepath, "w") as f:
            json.dump(data, f, indent=2, default=str)


class D3Exporter:
    """Export graphs to D3.js force-directed JSON format."""

    @staticmethod
    def to_d3_json(graph: GraphLike) -> dict:
        """
        Convert a graph to D3.js force-directed layout JSON.

        Returns dict with 'nodes' and 'links' arrays. Links reference nodes
        by index; initial x/y come from the synthesized layout.
        """
        node_map = {n.id: i for i, n in enumerate(graph.nodes)}

        nodes = []
        for node in graph.nodes:
            d = {
                "id": node.id,
                "index": node_map[node.id],
                "type": node.kind,
                "label": node.label,
                "x": node.position[0],
                "y": node.position[1],
            }
            if node.kind == VSI:
                d["state"] = node.payload.state
                d["mtu"] = node.payload.mtu
            else:
                d["address"] = node.payload.address
            nodes.append(d)

        links = []
        for edge in graph.edges:
            links.append({
                "id": edge.id,
                "source": node_map[edge.source],
                "target": node_map[edge.target],
                "pw_state": edge.payload.pw_state,
                "pw_id": edge.payload.pw_id,
                "is_up": edge.payload.is_up,
            })

        return {"nodes": nodes, "links": links}

    @staticmethod
    def save(filepath: str, graph: GraphLike):
        """Save D3.js JSON to file."""
        data = D3Exporter.to_d3_json(graph)
        with open(filepath, "w") as f:
            json.dump(data, f, indent=2, default=str)


class MermaidExporter:
    """Export graphs to Mermaid diagram syntax."""

    @staticmethod
    def to_mermaid(
        graph: GraphLike,
        direction: str = "TB",
        title: str = "",
    ) -> str:
        """Convert a graph to Mermaid flowchart syntax."""
        G = _to_networkx(graph)
        lines = [f"graph {direction}"]
        if title:
            lines.insert(0, f"---\ntitle: {title}\n---")

        safe = {node: _mermaid_safe(node) for node in G.nodes()}

        # VSIs as boxes, peers as rounded nodes
        for node, data in G.nodes(data=True):
            label = _mermaid_label(data["label"])
            if data["kind"] == VSI:
                lines.append(f"    {safe[node]}[\"{label}\"]")
            else:
                lines.append(f"    {safe[node]}(\"{label}\")")

        for u, v, data in G.edges(data=True):
            arrow = "-->" if data["is_up"] else "-.->"
            pw = f"PW {data['pw_id']}" if data.get("pw_id") is not None else data["pw_state"]
            lines.append(f"    {safe[u]} {arrow}|\"{_mermaid_label(str(pw))}\"| {safe[v]}")

        return "\n".join(lines)

    @staticmethod
    def save(filepath: str, graph: GraphLike, **kwargs):
        """Save Mermaid diagram to file."""
        content = MermaidExporter.to_mermaid(graph, **kwargs)
        with open(filepath, "w") as f:
            f.write(content)


class HTMLExporter:
    """Generate interactive HTML peer maps using D3.js."""

    @staticmethod
    def to_html(
        graph: GraphLike,
        title: str = "VSI Peer Visualization",
        width: int = 1200,
        height: int = 800,
    ) -> str:
        """Generate a standalone HTML page with an interactive D3.js graph."""
        d3_data = D3Exporter.to_d3_json(graph)
        # "</" would end the inline <script> block early
        data_json = json.dumps(d3_data, default=str).replace("</", "<\\/")

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <script src="https://d3js.org/d3.v7.min.js"></script>
    <style>
        body {{ margin: 0; background: #fafafa; color: #333; font-family: "Segoe UI", Tahoma, sans-serif; }}
        h1 {{ text-align: center; padding: 10px; margin: 0; font-size: 1.5em; }}
        #graph {{ width: 100%; height: calc(100vh - 50px); border-top: 1px solid #ccc; }}
        .node {{ cursor: pointer; }}
        .node text {{ font-size: 11px; fill: #333; }}
        .tooltip {{
            position: absolute; background: #fff; border: 1px solid #ccc;
            padding: 8px 12px; border-radius: 4px; font-size: 12px;
            pointer-events: none; display: none;
        }}
        .legend {{ position: absolute; bottom: 20px; right: 20px; background: #f1f1f1;
            padding: 10px; border-radius: 4px; font-size: 12px; }}
    </style>
</head>
<body>
    <h1>{html.escape(title)}</h1>
    <div id="graph"></div>
    <div class="tooltip" id="tooltip"></div>
    <div class="legend">
        <span style="color: #3498db;">&#9632;</span> VSI &nbsp;
        <span style="color: #95a5a6;">&#9632;</span> Peer &nbsp;
        <span style="color: {UP_COLOR};">&#9472;</span> PW up &nbsp;
        <span style="color: {DOWN_COLOR};">&#9472;</span> PW down
    </div>
    <script>
    const data = {data_json};

    const width = {width};
    const height = {height};

    const svg = d3.select("#graph").append("svg")
        .attr("width", "100%")
        .attr("height", "100%")
        .attr("viewBox", [0, 0, width, height]);

    const g = svg.append("g");

    svg.call(d3.zoom().on("zoom", (event) => {{
        g.attr("transform", event.transform);
    }}));

    const simulation = d3.forceSimulation(data.nodes)
        .force("link", d3.forceLink(data.links).id(d => d.index).distance(150))
        .force("charge", d3.forceManyBody().strength(-200))
        .force("y", d3.forceY(d => d.y).strength(0.5))
        .force("collision", d3.forceCollide().radius(40));

    const link = g.append("g").selectAll("line")
        .data(data.links).enter().append("line")
        .attr("stroke", d => d.is_up ? "{UP_COLOR}" : "{DOWN_COLOR}")
        .attr("stroke-width", 2)
        .attr("stroke-dasharray", d => d.is_up ? null : "4 3");

    const node = g.append("g").selectAll("g")
        .data(data.nodes).enter().append("g")
        .attr("class", "node")
        .call(d3.drag()
            .on("start", dragstarted)
            .on("drag", dragged)
            .on("end", dragended));

    node.append("rect")
        .attr("x", -12).attr("y", -8).attr("width", 24).attr("height", 16).attr("rx", 4)
        .attr("fill", d => d.type === "vsi" ? "#eaf5ff" : "#ecf0f1")
        .attr("stroke", d => d.type === "vsi" ? "#3498db" : "#95a5a6");

    node.append("text")
        .attr("dx", 16).attr("dy", 4)
        .text(d => d.label);

    const tooltip = d3.select("#tooltip");

    function esc(value) {{
        return String(value ?? "").replace(/[&<>"']/g, c => ({{
            "&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#39;"
        }})[c]);
    }}

    node.on("mouseover", (event, d) => {{
        tooltip.style("display", "block")
            .html(d.type === "vsi"
                ? `<strong>VSI: ${{esc(d.label)}}</strong><br>State: ${{esc(d.state)}}<br>MTU: ${{esc(d.mtu)}}`
                : `<strong>${{esc(d.label)}}</strong><br>${{esc(d.address)}}`);
    }}).on("mousemove", (event) => {{
        tooltip.style("left", (event.pageX + 10) + "px")
            .style("top", (event.pageY - 10) + "px");
    }}).on("mouseout", () => {{ tooltip.style("display", "none"); }});

    simulation.on("tick", () => {{
        link.attr("x1", d => d.source.x).attr("y1", d => d.source.y)
            .attr("x2", d => d.target.x).attr("y2", d => d.target.y);
        node.attr("transform", d => `translate(${{d.x}},${{d.y}})`);
    }});

    function dragstarted(event) {{
        if (!event.active) simulation.alphaTarget(0.3).restart();
        event.subject.fx = event.subject.x;
        event.subject.fy = event.subject.y;
    }}
    function dragged(event) {{
        event.subject.fx = event.x;
        event.subject.fy = event.y;
    }}
    function dragended(event) {{
        if (!event.active) simulation.alphaTarget(0);
        event.subject.fx = null;
        event.subject.fy = null;
    }}
    </script>
</body>
</html>"""

    @staticmethod
    def save(filepath: str, graph: GraphLike, **kwargs):
        """Save interactive HTML graph."""
        content = HTMLExporter.to_html(graph, **kwargs)
        with open(filepath, "w") as f:
            f.write(content)


def _to_networkx(graph: GraphLike) -> nx.DiGraph:
    if isinstance(graph, SynthesisResult):
        return graph.to_networkx()
    return SynthesisResult(graph.nodes, graph.edges, graph.diagnostics).to_networkx()


def _mermaid_safe(name: str) -> str:
    """Make a node id safe for Mermaid diagram syntax."""
    safe = name.replace("-", "_").replace(".", "_").replace("/", "_")
    safe = safe.replace(" ", "_").replace(":", "_")
    if safe[0].isdigit():
        safe = "n" + safe
    return safe


def _mermaid_label(text: str) -> str:
    return text.replace('"', "#quot;")
