"""
VSI/peer graph synthesis.

Maps a filtered list of VSI records to the node and edge lists consumed by
the visualization layer. Every VSI becomes one node; every distinct peer
address becomes one node shared by all VSIs that reach it; every pseudowire
becomes one edge from its VSI to the peer node.

Synthesis is a pure function of its input: the same records in the same
order always give the same ids and positions.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

import networkx as nx

from ..config import LayoutConfig
from ..exceptions import ContractViolationError
from ..ingest.vsi_records import PeerLink, VsiRecord
from ..log_config import get_logger

logger = get_logger(__name__)

VSI = "vsi"
PEER = "peer"

UP_COLOR = "#2ecc71"
DOWN_COLOR = "#e74c3c"


@dataclass(frozen=True)
class PeerSummary:
    """Payload of a peer node: the address and the device name, if known."""
    address: str
    device_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {"ip": self.address, "name": self.device_name}


@dataclass(frozen=True)
class GraphNode:
    """A VSI or peer vertex with its placement."""
    id: str
    kind: str
    position: tuple[float, float]
    payload: Union[VsiRecord, PeerSummary]

    @property
    def label(self) -> str:
        if self.kind == VSI:
            return self.payload.name
        return self.payload.device_name or self.payload.address

    def to_dict(self) -> dict:
        """React Flow style node dict."""
        return {
            "id": self.id,
            "type": "vsiNode" if self.kind == VSI else "peerNode",
            "position": {"x": self.position[0], "y": self.position[1]},
            "data": self.payload.to_dict(),
        }


@dataclass(frozen=True)
class EdgePayload:
    """Pseudowire attributes carried by an edge."""
    pw_state: str
    pw_id: Optional[int]
    is_up: bool

    def to_dict(self) -> dict:
        return {"pwState": self.pw_state, "pwId": self.pw_id, "isUp": self.is_up}


@dataclass(frozen=True)
class GraphEdge:
    """A pseudowire from a VSI node to a peer node."""
    id: str
    source: str
    target: str
    payload: EdgePayload

    def to_dict(self) -> dict:
        """React Flow style edge dict, colored by pseudowire state."""
        color = UP_COLOR if self.payload.is_up else DOWN_COLOR
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "animated": self.payload.is_up,
            "style": {"stroke": color, "strokeWidth": 2},
            "markerEnd": {"type": "arrowclosed", "color": color},
            "data": self.payload.to_dict(),
        }


@dataclass(frozen=True)
class Diagnostic:
    """A peer link that was left out of the graph, and why."""
    record_id: object
    peer_id: object
    message: str


@dataclass(frozen=True)
class SynthesisResult:
    """Output of one synthesis pass."""
    nodes: tuple[GraphNode, ...] = field(default_factory=tuple)
    edges: tuple[GraphEdge, ...] = field(default_factory=tuple)
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def vsi_nodes(self) -> list[GraphNode]:
        return [n for n in self.nodes if n.kind == VSI]

    @property
    def peer_nodes(self) -> list[GraphNode]:
        return [n for n in self.nodes if n.kind == PEER]

    def to_networkx(self) -> nx.MultiDiGraph:
        """Directed multigraph view with payload fields as attributes.

        Parallel pseudowires between one VSI and one peer stay separate edges,
        keyed by edge id.
        """
        G = nx.MultiDiGraph()
        for node in self.nodes:
            attrs = {"kind": node.kind, "label": node.label, "pos": node.position}
            if node.kind == VSI:
                attrs.update(state=node.payload.state, mtu=node.payload.mtu,
                             vsi_type=node.payload.type)
            else:
                attrs.update(address=node.payload.address,
                             device_name=node.payload.device_name)
            G.add_node(node.id, **attrs)
        for edge in self.edges:
            G.add_edge(edge.source, edge.target, key=edge.id, id=edge.id,
                       pw_state=edge.payload.pw_state, pw_id=edge.payload.pw_id,
                       is_up=edge.payload.is_up)
        return G

    def summary(self) -> dict:
        G = self.to_networkx()
        up = sum(1 for e in self.edges if e.payload.is_up)
        shared = sorted(
            n for n, data in G.nodes(data=True)
            if data["kind"] == PEER and len(set(G.predecessors(n))) > 1
        )
        return {
            "vsi_nodes": len(self.vsi_nodes),
            "peer_nodes": len(self.peer_nodes),
            "edges": len(self.edges),
            "edges_up": up,
            "edges_down": len(self.edges) - up,
            "shared_peers": shared,
            "skipped_links": len(self.diagnostics),
        }


def vsi_node_id(record: VsiRecord) -> str:
    return f"vsi-{record.id}"


def peer_node_id(address: str) -> str:
    return f"peer-{address}"


def edge_id(record: VsiRecord, peer: PeerLink, position: int) -> str:
    """Edge id from the record and link ids; links without an id use their index."""
    if peer.id is None:
        return f"edge-{record.id}-#{position}"
    return f"edge-{record.id}-{peer.id}"


def synthesize(
    records: Sequence[VsiRecord],
    layout: Optional[LayoutConfig] = None,
) -> SynthesisResult:
    """
    Build the node and edge lists for a filtered set of VSI records.

    Peer links without an address are skipped and reported in
    ``diagnostics``. A record without an id raises ContractViolationError.
    """
    layout = layout or LayoutConfig()
    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []
    diagnostics: list[Diagnostic] = []
    # Scoped to this call so peer identities never carry over between passes
    peer_nodes: dict[str, GraphNode] = {}

    for index, record in enumerate(records):
        if record.id is None:
            raise ContractViolationError(f"VSI record without id: {record.name!r}")

        vsi_id = vsi_node_id(record)
        nodes.append(GraphNode(
            id=vsi_id,
            kind=VSI,
            position=layout.vsi_position(index),
            payload=record,
        ))

        for position, peer in enumerate(record.peers):
            address = peer.peer_address
            if not address or not address.strip():
                diagnostics.append(_skip(record, peer, "peer link has no address"))
                continue

            peer_node = peer_nodes.get(address)
            if peer_node is None:
                peer_node = GraphNode(
                    id=peer_node_id(address),
                    kind=PEER,
                    position=layout.peer_position(len(peer_nodes)),
                    payload=PeerSummary(address, peer.peer_device_name),
                )
                peer_nodes[address] = peer_node
                nodes.append(peer_node)

            edges.append(GraphEdge(
                id=edge_id(record, peer, position),
                source=vsi_id,
                target=peer_node.id,
                payload=EdgePayload(
                    pw_state=peer.pw_state,
                    pw_id=peer.pw_id,
                    is_up=peer.is_up,
                ),
            ))

    logger.debug(
        f"Synthesized {len(nodes)} nodes ({len(peer_nodes)} peers) and "
        f"{len(edges)} edges from {len(records)} VSIs"
    )
    return SynthesisResult(tuple(nodes), tuple(edges), tuple(diagnostics))


def _skip(record: VsiRecord, peer: PeerLink, message: str) -> Diagnostic:
    logger.warning(f"VSI {record.id}: skipping peer link {peer.id}: {message}")
    return Diagnostic(record_id=record.id, peer_id=peer.id, message=message)
