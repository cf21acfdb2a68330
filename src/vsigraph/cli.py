"""
VSIGraph CLI: Command-line interface for VSI peer graphs.

Commands:
  graph  : Filter a VSI inventory and export its peer graph
  states : List the VSI states present in an inventory
  demo   : Run a demo with sample data
"""

import json
import logging

import click
import yaml

from .config import LayoutConfig
from .exceptions import VsiGraphError
from .log_config import set_global_log_level


@click.group()
@click.version_option(version="0.1.0", prog_name="vsigraph")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors")
def cli(verbose, quiet):
    """VSIGraph: VSI pseudowire peer graphs."""
    if verbose:
        set_global_log_level(logging.DEBUG)
    elif quiet:
        set_global_log_level(logging.ERROR)
    else:
        set_global_log_level(logging.WARNING)


@cli.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--name", "-n", default="", help="Case-insensitive VSI name substring")
@click.option("--state", "-s", default="", help="VSI state, e.g. up or down")
@click.option("--format", "-f", type=click.Choice(["json", "d3", "mermaid", "html"]), default="json")
@click.option("--output", "-o", default=None, help="Output file (default: print to stdout)")
@click.option("--config", "-c", type=click.Path(exists=True), default=None, help="Layout YAML")
def graph(file, name, state, format, output, config):
    """Build the peer graph for the VSIs in FILE."""
    from .ingest.vsi_records import load_records
    from .graph.orchestrator import RecomputeOrchestrator
    from .graph.synthesizer import SynthesisResult
    from .viz.export import ReactFlowExporter, D3Exporter, MermaidExporter, HTMLExporter

    try:
        layout = LayoutConfig.from_yaml(config) if config else LayoutConfig()
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Invalid layout config {config}: {e}")
    orchestrator = RecomputeOrchestrator(layout)

    try:
        orchestrator.refresh(lambda: load_records(file))
    except VsiGraphError as e:
        raise click.ClickException(str(e))
    if orchestrator.error:
        raise click.ClickException(orchestrator.error)

    orchestrator.set_name_filter(name)
    orchestrator.set_state_filter(state)
    snap = orchestrator.snapshot

    result = SynthesisResult(snap.nodes, snap.edges, snap.diagnostics)
    stats = result.summary()
    click.echo(f"VSIs: {snap.matched_count}/{snap.record_count} matched", err=True)
    click.echo(f"  Nodes: {len(snap.nodes)} ({stats['peer_nodes']} peers)", err=True)
    click.echo(f"  Edges: {stats['edges']} ({stats['edges_up']} up, {stats['edges_down']} down)", err=True)
    if stats["shared_peers"]:
        click.echo(f"  Shared peers: {', '.join(stats['shared_peers'])}", err=True)
    for diag in snap.diagnostics:
        click.echo(f"  Skipped VSI {diag.record_id} link {diag.peer_id}: {diag.message}", err=True)

    if format == "json":
        content = json.dumps(ReactFlowExporter.to_react_flow(snap), indent=2, default=str)
    elif format == "d3":
        content = json.dumps(D3Exporter.to_d3_json(snap), indent=2, default=str)
    elif format == "mermaid":
        content = MermaidExporter.to_mermaid(snap, title="VSI Peers")
    else:
        content = HTMLExporter.to_html(snap)

    if output:
        with open(output, "w") as f:
            f.write(content)
        click.echo(f"Exported to {output}", err=True)
    else:
        click.echo(content)


@cli.command()
@click.argument("file", type=click.Path(exists=True))
def states(file):
    """List the distinct VSI states in FILE."""
    from .ingest.vsi_records import load_records
    from .graph.filters import available_states

    try:
        records = load_records(file)
    except VsiGraphError as e:
        raise click.ClickException(str(e))
    for value in available_states(records):
        click.echo(value)


@cli.command()
@click.option("--output", "-o", default="/tmp/vsigraph-demo.html", help="HTML output path")
def demo(output):
    """Run a demo with sample VSI data."""
    from .ingest.vsi_records import parse_records
    from .graph.orchestrator import RecomputeOrchestrator
    from .viz.export import HTMLExporter, MermaidExporter

    click.echo("=" * 60)
    click.echo("  VSIGraph Demo: VSI Peer Visualization")
    click.echo("=" * 60)

    orchestrator = RecomputeOrchestrator()
    orchestrator.subscribe(
        lambda s: click.echo(f"  -> graph {s.generation}: {len(s.nodes)} nodes, {len(s.edges)} edges")
    )

    click.echo("\n[1/4] Loading sample VSI inventory (stale refresh is dropped)...")
    stale = orchestrator.begin_refresh()
    latest = orchestrator.begin_refresh()
    orchestrator.complete_refresh(latest, parse_records(_demo_inventory()))
    applied = orchestrator.complete_refresh(stale, [])
    click.echo(f"  Stale refresh applied: {applied}")
    click.echo(f"  States: {', '.join(orchestrator.state_options())}")

    click.echo("\n[2/4] Filtering by name 'core'...")
    orchestrator.set_name_filter("core")

    click.echo("\n[3/4] Filtering by state 'up'...")
    orchestrator.set_name_filter("")
    orchestrator.set_state_filter("up")

    click.echo("\n[4/4] Generating visualizations...")
    orchestrator.set_state_filter("")
    HTMLExporter.save(output, orchestrator.snapshot, title="VSIGraph Demo")
    click.echo(f"  HTML graph: {output}")
    mermaid = MermaidExporter.to_mermaid(orchestrator.snapshot, title="Demo VSIs")
    click.echo(f"  Mermaid diagram: {len(mermaid)} chars")

    click.echo("\n" + "=" * 60)
    click.echo(f"  Demo complete! Open {output} in a browser.")
    click.echo("=" * 60)


def _demo_inventory() -> list[dict]:
    """Sample ``GET /vsi`` payload: two PEs sharing a set of remote peers."""
    peers = [("10.255.0.1", "pe-core-1"), ("10.255.0.2", "pe-core-2"), ("10.255.0.3", None)]
    inventory = []
    vsi_id = 1
    for device_id, device in ((1, "pe-agg-1"), (2, "pe-agg-2")):
        for j, (vsi_name, state) in enumerate((("CORE-VPLS-100", "up*"), ("CUST-A-200", "up"),
                                               ("CUST-B-300", "down"))):
            links = []
            for k, (address, peer_name) in enumerate(peers[: j + 1 + (device_id - 1)]):
                links.append({
                    "id": vsi_id * 10 + k,
                    "peerAddress": address,
                    "pwId": 100 * (j + 1) + k,
                    "pwState": "down" if state == "down" else "up",
                    "pwMacLearning": "enable",
                    "pwInLabel": 1024 + vsi_id * 10 + k,
                    "pwOutLabel": 2048 + vsi_id * 10 + k,
                    "peerDeviceName": peer_name,
                })
            inventory.append({
                "id": vsi_id,
                "name": f"{vsi_name}-{device}",
                "state": state,
                "type": "vpls",
                "mtu": 1500,
                "vlanId": 100 * (j + 1),
                "macLearning": "enable",
                "encapsulation": "vlan",
                "deviceId": device_id,
                "device": {"id": device_id, "name": device, "ip": f"10.0.0.{device_id}"},
                "peers": links,
            })
            vsi_id += 1
    return inventory


if __name__ == "__main__":
    cli()
