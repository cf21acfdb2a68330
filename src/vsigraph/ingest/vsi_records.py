"""
VSI record ingestion.

Decodes the VSI inventory returned by the network API (``GET /vsi``) into
typed records. Each VSI carries its owning device and the pseudowire peers
the backend resolved for it. Input is the already-fetched JSON payload or a
file holding it; fetching over the network is left to the caller.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..exceptions import ContractViolationError, DataSourceError
from ..log_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class DeviceInfo:
    """Device that hosts a VSI."""
    id: Optional[int]
    name: str = ""
    ip: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "ip": self.ip}


@dataclass(frozen=True)
class PeerLink:
    """A pseudowire from a VSI to one remote peer address."""
    id: Optional[int]
    peer_address: str = ""
    pw_id: Optional[int] = None
    pw_state: str = ""
    pw_in_label: Optional[int] = None
    pw_out_label: Optional[int] = None
    peer_device_name: Optional[str] = None
    pw_mac_learning: str = ""
    pw_mac_limit: Optional[int] = None
    tunnel_policy: Optional[str] = None

    @property
    def is_up(self) -> bool:
        return (self.pw_state or "").lower() == "up"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "peerAddress": self.peer_address,
            "pwId": self.pw_id,
            "pwState": self.pw_state,
            "pwMacLearning": self.pw_mac_learning,
            "pwMacLimit": self.pw_mac_limit,
            "pwInLabel": self.pw_in_label,
            "pwOutLabel": self.pw_out_label,
            "tunnelPolicy": self.tunnel_policy,
            "peerDeviceName": self.peer_device_name,
        }


@dataclass(frozen=True)
class VsiRecord:
    """A virtual switching instance and its ordered peer links."""
    id: Any
    name: str = ""
    state: str = ""
    mtu: Optional[int] = None
    type: str = ""
    vlan_id: Optional[int] = None
    encapsulation: str = ""
    mac_learning: str = ""
    peers: tuple[PeerLink, ...] = field(default_factory=tuple)
    description: Optional[str] = None
    device_id: Optional[int] = None
    device: Optional[DeviceInfo] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "state": self.state,
            "type": self.type,
            "mtu": self.mtu,
            "vlanId": self.vlan_id,
            "macLearning": self.mac_learning,
            "encapsulation": self.encapsulation,
            "description": self.description,
            "deviceId": self.device_id,
            "device": self.device.to_dict() if self.device else None,
            "peers": [p.to_dict() for p in self.peers],
        }


def parse_peer(data: dict) -> PeerLink:
    """Build a PeerLink from its API dict.

    Peer data is never rejected here; links without an address are kept so
    the synthesizer can report them.
    """
    return PeerLink(
        id=data.get("id"),
        peer_address=_text(data.get("peerAddress")),
        pw_id=data.get("pwId"),
        pw_state=_text(data.get("pwState")),
        pw_in_label=data.get("pwInLabel"),
        pw_out_label=data.get("pwOutLabel"),
        peer_device_name=data.get("peerDeviceName") or None,
        pw_mac_learning=_text(data.get("pwMacLearning")),
        pw_mac_limit=data.get("pwMacLimit"),
        tunnel_policy=data.get("tunnelPolicy"),
    )


def parse_record(data: dict) -> VsiRecord:
    """Build a VsiRecord from its API dict.

    Raises:
        ContractViolationError: If the entry is not a mapping or has no id.
    """
    if not isinstance(data, dict):
        raise ContractViolationError(
            f"VSI entry must be an object, got {type(data).__name__}"
        )
    if data.get("id") is None:
        raise ContractViolationError(f"VSI entry without id: {data.get('name', '?')!r}")

    peers = []
    for entry in data.get("peers") or []:
        if isinstance(entry, dict):
            peers.append(parse_peer(entry))
        else:
            logger.warning(f"VSI {data['id']}: ignoring non-object peer entry {entry!r}")

    device = None
    raw_device = data.get("device")
    if isinstance(raw_device, dict):
        device = DeviceInfo(
            id=raw_device.get("id"),
            name=_text(raw_device.get("name")),
            ip=_text(raw_device.get("ip")),
        )

    return VsiRecord(
        id=data["id"],
        name=_text(data.get("name")),
        state=_text(data.get("state")),
        mtu=data.get("mtu"),
        type=_text(data.get("type")),
        vlan_id=data.get("vlanId"),
        encapsulation=_text(data.get("encapsulation")),
        mac_learning=_text(data.get("macLearning")),
        peers=tuple(peers),
        description=data.get("description"),
        device_id=data.get("deviceId"),
        device=device,
    )


def parse_records(data: Any) -> list[VsiRecord]:
    """Decode the VSI list payload. A null payload is an empty inventory."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise ContractViolationError(
            f"VSI payload must be a list, got {type(data).__name__}"
        )
    records = [parse_record(entry) for entry in data]
    logger.debug(f"Parsed {len(records)} VSI records")
    return records


def load_records(path) -> list[VsiRecord]:
    """Load VSI records from a JSON file.

    Raises:
        DataSourceError: If the file can't be read or isn't valid JSON.
        ContractViolationError: If the JSON doesn't have the VSI list shape.
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except OSError as e:
        raise DataSourceError(f"Cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise DataSourceError(f"Invalid JSON in {path}: {e}") from e

    records = parse_records(data)
    logger.info(f"Loaded {len(records)} VSIs from {path}")
    return records


def _text(value) -> str:
    return "" if value is None else str(value)
