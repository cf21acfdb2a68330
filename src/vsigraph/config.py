"""Layout configuration for the graph synthesizer."""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .log_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LayoutConfig:
    """Two-row placement of VSI and peer nodes.

    VSI nodes sit on one row, peer nodes on a second row below it. Each row
    grows to the right from its base x by a fixed spacing.
    """

    vsi_row_y: float = 100.0
    vsi_base_x: float = 150.0
    vsi_spacing: float = 250.0
    peer_row_y: float = 400.0
    peer_base_x: float = 100.0
    peer_spacing: float = 200.0

    def vsi_position(self, index: int) -> tuple[float, float]:
        return (self.vsi_base_x + index * self.vsi_spacing, self.vsi_row_y)

    def peer_position(self, index: int) -> tuple[float, float]:
        return (self.peer_base_x + index * self.peer_spacing, self.peer_row_y)

    @classmethod
    def from_dict(cls, config_dict: dict[str, Any]) -> "LayoutConfig":
        """Create a layout from a mapping of field names to numbers.

        Raises:
            ValueError: On unknown keys, non-numeric values or non-positive
                spacing.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(config_dict) - known
        if unknown:
            raise ValueError(f"Unknown layout keys: {sorted(unknown)}")

        values = {}
        for key, value in config_dict.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Layout value '{key}' must be a number, got {value!r}")
            values[key] = float(value)

        cfg = cls(**values)
        if cfg.vsi_spacing <= 0 or cfg.peer_spacing <= 0:
            raise ValueError("Layout spacing must be positive")
        return cfg

    @classmethod
    def from_yaml(cls, config_path: Path) -> "LayoutConfig":
        """Load the layout from the ``layout:`` section of a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            yaml.YAMLError: If the YAML is invalid.
            ValueError: If the layout section is invalid.
        """
        config_path = Path(config_path)
        logger.info(f"Loading configuration from: {config_path}")

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in configuration: {e}")
            raise

        if not isinstance(raw_config, dict):
            raise ValueError("Configuration root must be a mapping")
        layout = raw_config.get("layout", {})
        if not isinstance(layout, dict):
            raise ValueError("'layout' configuration section must be a dictionary")
        return cls.from_dict(layout)
