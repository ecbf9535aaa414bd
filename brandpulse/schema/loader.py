"""Config loader - YAML serialization and deserialization for EngineConfig.

Provides round-trip save/load so attribution shares and status thresholds
can be reviewed, version-controlled, and edited as human-readable YAML.
"""

from pathlib import Path

import yaml

from .config import EngineConfig


def save_config(config: EngineConfig, path: str | Path) -> None:
    """Serialize an EngineConfig to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.to_dict()
    with open(path, "w") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False,
                  allow_unicode=True, width=120)


def load_config(path: str | Path) -> EngineConfig:
    """Deserialize an EngineConfig from a YAML file.

    An empty file yields the defaults.
    """
    path = Path(path)
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return EngineConfig.from_dict(data)
