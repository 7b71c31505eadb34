"""Layered YAML configuration and the runtime paths it names."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

# Layers merged in order; later files win key by key.
CONFIG_LAYERS = ("default.yaml",)
ACTIONS_FILE = "actions.yaml"


def read_yaml_mapping(path: Path, required: bool = False) -> dict[str, Any]:
    """Top-level mapping of a YAML file; an absent optional file reads as empty."""
    if not path.exists():
        if required:
            raise FileNotFoundError(f"Config file not found: {path}")
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping, not {type(data).__name__}")
    return data


def deep_merge(*layers: dict[str, Any]) -> dict[str, Any]:
    """Merge mappings left to right, recursing into nested mappings.

    Lists and scalars are replaced wholesale, so a character file that sets
    ``player_ids`` overrides the default list instead of extending it.
    """
    merged: dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                merged[key] = deep_merge(current, value)
            else:
                merged[key] = value
    return merged


@dataclass(frozen=True)
class RuntimePaths:
    workspace_dir: Path
    db_path: Path
    ontology_path: Path

    @classmethod
    def from_config(cls, root: Path, config: dict[str, Any]) -> RuntimePaths:
        paths_cfg = config.get("paths", {})

        def resolve(key: str, default: str) -> Path:
            return (root / paths_cfg.get(key, default)).resolve()

        return cls(
            workspace_dir=resolve("workspace_dir", "workspace"),
            db_path=resolve("db_path", "workspace/npcmind.db"),
            ontology_path=resolve("ontology_path", "config/ontology.yaml"),
        )

    def ensure(self) -> RuntimePaths:
        """Create the directories that saves are written into."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return self


def load_effective_config(root: Path, overrides: Path | None = None) -> dict[str, Any]:
    """Defaults, then the action table under ``actions``, then a character file."""
    config_dir = root / "config"
    layers = [read_yaml_mapping(config_dir / name) for name in CONFIG_LAYERS]
    layers.append({"actions": read_yaml_mapping(config_dir / ACTIONS_FILE)})
    if overrides is not None:
        layers.append(read_yaml_mapping(overrides, required=True))
    return deep_merge(*layers)
