from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .client import DEFAULT_ENDPOINT

CONFIG_PATH = "ogsync.yaml"
ENDPOINT_ENV = "OGMIOS"


@dataclass
class Settings:
    endpoint: str = DEFAULT_ENDPOINT
    pipeline: int = 50
    save_interval: int = 10000
    reconnect: bool = False
    min_slot: int = 0
    # checkpoint file; empty disables persistence
    store: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Settings":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**raw)


def load_config(path: Optional[Union[str, Path]] = None) -> Settings:
    path = Path(path or CONFIG_PATH)
    raw: Dict[str, Any] = {}
    if path.exists():
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")

    settings = Settings.from_dict(raw)
    if os.getenv(ENDPOINT_ENV):
        settings.endpoint = os.environ[ENDPOINT_ENV]
    return settings
