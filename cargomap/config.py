# cargomap/config.py
import logging
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

CONFIG_PATH = "conf.yaml"
FALLBACK_CONFIG_PATH = "/etc/cargo/conf.yaml"
STATIC_DIR = "dist"
SNAPSHOT_INTERVAL = 60
HOST = "0.0.0.0"
PORT = 8080


class ConfigError(Exception):
    """Raised when the topology config cannot be used; the service must not start."""


class ShipConfig(BaseModel):
    replicas: int = 1
    clients: List[str] = Field(default_factory=list, description="host:port targets this tier calls")
    servers: List[int] = Field(default_factory=list, description="Ports this tier listens on")


class CargoConfig(BaseModel):
    ships: Dict[str, ShipConfig] = Field(default_factory=dict)

    @field_validator("ships", mode="before")
    @classmethod
    def _empty_groups(cls, value):
        # `api:` with no body parses as None
        if isinstance(value, dict):
            return {name: ship if ship is not None else {} for name, ship in value.items()}
        return value


def _read(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()
    except OSError as e:
        logging.error(f"error opening {path}: {e}")
        return None


def parse_config(text: str) -> CargoConfig:
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}") from e

    if raw is None:
        raise ConfigError("config document is empty")
    if not isinstance(raw, dict):
        raise ConfigError(f"config document must be a mapping, got {type(raw).__name__}")

    try:
        return CargoConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"invalid config: {e}") from e


def load_config(path: str = CONFIG_PATH, fallback_path: str = FALLBACK_CONFIG_PATH) -> CargoConfig:
    source = path
    text = _read(path)
    if text is None:
        source = fallback_path
        text = _read(fallback_path)
    if text is None:
        raise ConfigError(f"no readable config at {path} or {fallback_path}")

    config = parse_config(text)
    logging.info(f"Initialized with config from {source} = \n\n{text}\n")
    return config
