"""
Service topology for running the storefront locally.

``storefront.yaml`` (optional) overrides the default ports:

    version: 1
    project: storefront
    services:
      products:
        port: 4001
      coprocessor:
        port: 8081
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from ..core.errors import ConfigError


CONFIG_FILE = "storefront.yaml"

DEFAULT_PORTS = {
    "products": 4001,
    "inventory": 4002,
    "reviews": 4003,
    "shipping": 4004,
    "checkout": 4005,
    "orders": 4006,
    "users": 4007,
    "discovery": 4008,
    "coprocessor": 8081,
}


@dataclass
class ServiceConfig:
    """Configuration for a single service."""
    name: str
    port: int
    host: str = "localhost"

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"


@dataclass
class StorefrontConfig:
    """Main storefront configuration."""
    version: int = 1
    project: str = "storefront"
    services: dict[str, ServiceConfig] = field(default_factory=dict)

    @classmethod
    def default(cls) -> "StorefrontConfig":
        return cls(services={name: ServiceConfig(name=name, port=port) for name, port in DEFAULT_PORTS.items()})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StorefrontConfig":
        """Create config from dictionary; services not listed keep their default port."""
        config = cls.default()
        config.version = data.get("version", 1)
        config.project = data.get("project", "storefront")

        for name, svc_data in (data.get("services") or {}).items():
            if name not in DEFAULT_PORTS:
                raise ConfigError(f"Unknown service '{name}' in {CONFIG_FILE}")
            svc_data = svc_data or {}
            config.services[name] = ServiceConfig(
                name=name,
                port=int(svc_data.get("port", DEFAULT_PORTS[name])),
                host=svc_data.get("host", "localhost"),
            )

        return config

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary for YAML serialization."""
        return {
            "version": self.version,
            "project": self.project,
            "services": {
                name: {"port": svc.port, "host": svc.host}
                for name, svc in self.services.items()
            },
        }

    def save(self, path: Path | str = CONFIG_FILE) -> None:
        """Save configuration to YAML file."""
        content = yaml.dump(self.to_dict(), default_flow_style=False, sort_keys=False)
        Path(path).write_text(content)


def load_config(path: Optional[Path | str] = None) -> StorefrontConfig:
    """Load configuration from YAML file; defaults when the file does not exist."""
    path = Path(path or CONFIG_FILE)
    if not path.exists():
        return StorefrontConfig.default()

    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    return StorefrontConfig.from_dict(data)
