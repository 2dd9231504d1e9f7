from dataclasses import dataclass, field
from typing import Any, Dict
import yaml


@dataclass
class Config:
    """Configuration object loaded from YAML."""
    data: Dict[str, Any]
    split: Dict[str, Any] = field(default_factory=dict)
    balancing: Dict[str, Any] = field(default_factory=dict)
    search: Dict[str, Any] = field(default_factory=dict)
    evaluation: Dict[str, Any] = field(default_factory=dict)
    output: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        with open(path, "r") as f:
            cfg = yaml.safe_load(f)
        return cls(**cfg)

    def override(self, section: str, key: str, value: Any) -> None:
        """Set ``section.key`` unless ``value`` is None (an unset CLI flag)."""
        if value is not None:
            getattr(self, section)[key] = value
