"""Configuration for the mapping service."""

from __future__ import annotations

from dataclasses import dataclass, field

from .metadata.strategy import AutoGenerate
from .naming import DEFAULT_PROXY_MARKER


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 8060
    reload: bool = False


@dataclass
class MappingConfig:
    """Mapping source configuration."""
    # Path to a mapping file (YAML or JSON) or a directory of them
    definition_file: str | None = None


@dataclass
class MetadataConfig:
    """Metadata building configuration."""
    auto_generate: AutoGenerate = AutoGenerate.IF_MISSING  # never | always | if-missing
    cache_dir: str = ".metadata_cache"
    proxy_marker: str = DEFAULT_PROXY_MARKER

    def __post_init__(self):
        self.auto_generate = AutoGenerate(self.auto_generate)


@dataclass
class ReflectionConfig:
    """Reflection configuration."""
    # runtime: import the mapped classes; declared: follow ``extends`` in the mapping file
    mode: str = "runtime"

    def __post_init__(self):
        if self.mode not in ("runtime", "declared"):
            raise ValueError(f"Unknown reflection mode '{self.mode}' (expected runtime or declared)")


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Config:
    """Main configuration container."""
    server: ServerConfig = field(default_factory=ServerConfig)
    mapping: MappingConfig = field(default_factory=MappingConfig)
    metadata: MetadataConfig = field(default_factory=MetadataConfig)
    reflection: ReflectionConfig = field(default_factory=ReflectionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> Config:
        """Create config from dictionary."""
        return cls(
            server=ServerConfig(**data.get("server", {})),
            mapping=MappingConfig(**data.get("mapping", {})),
            metadata=MetadataConfig(**data.get("metadata", {})),
            reflection=ReflectionConfig(**data.get("reflection", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    @classmethod
    def from_yaml(cls, path: str) -> Config:
        """Load config from YAML file."""
        import yaml
        with open(path, "r") as f:
            data = yaml.safe_load(f)
        return cls.from_dict(data or {})

    @classmethod
    def from_json(cls, path: str) -> Config:
        """Load config from JSON file."""
        import json
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def load(cls, path: str) -> Config:
        """Load config from a YAML or JSON file, chosen by extension."""
        if path.endswith(".json"):
            return cls.from_json(path)
        return cls.from_yaml(path)
