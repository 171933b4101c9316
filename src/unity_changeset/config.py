from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV = "UNITY_CHANGESET_CONFIG"
ROOT_ENV = "UNITY_CHANGESET_ROOT"
@dataclass
class ApiConfig:
    endpoint: str = "https://services.unity.com/graphql"
    page_size: int = 250
    timeout: float = 30.0
    max_workers: int = 8


@dataclass
class DbConfig:
    url: str = "https://mob-sakai.github.io/unity-changeset/db"
    timeout: float = 30.0


@dataclass
class ArchiveConfig:
    url: str = "https://unity.com/releases/editor/archive"
    timeout: float = 30.0


@dataclass
class CacheConfig:
    ttl_seconds: float = 300.0


@dataclass
class Config:
    api: ApiConfig = field(default_factory=ApiConfig)
    db: DbConfig = field(default_factory=DbConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    def __post_init__(self) -> None:
        if self.api.page_size <= 0:
            raise ValueError(f"api.page_size must be a positive integer, got {self.api.page_size}")
        if self.api.max_workers <= 0:
            raise ValueError(f"api.max_workers must be a positive integer, got {self.api.max_workers}")
        if self.cache.ttl_seconds < 0:
            raise ValueError(f"cache.ttl_seconds must not be negative, got {self.cache.ttl_seconds}")


_SECTION_TYPES = {"api": ApiConfig, "db": DbConfig, "archive": ArchiveConfig, "cache": CacheConfig}
_SECTIONS = tuple(_SECTION_TYPES)


def _validate_override_keys(overrides: Dict[str, Any], source: Optional[Path] = None) -> None:
    unknown = sorted(key for key in overrides if key not in _SECTIONS)
    if not unknown:
        return
    where = f" in {source}" if source is not None else ""
    raise ValueError(
        f"Unsupported config keys{where}: {', '.join(unknown)}. "
        f"Known sections: {', '.join(_SECTIONS)}."
    )


def merge_config(base: Config, overrides: Dict[str, Any], source: Optional[Path] = None) -> Config:
    """
    Merge section overrides into ``base`` and return a new Config.

    ``source`` names the file the overrides came from in error messages.
    """
    _validate_override_keys(overrides, source=source)
    sections: Dict[str, Any] = {}
    for name, section_type in _SECTION_TYPES.items():
        values = overrides.get(name) or {}
        if not isinstance(values, dict):
            raise ValueError(f"Config section '{name}' must be a mapping")
        try:
            sections[name] = section_type(**{**vars(getattr(base, name)), **values})
        except TypeError as exc:
            raise ValueError(f"Invalid config value in section '{name}': {exc}") from exc
    return Config(**sections)


def _repo_root() -> Path:
    """Directory holding config.yaml and config.local.yaml."""
    root = os.environ.get(ROOT_ENV)
    return Path(root).expanduser() if root else Path(__file__).resolve().parents[2]


def config_layer_paths(config_path: Optional[Path | str] = None) -> list[Path]:
    """
    Config files in merge order, lowest precedence first: repo config.yaml,
    config.local.yaml, $UNITY_CHANGESET_CONFIG, then ``config_path``.
    A file named by more than one layer is read once, at its first position.
    """
    root = _repo_root()
    candidates = [root / "config.yaml", root / "config.local.yaml", os.environ.get(CONFIG_ENV), config_path]
    layers: list[Path] = []
    for candidate in candidates:
        if not candidate:
            continue
        path = Path(candidate).expanduser()
        if path.exists():
            path = path.resolve()
        if path not in layers:
            layers.append(path)
    return layers


def _read_layer(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file must contain a YAML mapping: {path}")
    return raw


def load_config(config_path: Optional[Path | str] = None) -> Config:
    cfg = Config()
    for layer in config_layer_paths(config_path):
        if layer.exists():
            cfg = merge_config(cfg, _read_layer(layer), source=layer)
    return cfg
