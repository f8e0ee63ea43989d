"""
Runtime configuration.

Defaults ship as ``streetcam/config/defaults.json``; a user file may
override any subset of keys.  Zoom thresholds:

  map_data_zoom       below this nothing is fetched
  map_photo_zoom      lowest zoom at which photos may be shown manually
  default_photo_zoom  automatic switch from segments to photos (per-layer
                      preference, this is only its initial value)
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from .errors import ConfigurationError

log = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent / "config"
DEFAULTS_FILE = CONFIG_DIR / "defaults.json"

_MAX_ZOOM = 22


@dataclass(frozen=True)
class Config:
    photo_service_url: str
    detection_service_url: str
    request_timeout_s: float = 20.0
    map_data_zoom: int = 10
    map_photo_zoom: int = 15
    default_photo_zoom: int = 16
    nearby_photos_max_items: int = 1000
    preferences_db: str = "data/streetcam_prefs.db"

    def __post_init__(self) -> None:
        if not self.photo_service_url or not self.detection_service_url:
            raise ConfigurationError("Service URLs must not be empty")
        for name in ("map_data_zoom", "map_photo_zoom", "default_photo_zoom"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= _MAX_ZOOM:
                raise ConfigurationError(f"{name} must be an integer in 0..{_MAX_ZOOM}, got {value!r}")
        if self.map_data_zoom > self.map_photo_zoom:
            raise ConfigurationError("map_data_zoom must not exceed map_photo_zoom")
        if self.nearby_photos_max_items <= 0:
            raise ConfigurationError("nearby_photos_max_items must be positive")
        if self.request_timeout_s <= 0:
            raise ConfigurationError("request_timeout_s must be positive")

    def as_dict(self) -> dict:
        return asdict(self)


def _read_json(path: Path) -> dict:
    try:
        with path.open("r", encoding="utf-8") as f:
            cfg = json.load(f)
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Cannot read config {path}: {exc}") from exc
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"Config {path} must hold a JSON object")
    return cfg


def load_config(path: Optional[Path] = None) -> Config:
    """Load defaults, then overlay the keys found in *path* (if given)."""
    cfg = _read_json(DEFAULTS_FILE)
    if path is not None:
        overrides = _read_json(Path(path))
        known = {f.name for f in fields(Config)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ConfigurationError(f"Unknown config keys in {path}: {', '.join(unknown)}")
        cfg.update(overrides)
        log.info("Loaded config overrides from %s (%d keys)", path, len(overrides))
    return Config(**cfg)
