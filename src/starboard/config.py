"""Starboard configuration management.

Handles persistent settings stored in ~/.starboard/config.json
"""

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any


logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_ORGANISATION = "swiftlang"
DEFAULT_THEME = "textual-dark"
DEFAULT_LIVE_MIN_INTERVAL = 1.0
DEFAULT_LIVE_MAX_INTERVAL = 4.0
DEFAULT_LIVE_MAX_INCREMENT = 5
DEFAULT_SUBSCRIBE_ACK_DELAY = 0.05
DEFAULT_EXPORT_FORMAT = "table"  # table, json, yaml
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class StarboardConfig:
    """Starboard application configuration."""
    
    # Which organisation to list
    organisation: str = DEFAULT_ORGANISATION
    
    # Appearance
    theme: str = DEFAULT_THEME
    
    # Simulated live server
    live_min_interval: float = DEFAULT_LIVE_MIN_INTERVAL
    live_max_interval: float = DEFAULT_LIVE_MAX_INTERVAL
    live_max_increment: int = DEFAULT_LIVE_MAX_INCREMENT
    subscribe_ack_delay: float = DEFAULT_SUBSCRIBE_ACK_DELAY
    
    # Output preferences
    export_format: str = DEFAULT_EXPORT_FORMAT
    log_level: str = DEFAULT_LOG_LEVEL
    
    @classmethod
    def get_config_path(cls) -> Path:
        """Get the path to the config file."""
        return Path.home() / ".starboard" / "config.json"
    
    @classmethod
    def load(cls) -> "StarboardConfig":
        """Load configuration from file, or return defaults if not found.
        
        Settings that fail validation fall back to their defaults.
        """
        config_path = cls.get_config_path()
        
        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                # Only use known fields to avoid issues with old config versions
                known_fields = {f.name for f in fields(cls)}
                filtered_data = {k: v for k, v in data.items() if k in known_fields}
                config = cls(**filtered_data)
            except (json.JSONDecodeError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Ignoring invalid config file %s: %s", config_path, e)
            else:
                defaults = cls()
                for key, problem in config.problems().items():
                    logger.warning("Ignoring %s from %s: %s", key, config_path, problem)
                    setattr(config, key, getattr(defaults, key))
                return config
        
        return cls()
    
    def save(self) -> None:
        """Save configuration to file."""
        config_path = self.get_config_path()
        config_path.parent.mkdir(parents=True, exist_ok=True)
        
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2)
    
    def reset(self) -> None:
        """Reset configuration to defaults."""
        for f in fields(self):
            setattr(self, f.name, f.default)
    
    def problems(self) -> dict[str, str]:
        """Map each invalid setting to what is wrong with it."""
        found: dict[str, str] = {}
        if str(self.log_level).upper() not in LOG_LEVEL_OPTIONS:
            found["log_level"] = f"must be one of {', '.join(LOG_LEVEL_OPTIONS)}"
        formats = [value for value, _ in EXPORT_FORMAT_OPTIONS]
        if self.export_format not in formats:
            found["export_format"] = f"must be one of {', '.join(formats)}"
        # Same bounds MockLiveServer enforces
        try:
            if self.live_min_interval <= 0:
                found["live_min_interval"] = "must be greater than 0"
            elif self.live_max_interval < self.live_min_interval:
                found["live_min_interval"] = "must not exceed live_max_interval"
                found["live_max_interval"] = "must not be below live_min_interval"
            if self.live_max_increment < 1:
                found["live_max_increment"] = "must be at least 1"
            if self.subscribe_ack_delay < 0:
                found["subscribe_ack_delay"] = "must not be negative"
        except TypeError:
            for key in ("live_min_interval", "live_max_interval", "live_max_increment", "subscribe_ack_delay"):
                if not isinstance(getattr(self, key), (int, float)):
                    found[key] = "must be a number"
        return found
    
    def set_value(self, key: str, raw: str) -> Any:
        """Set a field from its string form, converting to the field's type.
        
        Raises:
            KeyError: If the key is not a configuration field
            ValueError: If the value cannot be converted or is out of range
        """
        if key not in _CONVERTERS:
            raise KeyError(key)
        value = _CONVERTERS[key](raw)
        previous = getattr(self, key)
        setattr(self, key, value)
        problem = self.problems().get(key)
        if problem:
            setattr(self, key, previous)
            raise ValueError(f"{key} {problem}")
        return value


EXPORT_FORMAT_OPTIONS = [
    ("table", "Table"),
    ("json", "JSON"),
    ("yaml", "YAML"),
]

LOG_LEVEL_OPTIONS = ["DEBUG", "INFO", "WARNING", "ERROR"]

# Explicit per field: bool("false") would be True
_CONVERTERS = {
    "organisation": str,
    "theme": str,
    "live_min_interval": float,
    "live_max_interval": float,
    "live_max_increment": int,
    "subscribe_ack_delay": float,
    "export_format": str.lower,
    "log_level": str.upper,
}
