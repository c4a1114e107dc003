import json
import sys
from dataclasses import asdict
from pathlib import Path

from config import (
    Config,
    apply_dict_to_dataclass,
    migrate_config,
)
from logging_utils import log_event


def get_config_dir() -> Path:
    """Get config directory - exe folder when packaged, home dir otherwise."""
    if getattr(sys, 'frozen', False):
        exe_dir = Path(sys.executable).parent
        probe = exe_dir / '.motiontempo_write_test.tmp'
        try:
            with open(probe, 'w', encoding='utf-8') as f:
                f.write('ok')
            probe.unlink(missing_ok=True)
            return exe_dir
        except OSError:
            pass

    config_dir = Path.home() / '.motiontempo'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_file() -> Path:
    """Get config file path."""
    return get_config_dir() / 'config.json'


def save_config(config: Config, path: Path | None = None) -> bool:
    """Save config to JSON file."""
    try:
        config_file = Path(path) if path is not None else get_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(asdict(config), f, indent=2)
        log_event("INFO", "Config", f"Saved to {config_file}")
        return True
    except (OSError, TypeError, ValueError) as e:
        log_event("ERROR", "Config", f"Failed to save: {e}")
        return False


def load_config(path: Path | None = None) -> Config:
    """Load config from JSON file, returns default if not found."""
    try:
        config_file = Path(path) if path is not None else get_config_file()
        if config_file.exists():
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            config = Config()
            apply_dict_to_dataclass(config, data)
            loaded_version = data.get('version') if isinstance(data, dict) else None
            migrate_config(config, loaded_version)

            log_event("INFO", "Config", f"Loaded from {config_file}", version=config.version)

            if path is None and loaded_version != config.version:
                if not save_config(config):
                    log_event("WARNING", "Config", "Could not auto-save migrated config")
            return config

        log_event("INFO", "Config", "No saved config found, using defaults")
        return Config()
    except (OSError, ValueError) as e:
        log_event("WARNING", "Config", f"Failed to load: {e}, using defaults")
        return Config()
