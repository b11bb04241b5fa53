"""
Configuration for archstore
Whitelisted settings with defaults, loaded from a JSON file in the user's config dir
"""

import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, Optional


DEFAULT_CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".config", "archstore", "settings.json")


class Settings:
    """Settings store backed by a JSON file"""

    DEFAULTS = {
        # Probed in order; the first helper answering --version is used
        'aur_helpers': ["yay", "paru"],
        'elevation_tool': "sudo",
        # stderr lines containing this are never shown as progress
        'password_prompt': "[sudo] password",
        'pacman_conf': "/etc/pacman.conf",
        # Directory for the short-lived AUR helper scripts (None = system temp dir)
        'script_dir': None,
        # Seconds to wait for exit after both streams closed (None = forever)
        'exit_timeout': None,
        'log_dir': os.path.join(os.path.expanduser("~"), ".local", "state", "archstore", "logs"),
        'aur_rpc_metadata': False,
        'aur_rpc_url': "https://aur.archlinux.org/rpc/v5/info",
        'request_timeout': 10,
    }

    # Only these keys are accepted from disk or from set()
    ALLOWED_KEYS = frozenset(DEFAULTS)

    def __init__(self, config_path: Optional[str] = None, **overrides):
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._data: Dict[str, Any] = {}
        self.load()
        for key, value in overrides.items():
            self.set(key, value)

    def load(self):
        """Load settings from file and fall back to defaults"""
        self._data = dict(self.DEFAULTS)

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                user_data = json.load(f)
        except FileNotFoundError:
            return
        except (OSError, ValueError) as e:
            logging.getLogger("ArchStore").warning(f"Could not load settings from {self.config_path}: {e}")
            return

        if not isinstance(user_data, dict):
            logging.getLogger("ArchStore").warning(f"Ignoring settings file {self.config_path}: not a JSON object")
            return

        for key, value in user_data.items():
            if key in self.ALLOWED_KEYS:
                self._data[key] = value

    def save(self):
        """Persist the current settings"""
        os.makedirs(os.path.dirname(self.config_path), exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(self._data, f, indent=2, ensure_ascii=False)

    def get(self, key: str, default=None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any):
        if key not in self.ALLOWED_KEYS:
            raise ValueError(f"Invalid setting key: {key}. Allowed keys: {sorted(self.ALLOWED_KEYS)}")
        self._data[key] = value

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    # ---- Convenience accessors ----

    def aur_helpers(self) -> list:
        helpers = self.get('aur_helpers') or []
        if isinstance(helpers, str):
            helpers = helpers.split()
        return [h for h in helpers if h]

    def script_dir(self) -> str:
        return self.get('script_dir') or tempfile.gettempdir()

    def exit_timeout(self) -> Optional[float]:
        value = self.get('exit_timeout')
        if value in (None, "", 0):
            return None
        return float(value)


_settings_instance = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get or create the global settings instance"""
    global _settings_instance
    with _settings_lock:
        if _settings_instance is None:
            _settings_instance = Settings()
        return _settings_instance
