from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict

from appbox.domain.settings import LauncherSettings

_log = logging.getLogger(__name__)


class StorageLocal:
    """Local filesystem storage for launcher settings (JSON)."""

    SETTINGS_FILE = "launcher_settings.json"

    def __init__(self, root_dir: str = ".") -> None:
        self.root = root_dir

    @property
    def settings_path(self) -> str:
        return os.path.join(self.root, self.SETTINGS_FILE)

    # ---- Settings (JSON) ----
    def save_settings(self, settings: LauncherSettings) -> None:
        os.makedirs(self.root, exist_ok=True)
        with open(self.settings_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, ensure_ascii=False, indent=2)

    def load_raw(self) -> Dict[str, Any]:
        path = self.settings_path
        if not os.path.exists(path):
            return {}
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        if not isinstance(payload, dict):
            raise ValueError(f"{path} must contain a JSON object")
        return payload

    def load_settings(self) -> LauncherSettings:
        """Return persisted settings; missing or unreadable files yield defaults."""
        try:
            return LauncherSettings.from_dict(self.load_raw())
        except (OSError, ValueError) as exc:
            _log.warning("Could not load %s, using defaults: %s", self.settings_path, exc)
            return LauncherSettings()


__all__ = ["StorageLocal"]
