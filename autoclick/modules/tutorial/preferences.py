"""
Tutorial preferences backed by a small JSON file.

Holds the flags the tutorial UI needs across restarts (currently whether the
first-time tutorial popup was shown). Reads and writes are guarded by a lock
because the UI thread and store workers may both reach it. Writes go through
a temporary file and `os.replace` so a crash never leaves half-written JSON.
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Dict

from autoclick.core.logging.logger import get_logger

logger = get_logger(__name__)

KEY_FIRST_TIME_POPUP_SHOWN = "tutorial_first_time_popup_shown"


class TutorialPreferences:
    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config_manager: Any, data_dir: Path) -> "TutorialPreferences":
        file_name = config_manager.get("tutorial.preferences.file_name", "tutorial_prefs.json")
        return cls(Path(data_dir) / file_name)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> Dict[str, Any]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(
                "Corrupt tutorial preferences, starting from defaults",
                extra={"path": str(self._path)},
            )
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp_path, self._path)

    def is_first_time_popup_shown(self) -> bool:
        with self._lock:
            return bool(self._read().get(KEY_FIRST_TIME_POPUP_SHOWN, False))

    def set_first_time_popup_shown(self, shown: bool) -> None:
        with self._lock:
            data = self._read()
            data[KEY_FIRST_TIME_POPUP_SHOWN] = bool(shown)
            self._write(data)
        logger.debug(
            "Tutorial preference saved",
            extra={"key": KEY_FIRST_TIME_POPUP_SHOWN, "value": bool(shown)},
        )
