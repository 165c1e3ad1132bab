# live_tuning.py
"""Hot-reload tracker thresholds from a JSON file while the loop runs."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Tuple

log = logging.getLogger(__name__)

# Keys understood by TrackingController.apply_tuning
TUNABLE_KEYS = (
    "detection_threshold",
    "mesh_threshold",
    "detection_pad_ratio",
    "track_pad_ratio",
)


class RuntimeParamWatcher:
    """Watch a JSON file and reload its contents when it changes."""

    def __init__(self, path: str | Path = "runtime_params.json") -> None:
        self.path = Path(path).expanduser().resolve()
        self._stamp: Tuple[float, int] = (0.0, -1)  # (mtime, size)
        self.params: Dict[str, Any] = {}

        log.info("[Runtime] Watching: %s", self.path)
        self._load(initial=True)

    def _load(self, *, initial: bool = False) -> None:
        try:
            with self.path.open("r", encoding="utf-8") as fp:
                params = json.load(fp)
            stat = self.path.stat()
        except FileNotFoundError:
            if initial:
                log.info("[Runtime] %s not found; live tuning disabled until it exists", self.path)
            else:
                log.warning("[Runtime] %s was deleted; keeping old params", self.path)
            return
        except json.JSONDecodeError as exc:
            log.warning("[Runtime] JSON error in %s: %s", self.path, exc)
            return

        if not isinstance(params, dict):
            log.warning("[Runtime] %s must hold a JSON object; ignoring", self.path)
            return
        self.params = params
        self._stamp = (stat.st_mtime, stat.st_size)
        if not initial:
            log.info("[Runtime] Reloaded parameters from %s", self.path)

    def maybe_reload(self) -> bool:
        """Reload and return True if the file changed since the last call."""
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            return False

        mtime, fsize = self._stamp
        # Coarse filesystem timestamps: any size change or >= 1 s newer counts.
        if stat.st_size != fsize or stat.st_mtime - mtime >= 1.0:
            self._load()
            return True
        return False

    def get(self, key: str, default: Any | None = None) -> Any:
        return self.params.get(key, default)

    def numeric(self, keys: Iterable[str] = TUNABLE_KEYS) -> Dict[str, float]:
        """The subset of ``keys`` present with numeric values, as floats."""
        out: Dict[str, float] = {}
        for key in keys:
            value = self.params.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                out[key] = float(value)
            elif value is not None:
                log.warning("[Runtime] Ignoring non-numeric %s=%r", key, value)
        return out
