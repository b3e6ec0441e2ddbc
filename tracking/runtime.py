"""Runtime call counter used to see which code paths run in production."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Dict, Optional

_LOCK = threading.RLock()
_COUNTS_FILE = Path(
    os.getenv(
        "FUNCTION_TRACKING_FILE",
        str(Path(__file__).resolve().parent / "function_call_counts.json"),
    )
)
_ENABLED = os.getenv("FUNCTION_TRACKING", "1").strip().lower() not in {"0", "false", "no", "off"}
_COUNTS: Dict[str, int] = {}
_dirty = 0

# Flush every N recorded calls instead of rewriting the file on each call.
FLUSH_EVERY = 50


def _load_counts() -> None:
    if not _COUNTS_FILE.exists():
        return

    try:
        with _COUNTS_FILE.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except (OSError, ValueError):
        return

    if not isinstance(data, dict):
        return

    for name, raw_count in data.items():
        try:
            _COUNTS[str(name)] = max(int(raw_count), 0)
        except (TypeError, ValueError):
            continue


def _persist_counts_locked() -> None:
    """Write counts through a temporary file. Caller must hold ``_LOCK``."""
    global _dirty

    tmp_path: Optional[Path] = None
    try:
        _COUNTS_FILE.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            "w", encoding="utf-8", dir=_COUNTS_FILE.parent, delete=False
        ) as handle:
            json.dump(_COUNTS, handle, sort_keys=True)
            handle.write("\n")
            tmp_path = Path(handle.name)
        tmp_path.replace(_COUNTS_FILE)
        _dirty = 0
    except OSError:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)


def t(func_name: str) -> None:
    """Count one execution of ``func_name``."""
    global _dirty

    if not _ENABLED or not func_name:
        return

    with _LOCK:
        _COUNTS[func_name] = _COUNTS.get(func_name, 0) + 1
        _dirty += 1
        if _dirty >= FLUSH_EVERY:
            _persist_counts_locked()


def flush() -> None:
    """Persist pending counts, e.g. on shutdown."""
    with _LOCK:
        if _dirty:
            _persist_counts_locked()


def snapshot() -> Dict[str, int]:
    with _LOCK:
        return dict(_COUNTS)


if _ENABLED:
    _load_counts()
