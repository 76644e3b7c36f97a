"""Runtime settings read from the environment.

The launchers call ``load_dotenv()`` first, so every variable below can also
come from a ``.env`` file in the working directory.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .utils import safe_print

__all__ = ["Settings", "ENV_PREFIX"]

ENV_PREFIX = "CRASH_SYMBOLICATOR_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Symbolication settings. CLI flags override these after loading."""
    atos_path: Optional[str] = None  # checked before the standard install paths
    max_workers: int = 4
    timeout: float = 30.0
    arch: Optional[str] = None
    batch: bool = False
    verbose: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            if value is None or not value.strip():
                return None
            return value.strip()

        workers = _parse_number(get("WORKERS"), int, defaults.max_workers, "WORKERS")
        timeout = _parse_number(get("TIMEOUT"), float, defaults.timeout, "TIMEOUT")

        return cls(
            atos_path=get("ATOS"),
            max_workers=max(1, workers),
            timeout=timeout if timeout > 0 else defaults.timeout,
            arch=get("ARCH"),
            batch=(get("BATCH") or "").lower() in _TRUE_VALUES,
            verbose=(get("VERBOSE") or "").lower() in _TRUE_VALUES,
        )


def _parse_number(raw, kind, default, name):
    if raw is None:
        return default
    try:
        return kind(raw)
    except ValueError:
        safe_print(f"[CONFIG] Ignoring {ENV_PREFIX}{name}={raw!r}, using {default}")
        return default
