"""Runtime settings resolved from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping

ENV_STORE = "FINANCE_TRACKER_STORE"
ENV_LOG_LEVEL = "FINANCE_TRACKER_LOG_LEVEL"
ENV_EXPORT_PATH = "FINANCE_TRACKER_EXPORT_PATH"

DEFAULT_STORE_PATH = Path("~/.finance-tracker/transactions.json")
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_EXPORT_PATH = Path("transactions.csv")


@dataclass(frozen=True)
class Settings:
    store_path: Path = DEFAULT_STORE_PATH
    log_level: str = DEFAULT_LOG_LEVEL
    export_path: Path = DEFAULT_EXPORT_PATH

    def with_overrides(self, **overrides: object) -> "Settings":
        """Apply non-None overrides (typically parsed CLI flags)."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if "store_path" in changes:
            changes["store_path"] = Path(str(changes["store_path"]))
        if "export_path" in changes:
            changes["export_path"] = Path(str(changes["export_path"]))
        return replace(self, **changes)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    store = env.get(ENV_STORE, "").strip()
    level = env.get(ENV_LOG_LEVEL, "").strip()
    export = env.get(ENV_EXPORT_PATH, "").strip()
    return Settings(
        store_path=Path(store).expanduser() if store else DEFAULT_STORE_PATH.expanduser(),
        log_level=level or DEFAULT_LOG_LEVEL,
        export_path=Path(export) if export else DEFAULT_EXPORT_PATH,
    )
