"""Centralized path management for flipledger.

Single source of truth for where the record snapshot, user rule files and
exports live. The data directory defaults to ``~/.flipledger`` and can be
moved with the ``FLIPLEDGER_HOME`` environment variable.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _get_data_root() -> Path:
    """Determine the data directory."""
    env_home = os.environ.get("FLIPLEDGER_HOME", "").strip()
    if env_home:
        return Path(env_home).expanduser()
    return Path("~/.flipledger").expanduser()


@dataclass
class ProjectPaths:
    """Container for all runtime paths.

    Everything is computed relative to ``root`` so tests can point the whole
    application at a temporary directory.
    """

    root: Path = field(default_factory=_get_data_root)

    def __post_init__(self) -> None:
        self.root = self.root.resolve()

    # --- Source code paths ---
    @property
    def src(self) -> Path:
        """Installed package directory."""
        return Path(__file__).resolve().parents[1]

    @property
    def default_keyword_rules(self) -> Path:
        """Bundled keyword category rules TOML file."""
        return self.src / "matching" / "rules" / "default_keyword_categories.toml"

    # --- Configuration paths ---
    @property
    def config(self) -> Path:
        """User configuration directory (config/)."""
        return self.root / "config"

    @property
    def keyword_rules(self) -> Path:
        """User keyword category rules TOML file, layered over the defaults."""
        return self.config / "keyword_categories.toml"

    # --- Data paths ---
    @property
    def snapshot(self) -> Path:
        """Persisted record collection (JSON array)."""
        return self.root / "records.json"

    @property
    def exports(self) -> Path:
        """Directory for pretty-printed JSON backups."""
        return self.root / "exports"

    def ensure_directories(self) -> None:
        """Create data directories if they don't exist."""
        self.root.mkdir(parents=True, exist_ok=True)
        self.config.mkdir(parents=True, exist_ok=True)
        self.exports.mkdir(parents=True, exist_ok=True)


_paths: ProjectPaths | None = None


def get_paths() -> ProjectPaths:
    """Get the singleton ProjectPaths instance."""
    global _paths
    if _paths is None:
        _paths = ProjectPaths()
    return _paths


def set_data_root(root: Path | str) -> ProjectPaths:
    """Point the singleton at a different data directory and return it."""
    global _paths
    _paths = ProjectPaths(root=Path(root))
    return _paths
